# retro_z80_core/core/operation.py
"""
デコード済み命令の記録。

このモジュールは、デコーダが生成し実行器が消費する不変の命令レコードを定義します。
"""
from dataclasses import dataclass, field
from typing import List, Optional

# @intent:responsibility デコードされた1命令の詳細を記録します。
@dataclass(frozen=True) # 不変データ構造
class Operation:
    """
    デコードされた命令の詳細（HEX、ニーモニック、オペランド、命令長、ディスパッチキー）を
    記録するデータクラス。
    """
    opcode_hex: str # 例: "DD36" (プレフィックスを含む表示用のHEX)
    mnemonic: str # 例: "LD (IX+d),n"
    operands: List[str] = field(default_factory=list) # 例: ["$1234"]
    operand_bytes: List[int] = field(default_factory=list) # 生のオペランドバイト（即値/アドレス、リトルエンディアン順）
    length: int = 1 # 命令のバイト長
    opcode: int = 0x00 # 実行テーブル内のキー（プレフィックスを除いたオペコード）
    prefix: int = 0x00 # 実行テーブルの選択キー: 0x00, 0xCB, 0xED, 0xDD, 0xFD, 0xDDCB, 0xFDCB
    displacement: Optional[int] = None # (IX+d)/(IY+d) の符号付き変位。インデックス付きメモリ命令のみ
    refresh_count: int = 1 # オペコードフェッチ回数（Rレジスタの加算量）

    # @intent:rationale 実行器はopcode_hexの文字列を解釈し直すのではなく、opcode/prefixの整数キーで
    #                  テーブルを引く。プレフィックス付き命令が別テーブルに入れ子になるため。
