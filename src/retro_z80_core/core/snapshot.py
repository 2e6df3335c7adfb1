# retro_z80_core/core/snapshot.py
"""
実行状態の不変スナップショット

このモジュールは、レジスタファイルとメモリの完全な内容を記録した不変のデータ構造を定義します。
ホストが状態を保存・復元するための平坦なバイト列形式を提供する責務を負います。
"""
from dataclasses import dataclass

# @intent:responsibility ある一時点におけるレジスタとメモリの完全な状態を不変に記録します。
@dataclass(frozen=True) # 不変データ構造
class Snapshot:
    """
    ある一時点における、レジスタブロックとメモリ内容を記録した不変のデータ構造。
    バイト列形式は「レジスタブロック」の直後に「メモリ全体」が続く単純な連結です。
    """
    registers: bytes
    memory: bytes

    # @intent:responsibility スナップショットを平坦なバイト列に変換します。
    def to_bytes(self) -> bytes:
        return self.registers + self.memory

    # @intent:responsibility to_bytes()の出力からスナップショットを復元します。
    # @intent:pre-condition register_block_sizeはアーキテクチャ固有のレジスタブロック長です。
    @classmethod
    def from_bytes(cls, data: bytes, register_block_size: int) -> "Snapshot":
        if len(data) <= register_block_size:
            raise ValueError(
                f"Snapshot data of {len(data)} bytes is too short for a "
                f"{register_block_size}-byte register block and memory."
            )
        return cls(registers=bytes(data[:register_block_size]), memory=bytes(data[register_block_size:]))
