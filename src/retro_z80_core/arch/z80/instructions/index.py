"""
Z80 インデックスプレフィックス (DD / FD) のデコード。

プレフィックスに続くオペコードはプレフィックス無しのデコードテーブルで入れ子にデコードされ、
HL は IX/IY に、(HL) は (IX+d)/(IY+d) に、H/L は IXH/IXL (IYH/IYL) に読み替えられます。
HLを扱わないオペコードが続く場合、プレフィックスは1バイトのNOPとして消費されます。
"""
import re
from dataclasses import replace

from retro_z80_core.transport.memory import Memory
from retro_z80_core.core.operation import Operation
from .base import signed_byte
from .bit import cb_mnemonic

_INDEX_NAMES = {0xDD: "IX", 0xFD: "IY"}

# (HL) を参照する命令。変位バイトを伴います。
def _uses_index_memory(op: int) -> bool:
    if op in (0x34, 0x35, 0x36):
        return True
    if 0x40 <= op < 0x80 and op != 0x76:
        return ((op >> 3) & 0b111) == 0b110 or (op & 0b111) == 0b110
    if 0x80 <= op < 0xC0:
        return (op & 0b111) == 0b110
    return False

# HL/H/L をレジスタとして参照する命令。
def _uses_index_register(op: int) -> bool:
    if op in (0x09, 0x19, 0x29, 0x39, 0x21, 0x22, 0x2A, 0x23, 0x2B, 0x24, 0x25, 0x26,
              0x2C, 0x2D, 0x2E, 0xE1, 0xE3, 0xE5, 0xE9, 0xF9):
        return True
    if _uses_index_memory(op) or op == 0x76:
        return False
    if 0x40 <= op < 0x80:
        return ((op >> 3) & 0b111) in (0b100, 0b101) or (op & 0b111) in (0b100, 0b101)
    if 0x80 <= op < 0xC0:
        return (op & 0b111) in (0b100, 0b101)
    return False

INDEX_MEMORY_OPCODES = frozenset(op for op in range(0x100) if _uses_index_memory(op))
INDEX_REGISTER_OPCODES = frozenset(op for op in range(0x100) if _uses_index_register(op))

# @intent:utility_function 表示用ニーモニックのHL/H/LをIX/IYに置き換えます。
def _rewrite_mnemonic(mnemonic: str, index_name: str, with_displacement: bool) -> str:
    if with_displacement:
        return mnemonic.replace("(HL)", f"({index_name}+d)")
    mnemonic = re.sub(r"\b([HL])\b", lambda m: index_name + m.group(1), mnemonic)
    return re.sub(r"\bHL\b", index_name, mnemonic)

# @intent:responsibility DD CB d op / FD CB d op 形式の命令をデコードします。
def _decode_index_cb(prefix: int, memory: Memory, pc: int) -> Operation:
    d = memory.read(pc + 2)
    cb_opcode = memory.read(pc + 3)
    index_name = _INDEX_NAMES[prefix]
    mnemonic = cb_mnemonic(cb_opcode, f"({index_name}+d)")
    if (cb_opcode >> 6) != 0b01 and (cb_opcode & 0b111) != 0b110:
        mnemonic += "," + "BCDEHL?A"[cb_opcode & 0b111]
    displacement = signed_byte(d)
    return Operation(
        opcode_hex=f"{prefix:02X}CB{d:02X}{cb_opcode:02X}",
        mnemonic=mnemonic,
        operands=[f"{displacement:+d}"],
        length=4,
        opcode=cb_opcode,
        prefix=(prefix << 8) | 0xCB,
        displacement=displacement,
        refresh_count=2
    )

# @intent:responsibility 0xDD / 0xFD プレフィックス命令をデコードします。
# @intent:pre-condition opcodeは0xDDまたは0xFD、pcはプレフィックスのアドレスです。
def decode_ix_iy(opcode: int, memory: Memory, pc: int) -> Operation:
    """IX/IY命令をデコードします。"""
    # 循環インポートを避けるため遅延インポート
    from .maps import DECODE_MAP

    next_opcode = memory.read(pc + 1)
    if next_opcode == 0xCB:
        return _decode_index_cb(opcode, memory, pc)

    index_name = _INDEX_NAMES[opcode]
    if next_opcode in INDEX_MEMORY_OPCODES:
        # 変位バイトの後ろに即値が続くため、基本デコーダには変位の位置をPCとして渡す
        d = memory.read(pc + 2)
        base = DECODE_MAP[next_opcode](next_opcode, memory, pc + 2)
        displacement = signed_byte(d)
        return replace(
            base,
            opcode_hex=f"{opcode:02X}{base.opcode_hex}",
            mnemonic=_rewrite_mnemonic(base.mnemonic, index_name, True),
            operands=[f"{displacement:+d}"] + base.operands,
            length=base.length + 2,
            prefix=opcode,
            displacement=displacement,
            refresh_count=2
        )

    if next_opcode in INDEX_REGISTER_OPCODES:
        base = DECODE_MAP[next_opcode](next_opcode, memory, pc + 1)
        return replace(
            base,
            opcode_hex=f"{opcode:02X}{base.opcode_hex}",
            mnemonic=_rewrite_mnemonic(base.mnemonic, index_name, False),
            length=base.length + 1,
            prefix=opcode,
            refresh_count=2
        )

    # HLを扱わない命令: プレフィックスのみを消費し、次のステップで後続バイトを通常実行する
    return Operation(opcode_hex=f"{opcode:02X}", mnemonic="NONI", length=1, opcode=0x00)
