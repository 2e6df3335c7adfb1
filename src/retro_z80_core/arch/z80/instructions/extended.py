"""
Z80 EDプレフィックス命令の実装。

16ビット算術、16ビットのメモリ転送、NEG、RETN/RETI、I/Rレジスタ転送、RLD/RRD、
ブロック転送/比較を含みます。I/O命令とIM命令は長さのみ消費し状態を変更しません。
未定義のEDオペコードは2バイトのNOP (NONI) として扱われます。
"""
import logging

from retro_z80_core.arch.z80.state import Z80CpuState
from retro_z80_core.transport.memory import Memory
from retro_z80_core.core.operation import Operation
from retro_z80_core.arch.z80.alu import (
    update_flags_sub8, update_flags_adc16, update_flags_sbc16, update_flags_ld_a_ir,
    update_flags_rld_rrd, update_flags_block_ld, update_flags_block_cp
)
from .base import get_ss_reg_name, pair_attr, word, pop_word

logger = logging.getLogger(__name__)

# ブロック命令のニーモニック (オペコード -> ニーモニック)
BLOCK_MNEMONICS = {
    0xA0: "LDI", 0xA1: "CPI", 0xA2: "INI", 0xA3: "OUTI",
    0xA8: "LDD", 0xA9: "CPD", 0xAA: "IND", 0xAB: "OUTD",
    0xB0: "LDIR", 0xB1: "CPIR", 0xB2: "INIR", 0xB3: "OTIR",
    0xB8: "LDDR", 0xB9: "CPDR", 0xBA: "INDR", 0xBB: "OTDR",
}

# 01XXX110 の IM モード (XXX -> モード番号)。bit5-3 が 001/101 のものは未定義だが IM 0 として振る舞う
IM_MODES = (0, 0, 1, 2, 0, 0, 1, 2)

# --- Decoding Functions ---

# @intent:utility_function EDテーブル命令の共通Operationを作ります。
def _ed_operation(ed_opcode: int, mnemonic: str, **fields) -> Operation:
    fields.setdefault("length", 2)
    return Operation(
        opcode_hex=f"ED{ed_opcode:02X}",
        mnemonic=mnemonic,
        opcode=ed_opcode,
        prefix=0xED,
        refresh_count=2,
        **fields
    )

def decode_noni(ed_opcode: int, memory: Memory, pc: int) -> Operation:
    """未定義のEDオペコード。"""
    return _ed_operation(ed_opcode, "NONI")

def decode_in_r_c(ed_opcode: int, memory: Memory, pc: int) -> Operation:
    code = (ed_opcode >> 3) & 0b111
    target = "F" if code == 0b110 else "BCDEHLFA"[code]
    return _ed_operation(ed_opcode, f"IN {target},(C)")

def decode_out_c_r(ed_opcode: int, memory: Memory, pc: int) -> Operation:
    code = (ed_opcode >> 3) & 0b111
    source = "0" if code == 0b110 else "BCDEHLFA"[code]
    return _ed_operation(ed_opcode, f"OUT (C),{source}")

# @intent:responsibility SBC HL,ss / ADC HL,ss をデコードします。
def decode_adc_sbc_hl_ss(ed_opcode: int, memory: Memory, pc: int) -> Operation:
    ss_name = get_ss_reg_name((ed_opcode >> 4) & 0b11)
    op_name = "ADC" if ed_opcode & 0x08 else "SBC"
    return _ed_operation(ed_opcode, f"{op_name} HL,{ss_name}")

# @intent:responsibility LD (nn),ss / LD ss,(nn) をデコードします（4バイト命令）。
def decode_ld_nn_ss(ed_opcode: int, memory: Memory, pc: int) -> Operation:
    ss_name = get_ss_reg_name((ed_opcode >> 4) & 0b11)
    nn_low = memory.read(pc + 2)
    nn_high = memory.read(pc + 3)
    if ed_opcode & 0x08:
        mnemonic = f"LD {ss_name},(nn)"
    else:
        mnemonic = f"LD (nn),{ss_name}"
    return _ed_operation(
        ed_opcode, mnemonic,
        operands=[f"(${word(nn_low, nn_high):04X})"],
        operand_bytes=[nn_low, nn_high],
        length=4
    )

def decode_neg(ed_opcode: int, memory: Memory, pc: int) -> Operation:
    return _ed_operation(ed_opcode, "NEG")

def decode_retn_reti(ed_opcode: int, memory: Memory, pc: int) -> Operation:
    return _ed_operation(ed_opcode, "RETI" if ed_opcode == 0x4D else "RETN")

def decode_im(ed_opcode: int, memory: Memory, pc: int) -> Operation:
    return _ed_operation(ed_opcode, f"IM {IM_MODES[(ed_opcode >> 3) & 0b111]}")

# @intent:responsibility LD I,A / LD R,A / LD A,I / LD A,R をデコードします。
def decode_ld_ir(ed_opcode: int, memory: Memory, pc: int) -> Operation:
    mnemonic = {0x47: "LD I,A", 0x4F: "LD R,A", 0x57: "LD A,I", 0x5F: "LD A,R"}[ed_opcode]
    return _ed_operation(ed_opcode, mnemonic)

def decode_rrd_rld(ed_opcode: int, memory: Memory, pc: int) -> Operation:
    return _ed_operation(ed_opcode, "RRD" if ed_opcode == 0x67 else "RLD")

def decode_block(ed_opcode: int, memory: Memory, pc: int) -> Operation:
    return _ed_operation(ed_opcode, BLOCK_MNEMONICS[ed_opcode])

# --- Execution Functions ---

def execute_noni(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    logger.debug("Undefined ED opcode $%02X treated as NOP", operation.opcode)

# @intent:responsibility I/O命令とIM命令は状態を変更しません。
def execute_ignored(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    logger.debug("%s ignored", operation.mnemonic)

def execute_adc_sbc_hl_ss(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    hl = state.hl
    val = getattr(state, pair_attr(operation, (operation.opcode >> 4) & 0b11))
    carry = 1 if state.flag_c else 0
    if operation.opcode & 0x08: # ADC HL,ss
        result = hl + val + carry
        update_flags_adc16(state, hl, val, result, carry)
    else: # SBC HL,ss
        result = hl - val - carry
        update_flags_sbc16(state, hl, val, result, carry)
    state.hl = result & 0xFFFF

def execute_ld_nn_ss(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    addr = word(*operation.operand_bytes)
    reg_name = pair_attr(operation, (operation.opcode >> 4) & 0b11)
    if operation.opcode & 0x08: # LD ss,(nn)
        setattr(state, reg_name, word(memory.read(addr), memory.read((addr + 1) & 0xFFFF)))
    else: # LD (nn),ss
        value = getattr(state, reg_name)
        memory.write(addr, value & 0xFF)
        memory.write((addr + 1) & 0xFFFF, (value >> 8) & 0xFF)

def execute_neg(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    """NEG命令を実行します（A <- 0 - A）。"""
    val = state.a
    result = 0 - val
    update_flags_sub8(state, 0, val, result)
    state.a = result & 0xFF

def execute_retn_reti(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    """RETI/RETN命令を実行します。"""
    # スタックから戻り先PCを復帰し、IFF2をIFF1にコピー
    state.pc = pop_word(state, memory)
    state.iff1 = state.iff2

def execute_ld_ir(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    opcode = operation.opcode
    if opcode == 0x47:
        state.i = state.a
    elif opcode == 0x4F:
        state.r = state.a
    elif opcode == 0x57:
        state.a = state.i
        update_flags_ld_a_ir(state)
    else: # 0x5F
        state.a = state.r
        update_flags_ld_a_ir(state)

def execute_rrd_rld(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    """RRD/RLD命令を実行します。Aの下位ニブルと(HL)の2ニブルを循環させます。"""
    m = memory.read(state.hl)
    a = state.a
    if operation.opcode == 0x67: # RRD
        memory.write(state.hl, ((a & 0x0F) << 4) | (m >> 4))
        state.a = (a & 0xF0) | (m & 0x0F)
    else: # RLD
        memory.write(state.hl, ((m << 4) & 0xF0) | (a & 0x0F))
        state.a = (a & 0xF0) | (m >> 4)
    update_flags_rld_rrd(state)

# @intent:utility_function 繰り返し命令をもう一度実行させるため、PCを命令の先頭へ戻します。
def _repeat(state: Z80CpuState, operation: Operation) -> None:
    state.pc = (state.pc - operation.length) & 0xFFFF

# @intent:responsibility LDI/LDD/LDIR/LDDR を実行します。繰り返し形式は1ステップにつき1バイト転送します。
def execute_block_ld(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    opcode = operation.opcode
    delta = -1 if opcode & 0x08 else 1
    value = memory.read(state.hl)
    memory.write(state.de, value)
    state.hl = (state.hl + delta) & 0xFFFF
    state.de = (state.de + delta) & 0xFFFF
    state.bc = (state.bc - 1) & 0xFFFF
    update_flags_block_ld(state, value)
    if opcode & 0x10 and state.bc != 0:
        _repeat(state, operation)

# @intent:responsibility CPI/CPD/CPIR/CPDR を実行します。繰り返し形式は一致またはBC=0で停止します。
def execute_block_cp(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    opcode = operation.opcode
    delta = -1 if opcode & 0x08 else 1
    value = memory.read(state.hl)
    state.hl = (state.hl + delta) & 0xFFFF
    state.bc = (state.bc - 1) & 0xFFFF
    update_flags_block_cp(state, value)
    if opcode & 0x10 and state.bc != 0 and not state.flag_z:
        _repeat(state, operation)

# --- Tables ---

ED_DECODE_MAP = {
    **{op: decode_noni for op in range(0x100)},
    **{op: decode_in_r_c for op in range(0x40, 0x80, 0x08)},
    **{op: decode_out_c_r for op in range(0x41, 0x80, 0x08)},
    **{op: decode_adc_sbc_hl_ss for op in range(0x42, 0x80, 0x08)}, # SBC (x2) / ADC (xA)
    **{op: decode_ld_nn_ss for op in range(0x43, 0x80, 0x08)}, # LD (nn),ss (x3) / LD ss,(nn) (xB)
    **{op: decode_neg for op in range(0x44, 0x80, 0x08)},
    **{op: decode_retn_reti for op in range(0x45, 0x80, 0x08)},
    **{op: decode_im for op in range(0x46, 0x80, 0x08)},
    0x47: decode_ld_ir, 0x4F: decode_ld_ir, 0x57: decode_ld_ir, 0x5F: decode_ld_ir,
    0x67: decode_rrd_rld, 0x6F: decode_rrd_rld,
    **{op: decode_block for op in BLOCK_MNEMONICS},
}

ED_EXECUTE_MAP = {
    **{op: execute_noni for op in range(0x100)},
    **{op: execute_ignored for op in range(0x40, 0x80, 0x08)},
    **{op: execute_ignored for op in range(0x41, 0x80, 0x08)},
    **{op: execute_adc_sbc_hl_ss for op in range(0x42, 0x80, 0x08)},
    **{op: execute_ld_nn_ss for op in range(0x43, 0x80, 0x08)},
    **{op: execute_neg for op in range(0x44, 0x80, 0x08)},
    **{op: execute_retn_reti for op in range(0x45, 0x80, 0x08)},
    **{op: execute_ignored for op in range(0x46, 0x80, 0x08)},
    0x47: execute_ld_ir, 0x4F: execute_ld_ir, 0x57: execute_ld_ir, 0x5F: execute_ld_ir,
    0x67: execute_rrd_rld, 0x6F: execute_rrd_rld,
    **{op: execute_block_ld for op in (0xA0, 0xA8, 0xB0, 0xB8)},
    **{op: execute_block_cp for op in (0xA1, 0xA9, 0xB1, 0xB9)},
    **{op: execute_ignored for op in (0xA2, 0xA3, 0xAA, 0xAB, 0xB2, 0xB3, 0xBA, 0xBB)},
}

# @intent:responsibility 0xED プレフィックス命令をデコードします。
def decode_ed(opcode: int, memory: Memory, pc: int) -> Operation:
    """EDプレフィックスに続くオペコードをEDテーブルでデコードします。"""
    ed_opcode = memory.read(pc + 1)
    return ED_DECODE_MAP[ed_opcode](ed_opcode, memory, pc)
