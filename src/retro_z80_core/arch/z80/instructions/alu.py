"""
Z80 算術論理演算 (ALU) 命令の実装。
"""
from retro_z80_core.arch.z80.state import Z80CpuState
from retro_z80_core.transport.memory import Memory
from retro_z80_core.core.operation import Operation
from retro_z80_core.arch.z80.alu import (
    update_flags_add8, update_flags_sub8, update_flags_cp8, update_flags_logic8,
    update_flags_inc_dec8, update_flags_add16, rotate_accumulator, decimal_adjust,
    complement_accumulator, set_carry_flag, complement_carry_flag
)
from .base import (
    get_operand, get_register_name, get_ss_reg_name, read_operand, write_operand,
    pair_attr, hl_attr
)

# ALU演算の並び (オペコードのbit5-3に対応)
ALU_MNEMONICS = ("ADD A,", "ADC A,", "SUB ", "SBC A,", "AND ", "XOR ", "OR ", "CP ")

# アキュムレータ専用ローテート (0x07, 0x0F, 0x17, 0x1F)
ROTATE_A_MNEMONICS = ("RLCA", "RRCA", "RLA", "RRA")

# --- Decoding Functions ---

# @intent:responsibility ADD HL,ss 形式の命令をデコードします。
def decode_add_hl_ss(opcode: int, memory: Memory, pc: int) -> Operation:
    """ADD HL,ss命令をデコードします。"""
    ss_name = get_ss_reg_name((opcode >> 4) & 0b11)
    return Operation(opcode_hex=f"{opcode:02X}", mnemonic=f"ADD HL,{ss_name}", length=1, opcode=opcode)

# @intent:responsibility INC ss / DEC ss 形式の命令をデコードします。
def decode_inc_dec16(opcode: int, memory: Memory, pc: int) -> Operation:
    ss_name = get_ss_reg_name((opcode >> 4) & 0b11)
    is_inc = (opcode & 0x08) == 0
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=f"{'INC' if is_inc else 'DEC'} {ss_name}",
        length=1,
        opcode=opcode
    )

# @intent:responsibility INC r / DEC r 形式の命令をデコードします。
def decode_inc_dec8(opcode: int, memory: Memory, pc: int) -> Operation:
    """8ビットのINC/DEC命令をデコードします。"""
    reg_name = get_register_name((opcode >> 3) & 0b111)
    is_inc = (opcode & 1) == 0
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=f"{'INC' if is_inc else 'DEC'} {reg_name}",
        length=1,
        opcode=opcode
    )

# @intent:responsibility ADD/ADC/SUB/SBC/AND/XOR/OR/CP r 形式 (10XXXSSS) の命令をデコードします。
def decode_alu_r(opcode: int, memory: Memory, pc: int) -> Operation:
    src_reg_name = get_register_name(opcode & 0b111)
    op_name = ALU_MNEMONICS[(opcode >> 3) & 0b111]
    return Operation(opcode_hex=f"{opcode:02X}", mnemonic=f"{op_name}{src_reg_name}", length=1, opcode=opcode)

# @intent:responsibility ADD/ADC/SUB/SBC/AND/XOR/OR/CP n 形式 (11XXX110) の命令をデコードします。
def decode_alu_n(opcode: int, memory: Memory, pc: int) -> Operation:
    n = memory.read(pc + 1)
    op_name = ALU_MNEMONICS[(opcode >> 3) & 0b111]
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=f"{op_name}n",
        operands=[f"${n:02X}"],
        length=2,
        opcode=opcode,
        operand_bytes=[n]
    )

def decode_rotate_a(opcode: int, memory: Memory, pc: int) -> Operation:
    """RLCA/RRCA/RLA/RRA命令をデコードします。"""
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=ROTATE_A_MNEMONICS[(opcode >> 3) & 0b11],
        length=1,
        opcode=opcode
    )

def decode_27(opcode: int, memory: Memory, pc: int) -> Operation:
    return Operation(opcode_hex="27", mnemonic="DAA", length=1, opcode=opcode)

def decode_2f(opcode: int, memory: Memory, pc: int) -> Operation:
    return Operation(opcode_hex="2F", mnemonic="CPL", length=1, opcode=opcode)

def decode_37(opcode: int, memory: Memory, pc: int) -> Operation:
    return Operation(opcode_hex="37", mnemonic="SCF", length=1, opcode=opcode)

def decode_3f(opcode: int, memory: Memory, pc: int) -> Operation:
    return Operation(opcode_hex="3F", mnemonic="CCF", length=1, opcode=opcode)

# --- Execution Functions ---

# @intent:responsibility アキュムレータに対する8ビット演算を実行します。演算種別はop_type(0-7)で選びます。
def alu_accumulator(state: Z80CpuState, op_type: int, val: int) -> None:
    a = state.a
    if op_type == 0b000: # ADD A, r
        result = a + val
        update_flags_add8(state, a, val, result)
        state.a = result & 0xFF
    elif op_type == 0b001: # ADC A, r
        carry = 1 if state.flag_c else 0
        result = a + val + carry
        update_flags_add8(state, a, val, result, carry_in=carry)
        state.a = result & 0xFF
    elif op_type == 0b010: # SUB r
        result = a - val
        update_flags_sub8(state, a, val, result)
        state.a = result & 0xFF
    elif op_type == 0b011: # SBC A, r
        borrow = 1 if state.flag_c else 0
        result = a - val - borrow
        update_flags_sub8(state, a, val, result, borrow_in=borrow)
        state.a = result & 0xFF
    elif op_type == 0b100: # AND
        state.a = a & val
        update_flags_logic8(state, state.a, h_flag=True)
    elif op_type == 0b101: # XOR
        state.a = a ^ val
        update_flags_logic8(state, state.a)
    elif op_type == 0b110: # OR
        state.a = a | val
        update_flags_logic8(state, state.a)
    else: # CP does not store the result
        update_flags_cp8(state, a, val)

def execute_alu_r(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    opcode = operation.opcode
    val = read_operand(state, memory, operation, get_operand(opcode & 0b111))
    alu_accumulator(state, (opcode >> 3) & 0b111, val)

def execute_alu_n(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    alu_accumulator(state, (operation.opcode >> 3) & 0b111, operation.operand_bytes[0])

def execute_add_hl_ss(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    dest = hl_attr(operation)
    base_val = getattr(state, dest)
    val = getattr(state, pair_attr(operation, (operation.opcode >> 4) & 0b11))
    result = base_val + val
    update_flags_add16(state, base_val, val, result)
    setattr(state, dest, result & 0xFFFF)

def execute_inc_dec16(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    # 16ビットのINC/DECはフラグに影響しない
    name = pair_attr(operation, (operation.opcode >> 4) & 0b11)
    delta = 1 if (operation.opcode & 0x08) == 0 else -1
    setattr(state, name, (getattr(state, name) + delta) & 0xFFFF)

def execute_inc_dec8(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    operand = get_operand((operation.opcode >> 3) & 0b111)
    is_inc = (operation.opcode & 1) == 0
    val = read_operand(state, memory, operation, operand)
    result = (val + 1) if is_inc else (val - 1)
    update_flags_inc_dec8(state, val, result, is_inc)
    write_operand(state, memory, operation, operand, result & 0xFF)

def execute_rotate_a(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    rotate_accumulator(state, (operation.opcode >> 3) & 0b11)

def execute_27(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    decimal_adjust(state)

def execute_2f(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    complement_accumulator(state)

def execute_37(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    set_carry_flag(state)

def execute_3f(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    complement_carry_flag(state)
