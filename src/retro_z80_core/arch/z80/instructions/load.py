"""
Z80 データ転送命令の実装。
"""
from retro_z80_core.arch.z80.state import Z80CpuState
from retro_z80_core.transport.memory import Memory
from retro_z80_core.core.operation import Operation
from .base import (
    get_operand, get_register_name, get_ss_reg_name, get_push_pop_reg_name,
    read_operand, write_operand, pair_attr, hl_attr, word,
    push_word, pop_word, PUSH_POP_PAIRS
)

# --- Decoding Functions ---

def decode_push_pop(opcode: int, memory: Memory, pc: int) -> Operation:
    """PUSH/POP命令をデコードします。"""
    reg_name = get_push_pop_reg_name((opcode >> 4) & 0b11)
    is_push = (opcode & 0x0F) == 0x05
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=f"{'PUSH' if is_push else 'POP'} {reg_name}",
        length=1,
        opcode=opcode
    )

# @intent:responsibility LD ss,nn 形式の命令をデコードします。
def decode_ld_ss_nn(opcode: int, memory: Memory, pc: int) -> Operation:
    """LD ss,nn命令をデコードします。"""
    ss_name = get_ss_reg_name((opcode >> 4) & 0b11)
    nn_low = memory.read(pc + 1)
    nn_high = memory.read(pc + 2)
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=f"LD {ss_name},nn",
        operands=[f"${word(nn_low, nn_high):04X}"],
        length=3,
        opcode=opcode,
        operand_bytes=[nn_low, nn_high]
    )

# @intent:responsibility LD (BC),A / LD (DE),A / LD A,(BC) / LD A,(DE) をデコードします。
def decode_ld_indirect_a(opcode: int, memory: Memory, pc: int) -> Operation:
    pair = "BC" if (opcode & 0x10) == 0 else "DE"
    if opcode & 0x08:
        mnemonic = f"LD A,({pair})"
    else:
        mnemonic = f"LD ({pair}),A"
    return Operation(opcode_hex=f"{opcode:02X}", mnemonic=mnemonic, length=1, opcode=opcode)

# @intent:responsibility LD (nn),HL / LD HL,(nn) をデコードします。
def decode_ld_nn_hl(opcode: int, memory: Memory, pc: int) -> Operation:
    nn_low = memory.read(pc + 1)
    nn_high = memory.read(pc + 2)
    mnemonic = "LD HL,(nn)" if opcode == 0x2A else "LD (nn),HL"
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=mnemonic,
        operands=[f"(${word(nn_low, nn_high):04X})"],
        length=3,
        opcode=opcode,
        operand_bytes=[nn_low, nn_high]
    )

# @intent:responsibility LD r,n 形式の命令をデコードします。
def decode_ld_r_n(opcode: int, memory: Memory, pc: int) -> Operation:
    """LD r,n命令をデコードします。"""
    reg_name = get_register_name((opcode >> 3) & 0b111)
    operand_n = memory.read(pc + 1)
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=f"LD {reg_name},n",
        operands=[f"${operand_n:02X}"],
        length=2,
        opcode=opcode,
        operand_bytes=[operand_n]
    )

# @intent:responsibility LD r,r'形式の命令をデコードします。
# @intent:pre-condition 0x76 (HALT) はこのデコーダに渡されません。
def decode_ld_r_r_prime(opcode: int, memory: Memory, pc: int) -> Operation:
    """汎用的なLD r,r'命令をデコードします。"""
    dest_reg_name = get_register_name((opcode >> 3) & 0b111)
    src_reg_name = get_register_name(opcode & 0b111)
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=f"LD {dest_reg_name},{src_reg_name}",
        length=1,
        opcode=opcode
    )

def decode_ld_a_nn(opcode: int, memory: Memory, pc: int) -> Operation:
    """LD A,(nn) 命令をデコードします。"""
    nn_low = memory.read(pc + 1)
    nn_high = memory.read(pc + 2)
    return Operation(
        opcode_hex="3A",
        mnemonic="LD A,(nn)",
        operands=[f"(${word(nn_low, nn_high):04X})"],
        length=3,
        opcode=opcode,
        operand_bytes=[nn_low, nn_high]
    )

def decode_ld_nn_a(opcode: int, memory: Memory, pc: int) -> Operation:
    """LD (nn),A 命令をデコードします。"""
    nn_low = memory.read(pc + 1)
    nn_high = memory.read(pc + 2)
    return Operation(
        opcode_hex="32",
        mnemonic="LD (nn),A",
        operands=[f"(${word(nn_low, nn_high):04X})"],
        length=3,
        opcode=opcode,
        operand_bytes=[nn_low, nn_high]
    )

def decode_f9(opcode: int, memory: Memory, pc: int) -> Operation:
    """LD SP,HL 命令をデコードします。"""
    return Operation(opcode_hex="F9", mnemonic="LD SP,HL", length=1, opcode=opcode)

# --- Execution Functions ---

def execute_push_pop(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    opcode = operation.opcode
    reg_name = pair_attr(operation, (opcode >> 4) & 0b11, PUSH_POP_PAIRS)
    if (opcode & 0x0F) == 0x05:
        push_word(state, memory, getattr(state, reg_name))
    else:
        setattr(state, reg_name, pop_word(state, memory))

def execute_ld_ss_nn(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    ss_name = pair_attr(operation, (operation.opcode >> 4) & 0b11)
    setattr(state, ss_name, word(*operation.operand_bytes))

def execute_ld_indirect_a(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    opcode = operation.opcode
    address = state.bc if (opcode & 0x10) == 0 else state.de
    if opcode & 0x08:
        state.a = memory.read(address)
    else:
        memory.write(address, state.a)

def execute_ld_nn_hl(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    addr = word(*operation.operand_bytes)
    reg_name = hl_attr(operation)
    if operation.opcode == 0x2A:
        low = memory.read(addr)
        high = memory.read((addr + 1) & 0xFFFF)
        setattr(state, reg_name, word(low, high))
    else:
        value = getattr(state, reg_name)
        memory.write(addr, value & 0xFF)
        memory.write((addr + 1) & 0xFFFF, (value >> 8) & 0xFF)

def execute_ld_r_n(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    operand = get_operand((operation.opcode >> 3) & 0b111)
    write_operand(state, memory, operation, operand, operation.operand_bytes[0])

def execute_ld_r_r_prime(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    dest = get_operand((operation.opcode >> 3) & 0b111)
    src = get_operand(operation.opcode & 0b111)
    val = read_operand(state, memory, operation, src)
    write_operand(state, memory, operation, dest, val)

def execute_ld_a_nn(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    """LD A,(nn)を実行します。"""
    state.a = memory.read(word(*operation.operand_bytes))

def execute_ld_nn_a(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    """LD (nn),Aを実行します。"""
    memory.write(word(*operation.operand_bytes), state.a)

def execute_f9(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    state.sp = getattr(state, hl_attr(operation))
