"""
Z80 制御命令（分岐、サブルーチン、交換、システム制御、I/O）の実装。

実行器が呼ばれる時点で PC は既に命令長だけ進んでいます。
分岐命令は PC を上書きし、HALT は PC を命令の先頭へ巻き戻します。
"""
import logging

from retro_z80_core.arch.z80.state import Z80CpuState
from retro_z80_core.transport.memory import Memory
from retro_z80_core.core.operation import Operation
from .base import (
    CONDITION_NAMES, signed_byte, word, condition_met, hl_attr, push_word, pop_word
)

logger = logging.getLogger(__name__)

# --- Decoding Functions ---

def decode_00(opcode: int, memory: Memory, pc: int) -> Operation:
    """NOP命令をデコードします。"""
    return Operation(opcode_hex="00", mnemonic="NOP", length=1, opcode=opcode)

# @intent:responsibility オペコード0x76 (HALT)をデコードします。
def decode_76(opcode: int, memory: Memory, pc: int) -> Operation:
    """HALT命令をデコードします。"""
    return Operation(opcode_hex="76", mnemonic="HALT", length=1, opcode=opcode)

# @intent:utility_function 相対分岐命令 (JR/DJNZ) の共通デコード。表示用オペランドは分岐先アドレス。
def _decode_relative(opcode: int, memory: Memory, pc: int, mnemonic: str) -> Operation:
    offset = memory.read(pc + 1)
    target = (pc + 2 + signed_byte(offset)) & 0xFFFF
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=mnemonic,
        operands=[f"${target:04X}"],
        length=2,
        opcode=opcode,
        operand_bytes=[offset]
    )

# @intent:responsibility オペコード0x10 (DJNZ e) をデコードします。
def decode_10(opcode: int, memory: Memory, pc: int) -> Operation:
    return _decode_relative(opcode, memory, pc, "DJNZ e")

# @intent:responsibility オペコード0x18 (JR e) をデコードします。
def decode_18(opcode: int, memory: Memory, pc: int) -> Operation:
    return _decode_relative(opcode, memory, pc, "JR e")

# @intent:responsibility JR cc,e 形式の命令をデコードします。
def decode_jr_cc_e(opcode: int, memory: Memory, pc: int) -> Operation:
    """条件付き相対ジャンプ命令をデコードします。"""
    cc = CONDITION_NAMES[(opcode >> 3) & 0b11]
    return _decode_relative(opcode, memory, pc, f"JR {cc},e")

# @intent:utility_function 16ビット即値を伴う絶対分岐命令 (JP/CALL) の共通デコード。
def _decode_absolute(opcode: int, memory: Memory, pc: int, mnemonic: str) -> Operation:
    nn_low = memory.read(pc + 1)
    nn_high = memory.read(pc + 2)
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=mnemonic,
        operands=[f"${word(nn_low, nn_high):04X}"],
        length=3,
        opcode=opcode,
        operand_bytes=[nn_low, nn_high]
    )

# @intent:responsibility オペコード0xC3 (JP nn) をデコードします。
def decode_c3(opcode: int, memory: Memory, pc: int) -> Operation:
    return _decode_absolute(opcode, memory, pc, "JP nn")

# @intent:responsibility JP cc,nn 形式 (11CCC010) の命令をデコードします。
def decode_jp_cc_nn(opcode: int, memory: Memory, pc: int) -> Operation:
    cc = CONDITION_NAMES[(opcode >> 3) & 0b111]
    return _decode_absolute(opcode, memory, pc, f"JP {cc},nn")

# @intent:responsibility オペコード0xCD (CALL nn) をデコードします。
def decode_cd(opcode: int, memory: Memory, pc: int) -> Operation:
    """CALL nn命令をデコードします。"""
    return _decode_absolute(opcode, memory, pc, "CALL nn")

# @intent:responsibility CALL cc,nn 形式 (11CCC100) の命令をデコードします。
def decode_call_cc_nn(opcode: int, memory: Memory, pc: int) -> Operation:
    cc = CONDITION_NAMES[(opcode >> 3) & 0b111]
    return _decode_absolute(opcode, memory, pc, f"CALL {cc},nn")

# @intent:responsibility オペコード0xC9 (RET) をデコードします。
def decode_c9(opcode: int, memory: Memory, pc: int) -> Operation:
    """RET命令をデコードします。"""
    return Operation(opcode_hex="C9", mnemonic="RET", length=1, opcode=opcode)

# @intent:responsibility RET cc 形式 (11CCC000) の命令をデコードします。
def decode_ret_cc(opcode: int, memory: Memory, pc: int) -> Operation:
    cc = CONDITION_NAMES[(opcode >> 3) & 0b111]
    return Operation(opcode_hex=f"{opcode:02X}", mnemonic=f"RET {cc}", length=1, opcode=opcode)

# @intent:responsibility RST p 形式 (11TTT111) の命令をデコードします。
def decode_rst(opcode: int, memory: Memory, pc: int) -> Operation:
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=f"RST {opcode & 0x38:02X}H",
        length=1,
        opcode=opcode
    )

def decode_e9(opcode: int, memory: Memory, pc: int) -> Operation:
    """JP (HL)命令をデコードします。"""
    return Operation(opcode_hex="E9", mnemonic="JP (HL)", length=1, opcode=opcode)

# @intent:responsibility オペコード0xFB (EI) をデコードします。
def decode_fb(opcode: int, memory: Memory, pc: int) -> Operation:
    return Operation(opcode_hex="FB", mnemonic="EI", length=1, opcode=opcode)

# @intent:responsibility オペコード0xF3 (DI) をデコードします。
def decode_f3(opcode: int, memory: Memory, pc: int) -> Operation:
    return Operation(opcode_hex="F3", mnemonic="DI", length=1, opcode=opcode)

# @intent:responsibility オペコード0x08 (EX AF,AF') をデコードします。
def decode_08(opcode: int, memory: Memory, pc: int) -> Operation:
    return Operation(opcode_hex="08", mnemonic="EX AF,AF'", length=1, opcode=opcode)

# @intent:responsibility オペコード0xEB (EX DE,HL) をデコードします。
def decode_eb(opcode: int, memory: Memory, pc: int) -> Operation:
    return Operation(opcode_hex="EB", mnemonic="EX DE,HL", length=1, opcode=opcode)

# @intent:responsibility オペコード0xD9 (EXX) をデコードします。
def decode_d9(opcode: int, memory: Memory, pc: int) -> Operation:
    return Operation(opcode_hex="D9", mnemonic="EXX", length=1, opcode=opcode)

# @intent:responsibility オペコード0xE3 (EX (SP),HL) をデコードします。
def decode_e3(opcode: int, memory: Memory, pc: int) -> Operation:
    return Operation(opcode_hex="E3", mnemonic="EX (SP),HL", length=1, opcode=opcode)

# @intent:responsibility オペコード0xDB (IN A,(n)) をデコードします。
def decode_db(opcode: int, memory: Memory, pc: int) -> Operation:
    """IN A,(n)命令をデコードします。"""
    n = memory.read(pc + 1)
    return Operation(
        opcode_hex="DB",
        mnemonic="IN A,(n)",
        operands=[f"(${n:02X})"],
        length=2,
        opcode=opcode,
        operand_bytes=[n]
    )

# @intent:responsibility オペコード0xD3 (OUT (n),A) をデコードします。
def decode_d3(opcode: int, memory: Memory, pc: int) -> Operation:
    """OUT (n),A命令をデコードします。"""
    n = memory.read(pc + 1)
    return Operation(
        opcode_hex="D3",
        mnemonic="OUT (n),A",
        operands=[f"(${n:02X})"],
        length=2,
        opcode=opcode,
        operand_bytes=[n]
    )

# --- Execution Functions ---

def execute_00(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    # Intentional: NOP (No Operation)
    pass

def execute_76(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    # @intent:responsibility CPUをHALT（停止）状態にします。PCはHALT命令自身を指したままにします。
    state.pc = (state.pc - operation.length) & 0xFFFF
    state.halted = True
    logger.info("HALT at PC=$%04X", state.pc)

def execute_10(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    state.b = (state.b - 1) & 0xFF
    if state.b != 0:
        state.pc = (state.pc + signed_byte(operation.operand_bytes[0])) & 0xFFFF

def execute_18(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    state.pc = (state.pc + signed_byte(operation.operand_bytes[0])) & 0xFFFF

def execute_jr_cc_e(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    if condition_met(state, (operation.opcode >> 3) & 0b11):
        state.pc = (state.pc + signed_byte(operation.operand_bytes[0])) & 0xFFFF

def execute_c3(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    state.pc = word(*operation.operand_bytes)

def execute_jp_cc_nn(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    if condition_met(state, (operation.opcode >> 3) & 0b111):
        state.pc = word(*operation.operand_bytes)

def execute_cd(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    # CALL nn: PCは既にCALLの次の命令を指しているので、それを戻り先として積む
    push_word(state, memory, state.pc)
    state.pc = word(*operation.operand_bytes)

def execute_call_cc_nn(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    if condition_met(state, (operation.opcode >> 3) & 0b111):
        execute_cd(state, memory, operation)

def execute_c9(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    # RET: Pop PC from stack
    state.pc = pop_word(state, memory)

def execute_ret_cc(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    if condition_met(state, (operation.opcode >> 3) & 0b111):
        state.pc = pop_word(state, memory)

def execute_rst(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    push_word(state, memory, state.pc)
    state.pc = operation.opcode & 0x38

def execute_e9(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    """JP (HL) / JP (IX) / JP (IY) を実行します。メモリは参照しません。"""
    state.pc = getattr(state, hl_attr(operation))

def execute_fb(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    """EI命令を実行します。"""
    state.iff1 = True
    state.iff2 = True

def execute_f3(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    """DI命令を実行します。"""
    state.iff1 = False
    state.iff2 = False

def execute_08(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    """EX AF,AF'命令を実行します。"""
    state.exchange_af()

def execute_eb(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    """EX DE,HL命令を実行します。プレフィックスの影響を受けません。"""
    state.de, state.hl = state.hl, state.de

def execute_d9(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    """EXX命令を実行します。"""
    state.exchange_main()

def execute_e3(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    """EX (SP),HL命令を実行します。"""
    reg_name = hl_attr(operation)
    sp_high = (state.sp + 1) & 0xFFFF
    stacked = word(memory.read(state.sp), memory.read(sp_high))
    value = getattr(state, reg_name)
    memory.write(state.sp, value & 0xFF)
    memory.write(sp_high, (value >> 8) & 0xFF)
    setattr(state, reg_name, stacked)

# @intent:responsibility I/Oポート命令は長さだけを消費し、状態を変更しません。
def execute_io_ignored(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    logger.debug("I/O instruction %s ignored", operation.mnemonic)
