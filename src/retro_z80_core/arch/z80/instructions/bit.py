"""
Z80 CBプレフィックス命令（ローテート/シフト、BIT、RES、SET）の実装。

DD CB d op / FD CB d op の形式も同じ実行器を共有します。その場合の対象は常に (IX+d)/(IY+d) で、
SSSフィールドが 110 以外のときは結果が当該レジスタにも写されます（未公開動作、BITを除く）。
"""
from retro_z80_core.arch.z80.state import Z80CpuState
from retro_z80_core.transport.memory import Memory
from retro_z80_core.core.operation import Operation
from retro_z80_core.arch.z80.alu import SHIFT_OPERATIONS, rotate_shift8, update_flags_bit
from .base import (
    INDIRECT_HL, Operand, IndirectMemory, get_operand, get_register_name,
    read_operand, write_operand, indirect_address
)

# --- Decoding Functions ---

# @intent:utility_function CBテーブルのオペコードからニーモニックを組み立てます。
# @intent:pre-condition targetは表示用の対象名 ("B", "(HL)", "(IX+d)" など)。
def cb_mnemonic(cb_opcode: int, target: str) -> str:
    type_code = (cb_opcode >> 6) & 0b11
    bit_index = (cb_opcode >> 3) & 0b111
    if type_code == 0b01:
        return f"BIT {bit_index},{target}"
    if type_code == 0b10:
        return f"RES {bit_index},{target}"
    if type_code == 0b11:
        return f"SET {bit_index},{target}"
    return f"{SHIFT_OPERATIONS[bit_index]} {target}"

# @intent:responsibility 0xCB プレフィックス命令（ビット操作、シフト、ローテート）をデコードします。
def decode_cb(opcode: int, memory: Memory, pc: int) -> Operation:
    """CBプレフィックス命令をデコードします。"""
    cb_opcode = memory.read(pc + 1)
    return Operation(
        opcode_hex=f"CB{cb_opcode:02X}",
        mnemonic=cb_mnemonic(cb_opcode, get_register_name(cb_opcode)),
        length=2,
        opcode=cb_opcode,
        prefix=0xCB,
        refresh_count=2
    )

# --- Execution Functions ---

def _target(operation: Operation) -> Operand:
    if operation.displacement is not None:
        return INDIRECT_HL
    return get_operand(operation.opcode)

# @intent:utility_function 結果を対象へ書き戻します。インデックス形式ではレジスタへの写しも行います。
def _store(state: Z80CpuState, memory: Memory, operation: Operation, value: int) -> None:
    write_operand(state, memory, operation, _target(operation), value)
    copy_to = get_operand(operation.opcode)
    if operation.displacement is not None and not isinstance(copy_to, IndirectMemory):
        write_operand(state, memory, operation, copy_to, value)

def execute_rotate_shift(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    """RLC/RRC/RL/RR/SLA/SRA/SLL/SRL を実行します。"""
    val = read_operand(state, memory, operation, _target(operation))
    result = rotate_shift8(state, val, (operation.opcode >> 3) & 0b111)
    _store(state, memory, operation, result)

def execute_bit(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    """BIT b,r / BIT b,(HL) / BIT b,(IX+d) を実行します。"""
    target = _target(operation)
    val = read_operand(state, memory, operation, target)
    if isinstance(target, IndirectMemory):
        # MEMPTRは保持しないため、実効アドレスの上位バイトで近似する
        xy_source = (indirect_address(state, operation) >> 8) & 0xFF
    else:
        xy_source = val
    update_flags_bit(state, (operation.opcode >> 3) & 0b111, val, xy_source)

def execute_res(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    val = read_operand(state, memory, operation, _target(operation))
    _store(state, memory, operation, val & ~(1 << ((operation.opcode >> 3) & 0b111)) & 0xFF)

def execute_set(state: Z80CpuState, memory: Memory, operation: Operation) -> None:
    val = read_operand(state, memory, operation, _target(operation))
    _store(state, memory, operation, val | (1 << ((operation.opcode >> 3) & 0b111)))

_CB_GROUPS = (execute_rotate_shift, execute_bit, execute_res, execute_set)

# @intent:data_structure CB (および DDCB/FDCB) の実行テーブル。bit7-6で4つの命令群に分かれます。
CB_EXECUTE_MAP = {op: _CB_GROUPS[op >> 6] for op in range(0x100)}
