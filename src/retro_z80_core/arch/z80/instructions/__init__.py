"""
Z80命令セット実装パッケージ。
"""
from retro_z80_core.transport.memory import Memory
from retro_z80_core.core.operation import Operation
from retro_z80_core.arch.z80.state import Z80CpuState
from .maps import DECODE_MAP, EXECUTE_TABLES

# @intent:responsibility 与えられたオペコードをZ80の命令としてデコードします。
# @intent:pre-condition `pc`はデコードするオペコードの先頭アドレスを指している必要があります。
def decode_opcode(opcode: int, memory: Memory, pc: int) -> Operation:
    """
    Z80のオペコードをデコードし、Operationオブジェクトを返します。
    デコードテーブルは全256バイトを網羅しているため、未知のオペコードは存在しません。
    """
    return DECODE_MAP[opcode & 0xFF](opcode & 0xFF, memory, pc)

# @intent:responsibility デコードされたZ80命令を実行し、CPUの状態を変更します。
# @intent:pre-condition `operation`はdecode_opcodeが生成したOperationである必要があります。
def execute_instruction(operation: Operation, state: Z80CpuState, memory: Memory) -> None:
    """
    デコードされたZ80命令を、プレフィックスで選ばれるテーブルの実行器で実行します。
    """
    EXECUTE_TABLES[operation.prefix][operation.opcode](state, memory, operation)
