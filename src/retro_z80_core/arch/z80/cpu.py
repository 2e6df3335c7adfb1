# retro_z80_core/arch/z80/cpu.py
"""
Z80 CPUエミュレーションの中心モジュール。

このモジュールはZ80 CPUの具体的な実装を提供し、
AbstractCpuインターフェースを実装します。
"""
import logging
from typing import Dict, Iterable

from retro_z80_core.core.cpu import AbstractCpu
from retro_z80_core.core.operation import Operation
from retro_z80_core.core.snapshot import Snapshot
from retro_z80_core.transport.memory import DEFAULT_MEMORY_SIZE
from retro_z80_core.arch.z80.state import Z80CpuState, Register, REGISTER_BLOCK_SIZE
from retro_z80_core.arch.z80.instructions import decode_opcode, execute_instruction

logger = logging.getLogger(__name__)

# @intent:responsibility Z80 CPUの具体的なエミュレーションロジックを提供します。
class Z80Cpu(AbstractCpu):
    """
    Z80 CPUをエミュレートするクラス。
    AbstractCpuを継承し、Z80固有の動作を実装します。
    """
    # @intent:responsibility Z80Cpuの初期化を行います。
    # @intent:pre-condition `memory_size`は正の整数である必要があります。
    def __init__(self, memory_size: int = DEFAULT_MEMORY_SIZE):
        super().__init__(memory_size)

    # @intent:responsibility Z80 CPUの初期状態（全セルがゼロのZ80CpuState）を生成します。
    def _create_initial_state(self) -> Z80CpuState:
        return Z80CpuState()

    # @intent:responsibility 現在のPCからオペコードをフェッチします。PCのインクリメントはこの時点では行わず、
    #                  stepメソッド内で命令長に応じて更新します。
    def _fetch(self) -> int:
        return self._memory.read(self._state.pc)

    # @intent:responsibility フェッチしたオペコードをデコードし、Operationオブジェクトを返します。
    # @intent:rationale デコード1回につき、オペコードフェッチの回数だけRレジスタの下位7ビットを進めます（bit7は保持）。
    def _decode(self, opcode: int) -> Operation:
        state = self._state
        operation = decode_opcode(opcode, self._memory, state.pc)
        state.r = (state.r & 0x80) | ((state.r + operation.refresh_count) & 0x7F)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "PC=$%04X %-10s %s %s",
                state.pc, operation.opcode_hex, operation.mnemonic, " ".join(operation.operands)
            )
        return operation

    # @intent:responsibility デコードされた命令を実行し、Z80の状態を更新します。
    # @intent:rationale 実際の実行ロジックは`instructions`パッケージのテーブルに委譲します。
    def _execute(self, operation: Operation) -> None:
        execute_instruction(operation, self._state, self._memory)

    # --- Host API ---

    def read_register(self, register: Register) -> int:
        return self._state.get_register(register)

    def write_register(self, register: Register, value: int) -> None:
        self._state.set_register(register, value)

    def read_memory(self, address: int) -> int:
        return self._memory.read(address)

    def write_memory(self, address: int, value: int) -> None:
        self._memory.write(address, value)

    # @intent:responsibility プログラムイメージを指定アドレスから配置します。
    def load_program(self, address: int, data: Iterable[int]) -> None:
        self._memory.load(address, data)

    def get_register_map(self) -> Dict[str, int]:
        s = self._state
        return {
            "A": s.a, "F": s.f, "B": s.b, "C": s.c, "D": s.d, "E": s.e, "H": s.h, "L": s.l,
            "A'": s.a_, "F'": s.f_, "B'": s.b_, "C'": s.c_, "D'": s.d_, "E'": s.e_, "H'": s.h_, "L'": s.l_,
            "IX": s.ix, "IY": s.iy, "SP": s.sp, "PC": s.pc,
            "I": s.i, "R": s.r,
            "AF": s.af, "BC": s.bc, "DE": s.de, "HL": s.hl,
            "AF'": s.af_, "BC'": s.bc_, "DE'": s.de_, "HL'": s.hl_,
        }

    def get_flag_state(self) -> Dict[str, bool]:
        s = self._state
        return {
            "S": s.flag_s,
            "Z": s.flag_z,
            "F5": s.flag_5,
            "H": s.flag_h,
            "F3": s.flag_3,
            "PV": s.flag_pv,
            "N": s.flag_n,
            "C": s.flag_c
        }

    # @intent:responsibility レジスタファイルとメモリ全体のスナップショットを作成します。
    def take_snapshot(self) -> Snapshot:
        return Snapshot(registers=self._state.to_bytes(), memory=self._memory.dump())

    # @intent:responsibility スナップショットからレジスタファイルとメモリを復元します。
    # @intent:pre-condition スナップショットのメモリ長はこのコアのメモリサイズと一致する必要があります。
    def restore_snapshot(self, snapshot: Snapshot) -> None:
        if len(snapshot.registers) != REGISTER_BLOCK_SIZE:
            raise ValueError(
                f"Register block must be {REGISTER_BLOCK_SIZE} bytes, got {len(snapshot.registers)}."
            )
        if len(snapshot.memory) != self._memory.get_size():
            raise ValueError(
                f"Snapshot memory size {len(snapshot.memory)} does not match "
                f"core memory size {self._memory.get_size()}."
            )
        self._state = Z80CpuState.from_bytes(snapshot.registers)
        self._memory.load(0, snapshot.memory)
