import logging
import os
from typing import Optional

from retro_z80_core.arch.z80.cpu import Z80Cpu
from retro_z80_core.arch.z80.state import Register
from retro_z80_core.loader.loader import IntelHexLoader, BinaryLoader
from .models import SystemConfig, CpuInitialState, ProgramImage

logger = logging.getLogger(__name__)

# @intent:constant 初期状態で指定できるレジスタ名（8ビットセルと16ビットレジスタ）。
WIDE_REGISTER_NAMES = frozenset(["af", "bc", "de", "hl", "af_", "bc_", "de_", "hl_", "ix", "iy"])
INITIAL_REGISTER_NAMES = frozenset(register.name.lower() for register in Register) | WIDE_REGISTER_NAMES

# @intent:responsibility システム構成（Config）に基づいて、CPUとメモリを生成し、プログラムと初期状態を適用します。
class SystemBuilder:
    def build_system(self, config: SystemConfig) -> Z80Cpu:
        if config.architecture.upper() != "Z80":
            raise ValueError(f"Unsupported architecture: {config.architecture}")

        cpu = Z80Cpu(config.memory_size)
        for program in config.programs:
            self.load_program(cpu, program, config.base_dir)

        # 初期状態の適用
        self.apply_initial_state(cpu, config.initial_state)
        return cpu

    # @intent:responsibility プログラムイメージ1件をCPUのメモリへロードします。
    def load_program(self, cpu: Z80Cpu, program: ProgramImage, base_dir: Optional[str] = None) -> None:
        if program.format == "inline":
            cpu.load_program(program.address, program.data)
            logger.info("Loaded %d inline bytes at $%04X", len(program.data), program.address)
            return

        path = program.path
        if base_dir and not os.path.isabs(path):
            path = os.path.join(base_dir, path)

        if program.format == "ihex":
            IntelHexLoader().load_intel_hex(path, cpu.get_memory())
        elif program.format == "bin":
            BinaryLoader().load_binary(path, cpu.get_memory(), program.address)
        else:
            raise ValueError(f"Unsupported program format: {program.format}")

    # @intent:responsibility Configで定義された初期状態をCPUに適用します。
    # @intent:pre-condition レジスタ名はZ80CpuStateの属性名（a, hl, ix, a_ など）である必要があります。
    def apply_initial_state(self, cpu: Z80Cpu, config_state: CpuInitialState) -> None:
        """
        CPUをリセットし、Configから指定された初期値を適用します。
        """
        cpu.reset()
        state = cpu.get_state()
        for reg_name in ("pc", "sp"):
            value = getattr(config_state, reg_name)
            if not 0 <= value <= 0xFFFF:
                raise ValueError(f"Value {value:#x} out of range for register {reg_name}")
            setattr(state, reg_name, value)
        for reg_name, value in config_state.registers.items():
            if reg_name not in INITIAL_REGISTER_NAMES:
                raise ValueError(f"Unknown register in initial_state: {reg_name}")
            limit = 0xFFFF if reg_name in WIDE_REGISTER_NAMES else 0xFF
            if not 0 <= value <= limit:
                raise ValueError(f"Value {value:#x} out of range for register {reg_name}")
            setattr(state, reg_name, value)
        # バンク選択はレジスタ設定の後に適用する (a..l は表バンクのセルを指す)
        state.alternate = config_state.alternate
