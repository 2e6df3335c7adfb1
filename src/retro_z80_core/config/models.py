from dataclasses import dataclass, field
from typing import Dict, List, Optional

from retro_z80_core.transport.memory import DEFAULT_MEMORY_SIZE

@dataclass
class ProgramImage:
    format: str = "bin"  # "ihex", "bin", "inline"
    path: Optional[str] = None
    address: int = 0x0000
    data: List[int] = field(default_factory=list)  # format == "inline" の場合のみ

@dataclass
class CpuInitialState:
    pc: int = 0x0000
    sp: int = 0x0000
    alternate: bool = False
    registers: Dict[str, int] = field(default_factory=dict)

@dataclass
class SystemConfig:
    architecture: str = "Z80"
    memory_size: int = DEFAULT_MEMORY_SIZE
    initial_state: CpuInitialState = field(default_factory=CpuInitialState)
    programs: List[ProgramImage] = field(default_factory=list)
    base_dir: Optional[str] = None  # 相対パスの解決基準（設定ファイルのディレクトリ）
