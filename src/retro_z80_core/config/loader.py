import logging
import os
from typing import Any, Dict, List

import yaml

from .models import SystemConfig, CpuInitialState, ProgramImage

logger = logging.getLogger(__name__)

PROGRAM_FORMATS = ("ihex", "bin")

class ConfigLoader:
    def load_from_file(self, path: str) -> SystemConfig:
        with open(path, 'r') as f:
            config = self._parse_config(self._safe_load(f))
        config.base_dir = os.path.dirname(os.path.abspath(path))
        logger.info("Loaded machine config %s (%s, %d bytes of memory)",
                    path, config.architecture, config.memory_size)
        return config

    def load_from_string(self, text: str) -> SystemConfig:
        return self._parse_config(self._safe_load(text))

    def _safe_load(self, stream: Any) -> Any:
        try:
            return yaml.safe_load(stream)
        except yaml.YAMLError as e:
            raise ValueError(f"Malformed YAML: {e}") from e

    def _parse_config(self, data: Any) -> SystemConfig:
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Config root must be a mapping, got {type(data).__name__}")

        arch = str(data.get("architecture", "Z80"))
        memory_size = self._parse_int(data.get("memory_size", SystemConfig.memory_size))
        if memory_size <= 0:
            raise ValueError(f"memory_size must be positive, got {memory_size}")

        # Parse Initial State
        initial_state_data = data.get("initial_state") or {}
        registers = {
            str(name).lower(): self._parse_int(value)
            for name, value in (initial_state_data.get("registers") or {}).items()
        }
        initial_state = CpuInitialState(
            pc=self._parse_int(initial_state_data.get("pc", 0)),
            sp=self._parse_int(initial_state_data.get("sp", 0)),
            alternate=bool(initial_state_data.get("alternate", False)),
            registers=registers
        )

        return SystemConfig(
            architecture=arch,
            memory_size=memory_size,
            initial_state=initial_state,
            programs=self._parse_programs(data.get("programs") or [])
        )

    def _parse_programs(self, entries: List[Dict[str, Any]]) -> List[ProgramImage]:
        programs = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise ValueError(f"Program entry must be a mapping: {entry!r}")
            if "data" in entry:
                programs.append(ProgramImage(
                    format="inline",
                    address=self._parse_int(entry.get("address", 0)),
                    data=[self._parse_int(value) for value in entry["data"]]
                ))
                continue

            if "path" not in entry:
                raise ValueError(f"Program entry needs 'path' or 'data': {entry}")
            fmt = str(entry.get("format", "bin")).lower()
            if fmt not in PROGRAM_FORMATS:
                raise ValueError(f"Unsupported program format: {fmt}")
            programs.append(ProgramImage(
                format=fmt,
                path=str(entry["path"]),
                address=self._parse_int(entry.get("address", 0))
            ))
        return programs

    # @intent:utility_function 整数値、"0x"/"$"始まりの16進文字列、10進文字列を整数に変換します。
    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            text = value.strip()
            try:
                if text.lower().startswith("0x"):
                    return int(text, 16)
                if text.startswith("$"):
                    return int(text[1:], 16)
                return int(text)
            except ValueError as e:
                raise ValueError(f"Invalid integer format: {value}") from e
        raise ValueError(f"Invalid integer format: {value}")
