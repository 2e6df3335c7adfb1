# src/retro_z80_core/runner.py
"""
ヘッドレス実行のエントリポイント。
マシン構成ファイルからコアを組み立て、HALTまたは命令数の上限まで実行してレジスタを表示します。
"""
import argparse
import logging
import sys
from typing import List, Optional

from retro_z80_core.arch.z80.cpu import Z80Cpu
from retro_z80_core.config.loader import ConfigLoader
from retro_z80_core.config.builder import SystemBuilder

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 1_000_000

EXIT_HALTED = 0
EXIT_STEP_LIMIT = 1
EXIT_ERROR = 2

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a Z80 machine description until HALT")
    parser.add_argument('config', help='Machine description file (.yaml)')
    parser.add_argument('--max-steps', type=int, default=DEFAULT_MAX_STEPS,
                        help=f'Maximum number of instructions to execute (default: {DEFAULT_MAX_STEPS})')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log every executed instruction')
    return parser

# @intent:responsibility レジスタとフラグの最終状態を人が読める形で出力します。
def format_state(cpu: Z80Cpu) -> str:
    registers = cpu.get_register_map()
    lines = [
        "  ".join(f"{name}={registers[name]:04X}" for name in ("AF", "BC", "DE", "HL")),
        "  ".join(f"{name}={registers[name]:04X}" for name in ("AF'", "BC'", "DE'", "HL'")),
        "  ".join(f"{name}={registers[name]:04X}" for name in ("IX", "IY", "SP", "PC")),
        f"I={registers['I']:02X}  R={registers['R']:02X}",
        " ".join(name if is_set else "-" for name, is_set in cpu.get_flag_state().items()),
    ]
    return "\n".join(lines)

# @intent:responsibility 構成ファイルからマシンを組み立てて実行し、終了コードを返します。
def main(argv: Optional[List[str]] = None) -> int:
    """
    HALTで停止した場合は0、命令数の上限に達した場合は1、構成エラーの場合は2を返します。
    """
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s"
    )

    try:
        config = ConfigLoader().load_from_file(args.config)
        cpu = SystemBuilder().build_system(config)
    except (OSError, ValueError) as e:
        logger.error("Failed to build machine from %s: %s", args.config, e)
        return EXIT_ERROR

    executed = cpu.run(args.max_steps)
    print(format_state(cpu))

    if cpu.get_state().halted:
        logger.info("Halted after %d instructions", executed)
        return EXIT_HALTED
    logger.warning("Step limit of %d reached before HALT (PC=$%04X)", args.max_steps, cpu.get_state().pc)
    return EXIT_STEP_LIMIT

if __name__ == '__main__':
    sys.exit(main())
