"""
Command line entry point.

Usage:
    chip8vm ROM                       play ROM in a window
    chip8vm ROM --headless 5000       run 5000 cycles and print the display
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config import EmulatorConfig
from .constants import DEFAULT_CYCLES_PER_SECOND, DEFAULT_SCALE
from .cpu import Chip8CPU
from .errors import Chip8Error, FrontendError
from .rom import read_rom, save_screenshot
from .scheduler import CycleScheduler

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors"""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="chip8vm",
        description="CHIP-8 virtual machine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Keypad layout:
    1 2 3 4    ->    1 2 3 C
    Q W E R    ->    4 5 6 D
    A S D F    ->    7 8 9 E
    Z X C V    ->    A 0 B F
Press ESC or close the window to quit.
        """
    )
    parser.add_argument("rom", help="Path to the program image (.ch8)")
    parser.add_argument("--speed", type=_positive_int, default=DEFAULT_CYCLES_PER_SECOND,
                        help=f"Instructions per second. Default: {DEFAULT_CYCLES_PER_SECOND}")
    parser.add_argument("--scale", type=_positive_int, default=DEFAULT_SCALE,
                        help=f"Window pixels per CHIP-8 pixel. Default: {DEFAULT_SCALE}")
    parser.add_argument("--seed", type=int, help="Seed for the random number instruction")
    parser.add_argument("--headless", type=_positive_int, metavar="CYCLES",
                        help="Run CYCLES instructions without a window and print the display")
    parser.add_argument("--screenshot", type=str, metavar="PATH",
                        help="Save the final display as PNG (headless mode)")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument("--log-file", type=str, help="Also write the log to this file")
    return parser


def parse_config(argv: Optional[List[str]] = None) -> EmulatorConfig:
    args = build_parser().parse_args(argv)
    return EmulatorConfig(
        rom_path=args.rom,
        cycles_per_second=args.speed,
        scale=args.scale,
        seed=args.seed,
        headless_cycles=args.headless,
        screenshot=args.screenshot,
        debug=args.debug,
        log_file=args.log_file,
    )


def setup_logging(config: EmulatorConfig):
    level = logging.DEBUG if config.debug else logging.WARNING
    handlers = [logging.StreamHandler()]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file, mode='w', encoding='utf-8'))
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def run_headless(config: EmulatorConfig, cpu: Chip8CPU):
    scheduler = CycleScheduler(cpu, cycles_per_second=config.cycles_per_second, timer_hz=config.timer_hz)
    scheduler.run_cycles(config.headless_cycles)

    print(cpu.state.display.render_text())
    print(cpu.state)
    if config.screenshot:
        save_screenshot(cpu.state.display, config.screenshot)


def run_interactive(config: EmulatorConfig, cpu: Chip8CPU):
    # Imported here so headless runs work without a Tk-enabled Python
    try:
        from .frontend import TkFrontend
    except ImportError as e:
        raise FrontendError(f"Interactive mode needs tkinter and Pillow's ImageTk: {e}") from e

    frontend = TkFrontend(scale=config.scale, title=f"CHIP-8: {config.rom_path}")
    scheduler = CycleScheduler(
        cpu,
        presenter=frontend,
        audio=frontend,
        input_source=frontend,
        cycles_per_second=config.cycles_per_second,
        timer_hz=config.timer_hz,
    )
    frontend.run(scheduler)


def main(argv: Optional[List[str]] = None) -> int:
    config = parse_config(argv)
    setup_logging(config)

    cpu = None
    try:
        cpu = Chip8CPU(seed=config.seed)
        cpu.load_program(read_rom(config.rom_path))

        if config.headless:
            run_headless(config, cpu)
        else:
            run_interactive(config, cpu)
    except Chip8Error as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass

    if cpu is not None:
        logger.info("Execution finished: %s", cpu.get_stats())
    return 0


if __name__ == "__main__":
    sys.exit(main())
