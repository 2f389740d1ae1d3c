"""Runtime options for an emulator session."""

from dataclasses import dataclass
from typing import Optional

from .constants import DEFAULT_CYCLES_PER_SECOND, DEFAULT_SCALE, TIMER_HZ


@dataclass
class EmulatorConfig:
    """Options gathered from the command line.

    Attributes:
        rom_path: program image to load at 0x200
        cycles_per_second: instruction rate
        timer_hz: delay/sound timer rate
        scale: window pixels per CHIP-8 pixel
        seed: seed for the RND instruction, None for OS entropy
        headless_cycles: run this many cycles without a window, None for interactive
        screenshot: PNG path written after a headless run
        debug: log at DEBUG level
        log_file: also write the log to this file
    """
    rom_path: str
    cycles_per_second: float = DEFAULT_CYCLES_PER_SECOND
    timer_hz: float = TIMER_HZ
    scale: int = DEFAULT_SCALE
    seed: Optional[int] = None
    headless_cycles: Optional[int] = None
    screenshot: Optional[str] = None
    debug: bool = False
    log_file: Optional[str] = None

    @property
    def headless(self) -> bool:
        return self.headless_cycles is not None
