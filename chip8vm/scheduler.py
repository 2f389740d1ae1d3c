"""
Fixed-rate cycle scheduler.

Accumulates elapsed wall-clock time and spends it on instruction cycles
at a fixed rate (700 Hz by default) and on timer ticks at 60 Hz, then
hands the display to the presentation backend if it changed.
"""

import logging
import time
from typing import Callable, Optional, Protocol

from .constants import DEFAULT_CYCLES_PER_SECOND, TIMER_HZ
from .cpu import Chip8CPU
from .display import Display

logger = logging.getLogger(__name__)

# Absorbs float error when the clock advances by exactly one timer period
_TIMER_EPSILON_MS = 1e-6


class Presenter(Protocol):
    def present(self, display: Display) -> None: ...


class AudioSink(Protocol):
    def set_tone(self, active: bool) -> None: ...


class InputSource(Protocol):
    def poll(self, cpu: Chip8CPU) -> None: ...


class CycleScheduler:
    """Paces a Chip8CPU against a clock.

    Args:
        cpu: the machine to drive
        presenter: receives the display whenever it is dirty
        audio: receives tone on/off level changes
        input_source: polled once before every instruction cycle
        clock: returns seconds as a float; time.perf_counter by default
        cycles_per_second: instruction rate
        timer_hz: delay/sound timer rate
    """

    def __init__(
        self,
        cpu: Chip8CPU,
        presenter: Optional[Presenter] = None,
        audio: Optional[AudioSink] = None,
        input_source: Optional[InputSource] = None,
        clock: Callable[[], float] = time.perf_counter,
        cycles_per_second: float = DEFAULT_CYCLES_PER_SECOND,
        timer_hz: float = TIMER_HZ,
    ):
        if cycles_per_second <= 0 or timer_hz <= 0:
            raise ValueError("cycle and timer rates must be positive")

        self.cpu = cpu
        self.presenter = presenter
        self.audio = audio
        self.input_source = input_source
        self.clock = clock
        self.cycles_per_second = cycles_per_second
        self.timer_hz = timer_hz
        self.ms_per_cycle = 1000.0 / cycles_per_second
        self.ms_per_timer_tick = 1000.0 / timer_hz

        self.cycle_accumulator = 0.0
        self.timer_accumulator = 0.0
        self.tone_active = False
        self.last_time = clock()

    def tick(self) -> int:
        """One pass of the loop. Returns the number of cycles executed."""
        now = self.clock()
        elapsed_ms = (now - self.last_time) * 1000.0
        self.last_time = now
        self.cycle_accumulator += elapsed_ms
        self.timer_accumulator += elapsed_ms

        cycles = 0
        while self.cycle_accumulator > self.ms_per_cycle:
            self._cycle()
            self.cycle_accumulator -= self.ms_per_cycle
            cycles += 1

        while self.timer_accumulator >= self.ms_per_timer_tick - _TIMER_EPSILON_MS:
            self.tick_timers()
            self.timer_accumulator -= self.ms_per_timer_tick

        self.present()
        return cycles

    def run_cycles(self, cycles: int):
        """Run a fixed number of cycles without consulting the clock.

        Timers tick once every cycles_per_second / timer_hz cycles, so the
        emulated time matches what the same number of cycles would take in
        real time.
        """
        cycles_per_timer_tick = self.cycles_per_second / self.timer_hz
        until_timer = cycles_per_timer_tick
        for _ in range(cycles):
            self._cycle()
            until_timer -= 1
            if until_timer <= 0:
                self.tick_timers()
                until_timer += cycles_per_timer_tick
        self.present()

    def tick_timers(self):
        self.cpu.state.timers.tick()
        self._update_tone()

    def present(self):
        display = self.cpu.state.display
        if display.dirty:
            if self.presenter is not None:
                self.presenter.present(display)
            display.dirty = False

    def _cycle(self):
        if self.input_source is not None:
            self.input_source.poll(self.cpu)
        self.cpu.step()
        # LD ST, Vx can start the tone between timer ticks
        self._update_tone()

    def _update_tone(self):
        active = self.cpu.state.timers.sound_active
        if active != self.tone_active:
            self.tone_active = active
            logger.debug("Tone %s", "on" if active else "off")
            if self.audio is not None:
                self.audio.set_tone(active)
