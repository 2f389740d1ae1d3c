"""
Delay and sound countdown timers.
Both count down once per 60 Hz tick, independently of the instruction rate.
"""

import logging

logger = logging.getLogger(__name__)


class Timers:
    """The two 8-bit countdown counters"""

    def __init__(self):
        self.delay = 0
        self.sound = 0

    def reset(self):
        self.delay = 0
        self.sound = 0

    @property
    def sound_active(self) -> bool:
        return self.sound > 0

    def tick(self) -> bool:
        """Decrement both counters, clamped at 0.

        Returns True when the sound counter expired on this tick (went from
        1 to 0), the moment the original hardware sounded its beep.
        """
        if self.delay > 0:
            self.delay -= 1

        expired = False
        if self.sound > 0:
            if self.sound == 1:
                expired = True
                logger.debug("BEEP: sound timer expired")
            self.sound -= 1
        return expired
