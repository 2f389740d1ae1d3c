"""
16-key input latch with the blocking "wait for key" state machine.
"""

from enum import Enum
from typing import Optional

import numpy as np

from .constants import KEYPAD_SIZE


class KeypadMode(Enum):
    NORMAL = "normal"
    WAITING_FOR_KEY = "waiting_for_key"


class Keypad:
    """Key states 0x0-0xF plus the register captured by a pending key wait.

    While in WAITING_FOR_KEY the CPU issues no instructions. The first
    key-down event returns to NORMAL and hands back the register that
    should receive the key index.
    """

    def __init__(self):
        self.keys = np.zeros(KEYPAD_SIZE, dtype=np.uint8)
        self.mode = KeypadMode.NORMAL
        self.wait_register = 0

    def reset(self):
        self.keys.fill(0)
        self.mode = KeypadMode.NORMAL
        self.wait_register = 0

    @property
    def waiting(self) -> bool:
        return self.mode is KeypadMode.WAITING_FOR_KEY

    def is_pressed(self, key: int) -> bool:
        return bool(self.keys[key & 0xF])

    def begin_wait(self, register: int):
        self.mode = KeypadMode.WAITING_FOR_KEY
        self.wait_register = register

    def set_key(self, key: int, pressed: bool) -> Optional[int]:
        """Record a press/release edge for key (0-F).

        Returns the register waiting for this key if the event ended a key
        wait, otherwise None. Releases never end a wait.
        """
        if not 0 <= key < KEYPAD_SIZE:
            raise ValueError(f"Invalid key index: {key}")

        self.keys[key] = 1 if pressed else 0

        if pressed and self.waiting:
            self.mode = KeypadMode.NORMAL
            return self.wait_register
        return None
