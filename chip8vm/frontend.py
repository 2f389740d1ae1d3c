"""
tkinter window for interactive play.

Implements the three collaborator interfaces the scheduler talks to:
present() for the bitmap, set_tone() for audio and poll() for key input.
"""

import logging
import tkinter as tk
from collections import deque
from typing import Deque, Set, Tuple

from PIL import Image, ImageTk

from .constants import DEFAULT_SCALE, DISPLAY_HEIGHT, DISPLAY_WIDTH, KEY_MAPPING
from .cpu import Chip8CPU
from .display import Display
from .errors import Chip8Error, FrontendError
from .scheduler import CycleScheduler

logger = logging.getLogger(__name__)


class KeyEventQueue:
    """Buffers keyboard edges between scheduler cycles.

    Held keys are tracked so that keyboard autorepeat does not turn into
    a stream of fresh presses.
    """

    def __init__(self):
        self.events: Deque[Tuple[int, bool]] = deque()
        self.pressed_keys: Set[int] = set()

    def key_press(self, keysym: str):
        chip8_key = KEY_MAPPING.get(keysym.lower())
        if chip8_key is not None and chip8_key not in self.pressed_keys:
            self.pressed_keys.add(chip8_key)
            self.events.append((chip8_key, True))
            logger.debug("Key pressed: %s -> CHIP-8 key 0x%X", keysym, chip8_key)

    def key_release(self, keysym: str):
        chip8_key = KEY_MAPPING.get(keysym.lower())
        if chip8_key is not None and chip8_key in self.pressed_keys:
            self.pressed_keys.remove(chip8_key)
            self.events.append((chip8_key, False))
            logger.debug("Key released: %s -> CHIP-8 key 0x%X", keysym, chip8_key)

    def poll(self, cpu: Chip8CPU):
        while self.events:
            key, pressed = self.events.popleft()
            cpu.set_key(key, pressed)


class TkFrontend:
    """Window, keyboard and bell for one emulator session"""

    def __init__(self, scale: int = DEFAULT_SCALE, title: str = "CHIP-8"):
        self.scale = scale
        self.keys = KeyEventQueue()
        self._window_closing = False

        try:
            self.root = tk.Tk()
        except tk.TclError as e:
            raise FrontendError(f"Could not open display window: {e}") from e

        self.root.title(title)
        self.root.resizable(False, False)

        blank = Image.new('L', (DISPLAY_WIDTH * scale, DISPLAY_HEIGHT * scale), 0)
        self._photo = ImageTk.PhotoImage(blank)
        self.label = tk.Label(self.root, image=self._photo, borderwidth=0, bg='black')
        self.label.pack()

        self.root.bind('<KeyPress>', self._on_key_press)
        self.root.bind('<KeyRelease>', self._on_key_release)
        self.root.protocol("WM_DELETE_WINDOW", self.close)
        self.root.focus_set()

    def _on_key_press(self, event):
        if self._window_closing:
            return
        if event.keysym.lower() == 'escape':
            self.close()
        else:
            self.keys.key_press(event.keysym)

    def _on_key_release(self, event):
        if not self._window_closing:
            self.keys.key_release(event.keysym)

    # Scheduler collaborators

    def poll(self, cpu: Chip8CPU):
        self.keys.poll(cpu)

    def present(self, display: Display):
        image = Image.fromarray(display.as_image(self.scale))
        self._photo = ImageTk.PhotoImage(image)
        self.label.configure(image=self._photo)

    def set_tone(self, active: bool):
        # Tk only offers the system bell, so ring it when the tone starts
        if active:
            self.root.bell()

    # Main loop

    def close(self):
        """Safely close the window and stop all callbacks"""
        if self._window_closing:
            return
        self._window_closing = True
        self.root.quit()
        self.root.destroy()

    def run(self, scheduler: CycleScheduler):
        """Drive the scheduler from the Tk event loop until the window closes.

        Tk swallows exceptions raised inside callbacks, so an emulator error
        closes the window and is re-raised once mainloop() returns.
        """
        errors = []

        def update():
            if self._window_closing:
                return
            try:
                scheduler.tick()
            except Chip8Error as e:
                errors.append(e)
                self.close()
                return
            self.root.after(1, update)

        self.root.after(1, update)
        try:
            self.root.mainloop()
        finally:
            self._window_closing = True

        if errors:
            raise errors[0]
