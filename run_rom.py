#!/usr/bin/env python3
"""
Run a CHIP-8 ROM
Opens the ROM in a window with keyboard input, or runs it headless.

Usage:
    python run_rom.py games/pong.ch8
    python run_rom.py games/pong.ch8 --headless 10000 --screenshot output/pong.png
"""

import sys

from chip8vm.cli import main

if __name__ == "__main__":
    sys.exit(main())
