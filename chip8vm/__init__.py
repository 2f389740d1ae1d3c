"""
chip8vm: a CHIP-8 virtual machine.

Modules:
    machine: memory, registers, stack, timers, display and keypad state
    instructions: typed decoding of 16-bit instruction words
    cpu: the fetch-decode-execute engine
    scheduler: fixed-rate cycle and timer pacing
    frontend: tkinter window, keyboard and bell
"""

__version__ = "0.1.0"

from .cpu import Chip8CPU
from .display import Display
from .errors import (
    CapacityExceeded, Chip8Error, FrontendError, SourceUnavailable,
    StackFault, StackOverflow, StackUnderflow,
)
from .instructions import Instruction, Op, decode
from .machine import MachineState
from .scheduler import CycleScheduler

__all__ = [
    "Chip8CPU", "Display", "MachineState", "CycleScheduler",
    "Instruction", "Op", "decode",
    "Chip8Error", "CapacityExceeded", "SourceUnavailable",
    "StackFault", "StackOverflow", "StackUnderflow", "FrontendError",
]
