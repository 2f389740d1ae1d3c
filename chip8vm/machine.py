"""
CHIP-8 machine state.
Memory, registers, call stack, timers, display buffer and input latch.
The state has no instruction semantics of its own; see cpu.py.
"""

import logging
from typing import Optional

import numpy as np

from .constants import (
    ADDRESS_MASK, CHIP8_FONT, FONT_SIZE, FONT_START, MAX_PROGRAM_SIZE,
    MEMORY_SIZE, PROGRAM_START, REGISTER_COUNT, STACK_SIZE,
)
from .display import Display
from .errors import CapacityExceeded, StackOverflow, StackUnderflow
from .keypad import Keypad
from .timers import Timers

logger = logging.getLogger(__name__)


class MachineState:
    """All mutable interpreter data for one CHIP-8 machine.

    Attributes:
        memory: 4096 bytes; font at 0x000-0x04F, program from 0x200
        registers: V0-VF, VF doubles as carry/borrow/collision flag
        index_register: 16-bit address pointer (I)
        program_counter: address of the next instruction, kept within 12 bits
        stack: 16 return addresses
        stack_pointer: number of occupied stack slots (0-16)
        timers: delay and sound counters
        display: 64x32 bitmap
        keypad: 16 key states and the key-wait latch
        rng: random source for the RND instruction
    """

    def __init__(self, seed: Optional[int] = None):
        self.memory = np.zeros(MEMORY_SIZE, dtype=np.uint8)
        self.registers = np.zeros(REGISTER_COUNT, dtype=np.uint8)
        self.stack = np.zeros(STACK_SIZE, dtype=np.uint16)
        self.timers = Timers()
        self.display = Display()
        self.keypad = Keypad()
        self.initialize(seed)

    def initialize(self, seed: Optional[int] = None):
        """Reset to power-on state: everything zeroed except the font table"""
        self.memory.fill(0)
        self.registers.fill(0)
        self.stack.fill(0)
        self.stack_pointer = 0
        self.index_register = 0
        self.program_counter = PROGRAM_START
        self.timers.reset()
        self.display.pixels.fill(0)
        self.display.dirty = False
        self.keypad.reset()

        # Load font into memory
        self.memory[FONT_START:FONT_START + FONT_SIZE] = np.frombuffer(CHIP8_FONT, dtype=np.uint8)

        self.rng = np.random.default_rng(seed)

    def load_program(self, program: bytes):
        """Copy a program image into memory starting at 0x200"""
        program = bytes(program)
        if len(program) > MAX_PROGRAM_SIZE:
            raise CapacityExceeded(len(program), MAX_PROGRAM_SIZE)

        self.memory[PROGRAM_START:PROGRAM_START + len(program)] = np.frombuffer(program, dtype=np.uint8)

        if len(program) >= 2:
            logger.info("Loaded ROM: %d bytes, first instruction 0x%04X", len(program), self.fetch_word(PROGRAM_START))
        else:
            logger.info("Loaded ROM: %d bytes", len(program))

    # Memory access wraps at 4 KB

    def read_byte(self, address: int) -> int:
        return int(self.memory[address & ADDRESS_MASK])

    def write_byte(self, address: int, value: int):
        self.memory[address & ADDRESS_MASK] = value & 0xFF

    def read_block(self, address: int, length: int) -> bytes:
        return bytes(self.read_byte(address + offset) for offset in range(length))

    def fetch_word(self, address: int) -> int:
        """Big-endian 16-bit word at address"""
        return (self.read_byte(address) << 8) | self.read_byte(address + 1)

    def set_pc(self, address: int):
        self.program_counter = address & ADDRESS_MASK

    # Registers

    def get_register(self, index: int) -> int:
        return int(self.registers[index])

    def set_register(self, index: int, value: int):
        self.registers[index] = value & 0xFF

    # Call stack

    def push(self, address: int, fault_address: int):
        if self.stack_pointer >= STACK_SIZE:
            raise StackOverflow("Stack overflow", fault_address)
        self.stack[self.stack_pointer] = address
        self.stack_pointer += 1

    def pop(self, fault_address: int) -> int:
        if self.stack_pointer <= 0:
            raise StackUnderflow("Return with empty stack", fault_address)
        self.stack_pointer -= 1
        return int(self.stack[self.stack_pointer])

    def dump_registers(self) -> dict:
        return {f"V{i:X}": int(value) for i, value in enumerate(self.registers)}

    def __str__(self) -> str:
        regs = " ".join(f"{k}={v:02X}" for k, v in self.dump_registers().items())
        return (f"PC=0x{self.program_counter:03X} I=0x{self.index_register:03X} "
                f"SP={self.stack_pointer} DT={self.timers.delay} ST={self.timers.sound} {regs}")
