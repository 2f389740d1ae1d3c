"""Shared fixtures for the CHIP-8 tests."""

import pytest

from chip8vm.cpu import Chip8CPU


def program(*words: int) -> bytes:
    """Assemble 16-bit instruction words into a big-endian program image"""
    return b"".join(word.to_bytes(2, "big") for word in words)


class FakeClock:
    """Manually advanced clock returning seconds"""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def make_cpu():
    """Factory: a seeded CPU with the given instruction words loaded at 0x200"""
    def factory(*words: int, seed: int = 1234) -> Chip8CPU:
        cpu = Chip8CPU(seed=seed)
        cpu.load_program(program(*words))
        return cpu
    return factory


@pytest.fixture
def clock():
    return FakeClock()
