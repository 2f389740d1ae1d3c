"""Exceptions raised by the CHIP-8 virtual machine and its collaborators."""


class Chip8Error(Exception):
    """Base class for all emulator errors."""


class SourceUnavailable(Chip8Error):
    """The program image could not be read."""


class CapacityExceeded(Chip8Error):
    """The program image does not fit between 0x200 and the end of memory."""

    def __init__(self, size: int, capacity: int):
        super().__init__(f"ROM too large: {size} bytes, max {capacity}")
        self.size = size
        self.capacity = capacity


class StackFault(Chip8Error):
    """A call or return left the 16-slot call stack."""

    def __init__(self, message: str, address: int):
        super().__init__(f"{message} at PC=0x{address:03X}")
        self.address = address


class StackOverflow(StackFault):
    pass


class StackUnderflow(StackFault):
    pass


class FrontendError(Chip8Error):
    """The presentation backend failed to start."""
