"""
Register-to-register ALU operations (the 8XYN group).

Each function takes the two 8-bit operands and returns (result, flag).
The flag is the value to store in VF, or None when the operation leaves
VF alone. The caller writes the flag to VF first and then the result to VX, so
with X = F the result wins.
"""

from typing import Optional, Tuple

AluResult = Tuple[int, Optional[int]]


def load(vx: int, vy: int) -> AluResult:
    return vy, None


def bitwise_or(vx: int, vy: int) -> AluResult:
    return vx | vy, None


def bitwise_and(vx: int, vy: int) -> AluResult:
    return vx & vy, None


def bitwise_xor(vx: int, vy: int) -> AluResult:
    return vx ^ vy, None


def add(vx: int, vy: int) -> AluResult:
    """VX + VY; flag is the carry out of bit 7"""
    total = vx + vy
    return total & 0xFF, 1 if total > 0xFF else 0


def sub(vx: int, vy: int) -> AluResult:
    """VX - VY; flag is NOT borrow (1 when VX >= VY)"""
    return (vx - vy) & 0xFF, 1 if vx >= vy else 0


def subn(vx: int, vy: int) -> AluResult:
    """VY - VX; flag is NOT borrow (1 when VY >= VX)"""
    return (vy - vx) & 0xFF, 1 if vy >= vx else 0


def shift_right(vx: int, vy: int) -> AluResult:
    """VX >> 1; flag is the bit shifted out. VY is ignored."""
    return vx >> 1, vx & 0x1


def shift_left(vx: int, vy: int) -> AluResult:
    """VX << 1; flag is the bit shifted out. VY is ignored."""
    return (vx << 1) & 0xFF, (vx & 0x80) >> 7
