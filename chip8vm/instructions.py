"""
Instruction decoding.

A 16-bit word decodes to exactly one Instruction. Words that match no
defined pattern decode to Op.UNKNOWN instead of raising, so the executor
can log them and carry on.

Field layout (word = 0xOXYN):
    O    top nibble, selects the instruction group
    X    register index, bits 8-11
    Y    register index, bits 4-7
    N    low nibble
    NN   low byte
    NNN  low 12 bits (address)
"""

from dataclasses import dataclass
from enum import Enum


class Op(Enum):
    CLS = "00E0"
    RET = "00EE"
    JP = "1NNN"
    CALL = "2NNN"
    SE_BYTE = "3XNN"
    SNE_BYTE = "4XNN"
    SE_REG = "5XY0"
    LD_BYTE = "6XNN"
    ADD_BYTE = "7XNN"
    LD_REG = "8XY0"
    OR = "8XY1"
    AND = "8XY2"
    XOR = "8XY3"
    ADD_REG = "8XY4"
    SUB = "8XY5"
    SHR = "8XY6"
    SUBN = "8XY7"
    SHL = "8XYE"
    SNE_REG = "9XY0"
    LD_I = "ANNN"
    JP_V0 = "BNNN"
    RND = "CXNN"
    DRW = "DXYN"
    SKP = "EX9E"
    SKNP = "EXA1"
    LD_VX_DT = "FX07"
    LD_VX_K = "FX0A"
    LD_DT_VX = "FX15"
    LD_ST_VX = "FX18"
    ADD_I_VX = "FX1E"
    LD_F_VX = "FX29"
    LD_B_VX = "FX33"
    LD_MEM_VX = "FX55"
    LD_VX_MEM = "FX65"
    UNKNOWN = "????"


# Sub-dispatch tables for the groups that share a top nibble
_SYSTEM_OPS = {0x0E0: Op.CLS, 0x0EE: Op.RET}

_ALU_OPS = {
    0x0: Op.LD_REG,
    0x1: Op.OR,
    0x2: Op.AND,
    0x3: Op.XOR,
    0x4: Op.ADD_REG,
    0x5: Op.SUB,
    0x6: Op.SHR,
    0x7: Op.SUBN,
    0xE: Op.SHL,
}

_KEY_OPS = {0x9E: Op.SKP, 0xA1: Op.SKNP}

_MISC_OPS = {
    0x07: Op.LD_VX_DT,
    0x0A: Op.LD_VX_K,
    0x15: Op.LD_DT_VX,
    0x18: Op.LD_ST_VX,
    0x1E: Op.ADD_I_VX,
    0x29: Op.LD_F_VX,
    0x33: Op.LD_B_VX,
    0x55: Op.LD_MEM_VX,
    0x65: Op.LD_VX_MEM,
}

# Groups with a single instruction each
_SIMPLE_OPS = {
    0x1: Op.JP,
    0x2: Op.CALL,
    0x3: Op.SE_BYTE,
    0x4: Op.SNE_BYTE,
    0x6: Op.LD_BYTE,
    0x7: Op.ADD_BYTE,
    0xA: Op.LD_I,
    0xB: Op.JP_V0,
    0xC: Op.RND,
    0xD: Op.DRW,
}

_MNEMONICS = {
    Op.CLS: "CLS",
    Op.RET: "RET",
    Op.JP: "JP {nnn:03X}",
    Op.CALL: "CALL {nnn:03X}",
    Op.SE_BYTE: "SE V{x:X}, {nn:02X}",
    Op.SNE_BYTE: "SNE V{x:X}, {nn:02X}",
    Op.SE_REG: "SE V{x:X}, V{y:X}",
    Op.LD_BYTE: "LD V{x:X}, {nn:02X}",
    Op.ADD_BYTE: "ADD V{x:X}, {nn:02X}",
    Op.LD_REG: "LD V{x:X}, V{y:X}",
    Op.OR: "OR V{x:X}, V{y:X}",
    Op.AND: "AND V{x:X}, V{y:X}",
    Op.XOR: "XOR V{x:X}, V{y:X}",
    Op.ADD_REG: "ADD V{x:X}, V{y:X}",
    Op.SUB: "SUB V{x:X}, V{y:X}",
    Op.SHR: "SHR V{x:X}",
    Op.SUBN: "SUBN V{x:X}, V{y:X}",
    Op.SHL: "SHL V{x:X}",
    Op.SNE_REG: "SNE V{x:X}, V{y:X}",
    Op.LD_I: "LD I, {nnn:03X}",
    Op.JP_V0: "JP V0, {nnn:03X}",
    Op.RND: "RND V{x:X}, {nn:02X}",
    Op.DRW: "DRW V{x:X}, V{y:X}, {n:X}",
    Op.SKP: "SKP V{x:X}",
    Op.SKNP: "SKNP V{x:X}",
    Op.LD_VX_DT: "LD V{x:X}, DT",
    Op.LD_VX_K: "LD V{x:X}, K",
    Op.LD_DT_VX: "LD DT, V{x:X}",
    Op.LD_ST_VX: "LD ST, V{x:X}",
    Op.ADD_I_VX: "ADD I, V{x:X}",
    Op.LD_F_VX: "LD F, V{x:X}",
    Op.LD_B_VX: "LD B, V{x:X}",
    Op.LD_MEM_VX: "LD [I], V{x:X}",
    Op.LD_VX_MEM: "LD V{x:X}, [I]",
    Op.UNKNOWN: "DW {word:04X}",
}


@dataclass(frozen=True)
class Instruction:
    """A decoded instruction word and its operand fields"""
    op: Op
    word: int
    x: int
    y: int
    n: int
    nn: int
    nnn: int

    def mnemonic(self) -> str:
        return _MNEMONICS[self.op].format(
            word=self.word, x=self.x, y=self.y, n=self.n, nn=self.nn, nnn=self.nnn
        )


def decode_op(word: int) -> Op:
    group = (word & 0xF000) >> 12
    n = word & 0x000F
    nn = word & 0x00FF
    nnn = word & 0x0FFF

    if group in _SIMPLE_OPS:
        return _SIMPLE_OPS[group]
    if group == 0x0:
        return _SYSTEM_OPS.get(nnn, Op.UNKNOWN)
    if group == 0x5:
        return Op.SE_REG if n == 0 else Op.UNKNOWN
    if group == 0x8:
        return _ALU_OPS.get(n, Op.UNKNOWN)
    if group == 0x9:
        return Op.SNE_REG if n == 0 else Op.UNKNOWN
    if group == 0xE:
        return _KEY_OPS.get(nn, Op.UNKNOWN)
    return _MISC_OPS.get(nn, Op.UNKNOWN)


def decode(word: int) -> Instruction:
    """Decode a 16-bit instruction word"""
    word &= 0xFFFF
    return Instruction(
        op=decode_op(word),
        word=word,
        x=(word & 0x0F00) >> 8,
        y=(word & 0x00F0) >> 4,
        n=word & 0x000F,
        nn=word & 0x00FF,
        nnn=word & 0x0FFF,
    )
