"""
CHIP-8 instruction executor.

One call to step() fetches the word at PC, advances PC by 2, decodes it
and runs the matching handler against the machine state. Handlers that
jump or skip overwrite or add to that default advance.
"""

import logging
from collections import Counter
from typing import Callable, Dict, Optional

from . import alu
from .constants import FLAG_REGISTER, FONT_GLYPH_SIZE, FONT_START
from .errors import StackFault
from .instructions import Instruction, Op, decode
from .machine import MachineState

logger = logging.getLogger(__name__)

_ALU_FUNCTIONS = {
    Op.LD_REG: alu.load,
    Op.OR: alu.bitwise_or,
    Op.AND: alu.bitwise_and,
    Op.XOR: alu.bitwise_xor,
    Op.ADD_REG: alu.add,
    Op.SUB: alu.sub,
    Op.SHR: alu.shift_right,
    Op.SUBN: alu.subn,
    Op.SHL: alu.shift_left,
}


class Chip8CPU:
    """
    Fetch-decode-execute engine for a single CHIP-8 machine.
    Unknown instructions are logged and skipped; stack faults raise.
    """

    def __init__(self, state: Optional[MachineState] = None, seed: Optional[int] = None):
        self.state = state if state is not None else MachineState(seed=seed)
        self.stats = Counter()
        self.current_address = self.state.program_counter
        self._handlers: Dict[Op, Callable[[Instruction], None]] = {
            Op.CLS: self._op_cls,
            Op.RET: self._op_ret,
            Op.JP: self._op_jp,
            Op.CALL: self._op_call,
            Op.SE_BYTE: self._op_se_byte,
            Op.SNE_BYTE: self._op_sne_byte,
            Op.SE_REG: self._op_se_reg,
            Op.LD_BYTE: self._op_ld_byte,
            Op.ADD_BYTE: self._op_add_byte,
            Op.SNE_REG: self._op_sne_reg,
            Op.LD_I: self._op_ld_i,
            Op.JP_V0: self._op_jp_v0,
            Op.RND: self._op_rnd,
            Op.DRW: self._op_drw,
            Op.SKP: self._op_skp,
            Op.SKNP: self._op_sknp,
            Op.LD_VX_DT: self._op_ld_vx_dt,
            Op.LD_VX_K: self._op_ld_vx_k,
            Op.LD_DT_VX: self._op_ld_dt_vx,
            Op.LD_ST_VX: self._op_ld_st_vx,
            Op.ADD_I_VX: self._op_add_i_vx,
            Op.LD_F_VX: self._op_ld_f_vx,
            Op.LD_B_VX: self._op_ld_b_vx,
            Op.LD_MEM_VX: self._op_ld_mem_vx,
            Op.LD_VX_MEM: self._op_ld_vx_mem,
            Op.UNKNOWN: self._op_unknown,
        }
        for op in _ALU_FUNCTIONS:
            self._handlers[op] = self._op_alu

        missing = set(Op) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for {sorted(op.name for op in missing)}")

    def load_program(self, program: bytes):
        self.state.load_program(program)

    @property
    def waiting_for_key(self) -> bool:
        return self.state.keypad.waiting

    def step(self) -> Optional[Instruction]:
        """Execute one instruction.

        Returns the executed instruction, or None when the machine is
        suspended waiting for a key.
        """
        state = self.state
        if state.keypad.waiting:
            return None

        address = self.current_address = state.program_counter
        instruction = decode(state.fetch_word(address))
        state.set_pc(address + 2)

        try:
            self._handlers[instruction.op](instruction)
        except StackFault as e:
            state.set_pc(address)
            logger.error("%s (%s)", e, instruction.mnemonic())
            raise

        self.stats['instructions_executed'] += 1
        return instruction

    def set_key(self, key: int, pressed: bool):
        """Deliver a key press/release edge; a press completes a pending key wait"""
        register = self.state.keypad.set_key(key, pressed)
        if register is not None:
            self.state.set_register(register, key)
            self.state.set_pc(self.state.program_counter + 2)

    def get_stats(self) -> Dict[str, int]:
        return dict(self.stats)

    def _skip_if(self, condition: bool):
        if condition:
            self.state.set_pc(self.state.program_counter + 2)

    # =========================================================================
    # Flow control
    # =========================================================================

    def _op_cls(self, ins: Instruction):
        self.state.display.clear()
        self.stats['display_clears'] += 1

    def _op_ret(self, ins: Instruction):
        state = self.state
        state.set_pc(state.pop(fault_address=self.current_address))

    def _op_jp(self, ins: Instruction):
        self.state.set_pc(ins.nnn)

    def _op_call(self, ins: Instruction):
        state = self.state
        state.push(state.program_counter, fault_address=self.current_address)
        state.set_pc(ins.nnn)

    def _op_jp_v0(self, ins: Instruction):
        self.state.set_pc(ins.nnn + self.state.get_register(0))

    def _op_se_byte(self, ins: Instruction):
        self._skip_if(self.state.get_register(ins.x) == ins.nn)

    def _op_sne_byte(self, ins: Instruction):
        self._skip_if(self.state.get_register(ins.x) != ins.nn)

    def _op_se_reg(self, ins: Instruction):
        self._skip_if(self.state.get_register(ins.x) == self.state.get_register(ins.y))

    def _op_sne_reg(self, ins: Instruction):
        self._skip_if(self.state.get_register(ins.x) != self.state.get_register(ins.y))

    # =========================================================================
    # Registers and arithmetic
    # =========================================================================

    def _op_ld_byte(self, ins: Instruction):
        self.state.set_register(ins.x, ins.nn)

    def _op_add_byte(self, ins: Instruction):
        # No carry flag for the immediate form
        self.state.set_register(ins.x, self.state.get_register(ins.x) + ins.nn)

    def _op_alu(self, ins: Instruction):
        state = self.state
        result, flag = _ALU_FUNCTIONS[ins.op](state.get_register(ins.x), state.get_register(ins.y))
        if flag is not None:
            state.set_register(FLAG_REGISTER, flag)
        state.set_register(ins.x, result)

    def _op_rnd(self, ins: Instruction):
        random_byte = int(self.state.rng.integers(0, 256))
        self.state.set_register(ins.x, random_byte & ins.nn)

    # =========================================================================
    # Index register and memory
    # =========================================================================

    def _op_ld_i(self, ins: Instruction):
        self.state.index_register = ins.nnn

    def _op_add_i_vx(self, ins: Instruction):
        state = self.state
        state.index_register = (state.index_register + state.get_register(ins.x)) & 0xFFFF

    def _op_ld_f_vx(self, ins: Instruction):
        self.state.index_register = FONT_START + self.state.get_register(ins.x) * FONT_GLYPH_SIZE

    def _op_ld_b_vx(self, ins: Instruction):
        state = self.state
        value = state.get_register(ins.x)
        state.write_byte(state.index_register, value // 100)
        state.write_byte(state.index_register + 1, (value // 10) % 10)
        state.write_byte(state.index_register + 2, value % 10)

    def _op_ld_mem_vx(self, ins: Instruction):
        state = self.state
        for i in range(ins.x + 1):
            state.write_byte(state.index_register + i, state.get_register(i))

    def _op_ld_vx_mem(self, ins: Instruction):
        state = self.state
        for i in range(ins.x + 1):
            state.set_register(i, state.read_byte(state.index_register + i))

    # =========================================================================
    # Display
    # =========================================================================

    def _op_drw(self, ins: Instruction):
        state = self.state
        rows = state.read_block(state.index_register, ins.n)
        collision = state.display.draw_sprite(state.get_register(ins.x), state.get_register(ins.y), rows)
        state.set_register(FLAG_REGISTER, 1 if collision else 0)
        self.stats['sprites_drawn'] += 1
        if collision:
            self.stats['collisions'] += 1

    # =========================================================================
    # Keys and timers
    # =========================================================================

    def _op_skp(self, ins: Instruction):
        self._skip_if(self.state.keypad.is_pressed(self.state.get_register(ins.x)))

    def _op_sknp(self, ins: Instruction):
        self._skip_if(not self.state.keypad.is_pressed(self.state.get_register(ins.x)))

    def _op_ld_vx_k(self, ins: Instruction):
        # Park PC on this instruction; set_key() steps past it when a key arrives
        state = self.state
        state.set_pc(state.program_counter - 2)
        state.keypad.begin_wait(ins.x)
        self.stats['key_waits'] += 1

    def _op_ld_vx_dt(self, ins: Instruction):
        self.state.set_register(ins.x, self.state.timers.delay)

    def _op_ld_dt_vx(self, ins: Instruction):
        self.state.timers.delay = self.state.get_register(ins.x)

    def _op_ld_st_vx(self, ins: Instruction):
        self.state.timers.sound = self.state.get_register(ins.x)

    def _op_unknown(self, ins: Instruction):
        logger.warning("Unknown opcode 0x%04X (%s) at PC=0x%03X", ins.word, ins.mnemonic(), self.current_address)
        self.stats['unknown_opcodes'] += 1
