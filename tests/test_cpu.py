"""Tests for instruction execution."""

import logging

import numpy as np
import pytest

from chip8vm.constants import CHIP8_FONT
from chip8vm.errors import StackOverflow, StackUnderflow
from chip8vm.instructions import Op
from chip8vm.keypad import KeypadMode


def run(cpu, steps):
    for _ in range(steps):
        cpu.step()
    return cpu


class TestFetch:
    def test_step_advances_pc(self, make_cpu):
        cpu = make_cpu(0x6001)
        ins = cpu.step()
        assert ins.op is Op.LD_BYTE
        assert cpu.state.program_counter == 0x202

    def test_pc_wraps_past_end_of_memory(self, make_cpu):
        cpu = make_cpu()
        cpu.state.set_pc(0xFFE)
        cpu.state.write_byte(0xFFE, 0x60)
        cpu.state.write_byte(0xFFF, 0x07)
        cpu.step()
        assert cpu.state.get_register(0) == 7
        assert cpu.state.program_counter == 0x000


class TestFlowControl:
    def test_clear_display(self, make_cpu):
        """CLS turns every pixel off and marks the display dirty."""
        cpu = make_cpu(0x00E0)
        cpu.state.display.pixels[:] = 1
        cpu.step()
        assert not cpu.state.display.pixels.any()
        assert cpu.state.display.dirty is True

    def test_jump(self, make_cpu):
        cpu = make_cpu(0x1ABC)
        cpu.step()
        assert cpu.state.program_counter == 0xABC

    def test_call_and_return(self, make_cpu):
        # 0x200 CALL 206; 0x202 LD V1,1; 0x204 JP 204; 0x206 LD V2,2; 0x208 RET
        cpu = make_cpu(0x2206, 0x6101, 0x1204, 0x6202, 0x00EE)
        cpu.step()
        assert cpu.state.program_counter == 0x206
        assert cpu.state.stack_pointer == 1
        assert int(cpu.state.stack[0]) == 0x202
        run(cpu, 2)
        assert cpu.state.program_counter == 0x202
        assert cpu.state.stack_pointer == 0
        cpu.step()
        assert cpu.state.get_register(1) == 1
        assert cpu.state.get_register(2) == 2

    def test_jump_with_offset(self, make_cpu):
        cpu = make_cpu(0x6010, 0xB300)
        run(cpu, 2)
        assert cpu.state.program_counter == 0x310

    def test_jump_with_offset_wraps(self, make_cpu):
        cpu = make_cpu(0x60FF, 0xBFFF)
        run(cpu, 2)
        assert cpu.state.program_counter == (0xFFF + 0xFF) & 0xFFF


class TestStackFaults:
    """Call stack overflow and underflow trap."""

    def test_overflow_traps(self, make_cpu):
        """The 17th nested call raises and has no effect."""
        cpu = make_cpu(0x2200)
        run(cpu, 16)
        assert cpu.state.stack_pointer == 16

        with pytest.raises(StackOverflow) as excinfo:
            cpu.step()

        assert excinfo.value.address == 0x200
        assert cpu.state.program_counter == 0x200
        assert cpu.state.stack_pointer == 16

    def test_underflow_traps(self, make_cpu):
        cpu = make_cpu(0x6005, 0x00EE)
        cpu.step()
        with pytest.raises(StackUnderflow) as excinfo:
            cpu.step()
        assert excinfo.value.address == 0x202
        assert cpu.state.program_counter == 0x202
        assert cpu.state.stack_pointer == 0
        assert cpu.state.get_register(0) == 5

    def test_fault_is_logged(self, make_cpu, caplog):
        cpu = make_cpu(0x00EE)
        with caplog.at_level(logging.ERROR, logger="chip8vm.cpu"):
            with pytest.raises(StackUnderflow):
                cpu.step()
        assert "empty stack" in caplog.text


class TestSkips:
    @pytest.mark.parametrize("words,skipped", [
        ((0x6A05, 0x3A05), True),
        ((0x6A05, 0x3A06), False),
        ((0x6A05, 0x4A06), True),
        ((0x6A05, 0x4A05), False),
        ((0x6A05, 0x6B05, 0x5AB0), True),
        ((0x6A05, 0x6B06, 0x5AB0), False),
        ((0x6A05, 0x6B06, 0x9AB0), True),
        ((0x6A05, 0x6B05, 0x9AB0), False),
    ])
    def test_conditional_skip(self, make_cpu, words, skipped):
        cpu = make_cpu(*words)
        run(cpu, len(words))
        expected = 0x200 + 2 * len(words) + (2 if skipped else 0)
        assert cpu.state.program_counter == expected


class TestRegisterOps:
    def test_load_immediate(self, make_cpu):
        cpu = make_cpu(0x6AFE)
        cpu.step()
        assert cpu.state.get_register(0xA) == 0xFE

    def test_add_immediate_wraps_without_flag(self, make_cpu):
        cpu = make_cpu(0x6FFF, 0x60F0, 0x7020)
        run(cpu, 3)
        assert cpu.state.get_register(0) == 0x10
        assert cpu.state.get_register(0xF) == 0xFF

    def test_add_with_carry(self, make_cpu):
        cpu = make_cpu(0x60F0, 0x6120, 0x8014)
        run(cpu, 3)
        assert cpu.state.get_register(0) == 0x10
        assert cpu.state.get_register(0xF) == 1

    def test_sub_with_borrow(self, make_cpu):
        cpu = make_cpu(0x6010, 0x6120, 0x8015)
        run(cpu, 3)
        assert cpu.state.get_register(0) == 0xF0
        assert cpu.state.get_register(0xF) == 0

    def test_subn(self, make_cpu):
        cpu = make_cpu(0x6010, 0x6120, 0x8017)
        run(cpu, 3)
        assert cpu.state.get_register(0) == 0x10
        assert cpu.state.get_register(0xF) == 1

    def test_shift_right_uses_vx(self, make_cpu):
        cpu = make_cpu(0x6005, 0x61FF, 0x8016)
        run(cpu, 3)
        assert cpu.state.get_register(0) == 0x02
        assert cpu.state.get_register(0xF) == 1
        assert cpu.state.get_register(1) == 0xFF

    def test_shift_left_uses_vx(self, make_cpu):
        cpu = make_cpu(0x6081, 0x6100, 0x801E)
        run(cpu, 3)
        assert cpu.state.get_register(0) == 0x02
        assert cpu.state.get_register(0xF) == 1

    def test_logic_leaves_flag(self, make_cpu):
        cpu = make_cpu(0x6F07, 0x600C, 0x610A, 0x8011, 0x8012, 0x8013)
        run(cpu, 4)
        assert cpu.state.get_register(0) == 0x0E
        run(cpu, 1)
        assert cpu.state.get_register(0) == 0x0A
        run(cpu, 1)
        assert cpu.state.get_register(0) == 0x00
        assert cpu.state.get_register(0xF) == 0x07

    def test_copy(self, make_cpu):
        cpu = make_cpu(0x6142, 0x8010)
        run(cpu, 2)
        assert cpu.state.get_register(0) == 0x42

    def test_result_overrides_flag_when_x_is_f(self, make_cpu):
        """With VF as destination the result is written last."""
        cpu = make_cpu(0x6FF0, 0x6120, 0x8F14)
        run(cpu, 3)
        assert cpu.state.get_register(0xF) == 0x10

    def test_shift_into_vf_keeps_result(self, make_cpu):
        cpu = make_cpu(0x6F06, 0x8FF6)
        run(cpu, 2)
        assert cpu.state.get_register(0xF) == 0x03

    def test_random_is_masked(self, make_cpu):
        cpu = make_cpu(*([0xC00F] * 50))
        for _ in range(50):
            cpu.step()
            assert cpu.state.get_register(0) <= 0x0F

    def test_random_zero_mask(self, make_cpu):
        cpu = make_cpu(0x60FF, 0xC000)
        run(cpu, 2)
        assert cpu.state.get_register(0) == 0

    def test_random_reproducible_with_seed(self, make_cpu):
        words = [0xC0FF, 0x8100] * 4
        a = run(make_cpu(*words, seed=99), 8)
        b = run(make_cpu(*words, seed=99), 8)
        assert a.state.get_register(0) == b.state.get_register(0)
        assert a.state.get_register(1) == b.state.get_register(1)


class TestIndexAndMemory:
    def test_set_index(self, make_cpu):
        cpu = make_cpu(0xA123)
        cpu.step()
        assert cpu.state.index_register == 0x123

    def test_add_to_index_wraps_16_bits(self, make_cpu):
        cpu = make_cpu(0x6010, 0xF01E)
        cpu.state.index_register = 0xFFF8
        run(cpu, 2)
        assert cpu.state.index_register == 0x0008

    def test_add_to_index_no_12_bit_clamp(self, make_cpu):
        cpu = make_cpu(0xAFFF, 0x6002, 0xF01E)
        run(cpu, 3)
        assert cpu.state.index_register == 0x1001

    def test_font_digit_address(self, make_cpu):
        cpu = make_cpu(0x600B, 0xF029)
        run(cpu, 2)
        assert cpu.state.index_register == 0xB * 5
        glyph = cpu.state.read_block(cpu.state.index_register, 5)
        assert glyph == CHIP8_FONT[0xB * 5:0xB * 5 + 5]

    def test_bcd_255(self, make_cpu):
        cpu = make_cpu(0x60FF, 0xA300, 0xF033)
        run(cpu, 3)
        assert cpu.state.memory[0x300:0x303].tolist() == [2, 5, 5]

    @pytest.mark.parametrize("value,digits", [(0, [0, 0, 0]), (7, [0, 0, 7]), (42, [0, 4, 2]), (109, [1, 0, 9])])
    def test_bcd_digits(self, make_cpu, value, digits):
        cpu = make_cpu(0x6500 | value, 0xA300, 0xF533)
        run(cpu, 3)
        assert cpu.state.memory[0x300:0x303].tolist() == digits

    def test_register_store_inclusive(self, make_cpu):
        cpu = make_cpu(0x6011, 0x6122, 0x6233, 0x6344, 0xA300, 0xF255)
        run(cpu, 6)
        assert cpu.state.memory[0x300:0x304].tolist() == [0x11, 0x22, 0x33, 0x00]
        assert cpu.state.index_register == 0x300

    def test_register_load_inclusive(self, make_cpu):
        cpu = make_cpu(0xA300, 0xF265)
        cpu.state.memory[0x300:0x304] = [9, 8, 7, 6]
        run(cpu, 2)
        assert [cpu.state.get_register(i) for i in range(4)] == [9, 8, 7, 0]
        assert cpu.state.index_register == 0x300

    def test_store_load_v0_only(self, make_cpu):
        cpu = make_cpu(0x60AA, 0x61BB, 0xA300, 0xF055)
        run(cpu, 4)
        assert cpu.state.read_byte(0x300) == 0xAA
        assert cpu.state.read_byte(0x301) == 0x00

    def test_self_modifying_store(self, make_cpu):
        """A store into the program area changes what executes next."""
        # 0x200 LD V0,62; 0x202 LD V1,07; 0x204 LD I,20A; 0x206 LD [I],V1; 0x208 JP 20A
        cpu = make_cpu(0x6062, 0x6107, 0xA20A, 0xF155, 0x120A)
        run(cpu, 6)
        assert cpu.state.fetch_word(0x20A) == 0x6207
        assert cpu.state.get_register(2) == 0x07


class TestTimerOps:
    def test_timer_roundtrip(self, make_cpu):
        cpu = make_cpu(0x6033, 0xF015, 0xF118)
        run(cpu, 2)
        assert cpu.state.timers.delay == 0x33
        cpu.state.set_register(1, 0x44)
        cpu.step()
        assert cpu.state.timers.sound == 0x44

    def test_step_does_not_tick_timers(self, make_cpu):
        cpu = make_cpu(0x6033, 0xF015, *([0x7101] * 20))
        run(cpu, 22)
        assert cpu.state.timers.delay == 0x33

    def test_read_delay(self, make_cpu):
        cpu = make_cpu(0xF407)
        cpu.state.timers.delay = 0x21
        cpu.step()
        assert cpu.state.get_register(4) == 0x21


class TestKeys:
    def test_skip_if_pressed(self, make_cpu):
        cpu = make_cpu(0x6A0C, 0xEA9E)
        cpu.set_key(0xC, True)
        run(cpu, 2)
        assert cpu.state.program_counter == 0x206

    def test_skip_if_not_pressed(self, make_cpu):
        cpu = make_cpu(0x6A0C, 0xEAA1)
        run(cpu, 2)
        assert cpu.state.program_counter == 0x206

    def test_no_skip_if_not_pressed(self, make_cpu):
        cpu = make_cpu(0x6A0C, 0xEA9E)
        cpu.set_key(0xC, True)
        cpu.set_key(0xC, False)
        run(cpu, 2)
        assert cpu.state.program_counter == 0x204

    def test_key_index_uses_low_nibble(self, make_cpu):
        cpu = make_cpu(0x6A1C, 0xEA9E)
        cpu.set_key(0xC, True)
        run(cpu, 2)
        assert cpu.state.program_counter == 0x206


class TestWaitForKey:
    """FX0A suspends execution until a key-down edge."""

    def test_step_is_noop_while_waiting(self, make_cpu):
        cpu = make_cpu(0xF30A, 0x6101)
        cpu.step()
        assert cpu.state.keypad.mode is KeypadMode.WAITING_FOR_KEY

        for _ in range(100):
            assert cpu.step() is None
        assert cpu.state.program_counter == 0x200
        assert cpu.state.get_register(1) == 0

    def test_release_does_not_resume(self, make_cpu):
        cpu = make_cpu(0xF30A, 0x6101)
        cpu.step()
        cpu.set_key(0x5, False)
        assert cpu.waiting_for_key is True
        assert cpu.step() is None

    def test_key_down_resumes(self, make_cpu):
        cpu = make_cpu(0xF30A, 0x6101)
        cpu.step()
        cpu.set_key(0x7, True)

        assert cpu.state.keypad.mode is KeypadMode.NORMAL
        assert cpu.state.get_register(3) == 0x7
        assert cpu.state.program_counter == 0x202

        cpu.step()
        assert cpu.state.get_register(1) == 1

    def test_only_first_key_is_captured(self, make_cpu):
        cpu = make_cpu(0xF30A, 0x6101)
        cpu.step()
        cpu.set_key(0x7, True)
        cpu.set_key(0x9, True)
        assert cpu.state.get_register(3) == 0x7
        assert cpu.state.program_counter == 0x202


class TestUnknownOpcode:
    def test_logged_and_skipped(self, make_cpu, caplog):
        """Unknown words are logged and execution continues after them."""
        cpu = make_cpu(0x5AB1, 0x6001)
        with caplog.at_level(logging.WARNING, logger="chip8vm.cpu"):
            ins = cpu.step()
        assert ins.op is Op.UNKNOWN
        assert "0x5AB1" in caplog.text
        assert "DW 5AB1" in caplog.text
        assert cpu.state.program_counter == 0x202
        assert cpu.get_stats()["unknown_opcodes"] == 1

        cpu.step()
        assert cpu.state.get_register(0) == 1

    def test_zero_word_does_not_halt(self, make_cpu):
        cpu = make_cpu()
        run(cpu, 10)
        assert cpu.state.program_counter == 0x214


class TestDraw:
    def test_draws_digit_two(self, make_cpu):
        """LD VA,2; LD F,VA; DRW V0,VB,5 draws the font glyph for 2 at (0, 0)."""
        cpu = make_cpu(0x6A02, 0xFA29, 0xD0B5)
        run(cpu, 3)

        expected = np.zeros((32, 64), dtype=np.uint8)
        for row, byte in enumerate([0xF0, 0x10, 0xF0, 0x80, 0xF0]):
            for col in range(8):
                expected[row, col] = (byte >> (7 - col)) & 1

        assert (cpu.state.display.pixels == expected).all()
        assert cpu.state.get_register(0xF) == 0
        assert cpu.state.display.dirty is True

    def test_redraw_erases_and_collides(self, make_cpu):
        cpu = make_cpu(0x6A02, 0xFA29, 0xD0B5, 0xD0B5)
        run(cpu, 4)
        assert not cpu.state.display.pixels.any()
        assert cpu.state.get_register(0xF) == 1
        assert cpu.get_stats()["collisions"] == 1

    def test_collision_flag_reset_each_draw(self, make_cpu):
        cpu = make_cpu(0x6A02, 0xFA29, 0xD0B5, 0xD0B5, 0x6010, 0xD0B5)
        run(cpu, 6)
        assert cpu.state.get_register(0xF) == 0

    def test_sprite_read_wraps_memory(self, make_cpu):
        cpu = make_cpu(0xAFFF, 0xD002)
        cpu.state.write_byte(0xFFF, 0x80)
        run(cpu, 2)
        assert cpu.state.display.pixels[0, :4].tolist() == [1, 0, 0, 0]
        # second row comes from 0x000, the first byte of the "0" glyph
        assert cpu.state.display.pixels[1, :4].tolist() == [1, 1, 1, 1]
