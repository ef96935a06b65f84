import io
import random

import pytest

from chip8term.display import Display, TerminalTooSmallError
from chip8term.system import (
    FONT,
    FONT_START,
    MEMORY_SIZE,
    PROGRAM_START,
    EmulatorError,
    System,
    UnknownInstructionError,
    load_keymap,
    parse_keymap,
)


def make_system(program=b"", keys=(), keymap=None, size=(80, 40)):
    pending = list(keys)

    def key_source():
        return pending.pop(0) if pending else None

    display = Display(io.StringIO(), lambda: size)
    return System(program, keymap or {}, display, key_source, random.Random(0))


def run(system, steps):
    for _ in range(steps):
        system.step()


def test_font_and_rom_loaded():
    system = make_system(b"\x12\x34")
    assert system.memory[FONT_START:FONT_START + len(FONT)] == FONT
    assert system.memory[PROGRAM_START:PROGRAM_START + 2] == b"\x12\x34"
    assert system.pc == PROGRAM_START


def test_oversized_rom_is_truncated():
    system = make_system(b"\xAA" * MEMORY_SIZE)
    assert len(system.memory) == MEMORY_SIZE
    assert system.memory[-1] == 0xAA


def test_fetch_advances_pc():
    system = make_system(b"\x12\x34\x56\x78")
    assert system.fetch() == b"\x12\x34"
    assert system.pc == PROGRAM_START + 2
    assert system.fetch() == b"\x56\x78"


def test_fetch_past_memory_end_raises():
    system = make_system(b"\x1F\xFF")
    system.step()
    with pytest.raises(EmulatorError):
        system.fetch()


def test_jump():
    system = make_system(b"\x13\x00")
    system.step()
    assert system.pc == 0x300


def test_call_and_return():
    program = bytearray(0x200)
    program[0:2] = b"\x23\x00"
    program[0x100:0x102] = b"\x00\xEE"
    system = make_system(bytes(program))
    system.step()
    assert system.pc == 0x300
    assert len(system.call_stack) == 1
    system.step()
    assert system.pc == PROGRAM_START + 2
    assert len(system.call_stack) == 0


def test_return_with_empty_stack_raises():
    system = make_system(b"\x00\xEE")
    with pytest.raises(EmulatorError):
        system.step()


def test_unknown_zero_opcode_is_ignored():
    system = make_system(b"\x01\x23")
    system.step()
    assert system.pc == PROGRAM_START + 2
    assert system.registers == bytearray(16)


@pytest.mark.parametrize(
    "program, skipped",
    [
        (b"\x60\x12\x30\x12", True),
        (b"\x60\x12\x30\x13", False),
        (b"\x60\x12\x40\x13", True),
        (b"\x60\x12\x40\x12", False),
        (b"\x60\x07\x61\x07\x50\x10", True),
        (b"\x60\x07\x61\x08\x50\x10", False),
        (b"\x60\x07\x61\x08\x90\x10", True),
        (b"\x60\x07\x61\x07\x90\x10", False),
    ],
)
def test_conditional_skips(program, skipped):
    system = make_system(program)
    run(system, len(program) // 2)
    end = PROGRAM_START + len(program)
    assert system.pc == (end + 2 if skipped else end)


def test_add_immediate_wraps_without_flag():
    system = make_system(b"\x60\xFF\x70\x01")
    run(system, 2)
    assert system.registers[0] == 0
    assert system.registers[0xF] == 0


def test_register_logic_ops():
    system = make_system(b"\x60\xF0\x61\x3C\x82\x00\x82\x11\x83\x00\x83\x12\x84\x00\x84\x13")
    run(system, 8)
    assert system.registers[2] == 0xF0 | 0x3C
    assert system.registers[3] == 0xF0 & 0x3C
    assert system.registers[4] == 0xF0 ^ 0x3C


def test_add_registers_sets_carry():
    system = make_system(b"\x60\xFF\x61\x01\x80\x14")
    run(system, 3)
    assert system.registers[0] == 0
    assert system.registers[0xF] == 1


def test_add_registers_no_carry():
    system = make_system(b"\x60\x10\x61\x01\x80\x14")
    run(system, 3)
    assert system.registers[0] == 0x11
    assert system.registers[0xF] == 0


def test_sub_and_borrow_flag():
    system = make_system(b"\x60\x01\x61\x02\x80\x15")
    run(system, 3)
    assert system.registers[0] == 0xFF
    assert system.registers[0xF] == 0


def test_subn_sets_flag_when_no_borrow():
    system = make_system(b"\x60\x01\x61\x02\x80\x17")
    run(system, 3)
    assert system.registers[0] == 1
    assert system.registers[0xF] == 1


def test_shifts_report_shifted_out_bit():
    system = make_system(b"\x60\x81\x80\x06")
    run(system, 2)
    assert system.registers[0] == 0x40
    assert system.registers[0xF] == 1

    system = make_system(b"\x60\x81\x80\x0E")
    run(system, 2)
    assert system.registers[0] == 0x02
    assert system.registers[0xF] == 1


@pytest.mark.parametrize("program", [b"\x80\x0F", b"\xF0\x99"])
def test_unknown_instructions_raise(program):
    system = make_system(program)
    with pytest.raises(UnknownInstructionError):
        system.step()


def test_decode_rejects_wrong_length():
    system = make_system()
    with pytest.raises(ValueError):
        system.decode(b"\x00")


def test_load_index_and_jump_with_offset():
    system = make_system(b"\xA1\x23\x60\x04\xB3\x00")
    run(system, 3)
    assert system.i_reg == 0x123
    assert system.pc == 0x300 + 4


def test_random_is_masked():
    for _ in range(20):
        system = make_system(b"\xC0\x0F")
        system.step()
        assert system.registers[0] & 0xF0 == 0


def test_add_to_index_flags_overflow():
    system = make_system(b"\xAF\xFF\x60\x01\xF0\x1E")
    run(system, 3)
    assert system.i_reg == 0x1000
    assert system.registers[0xF] == 1


def test_font_location_points_at_glyph():
    system = make_system(b"\x60\x0A\xF0\x29")
    run(system, 2)
    assert system.memory[system.i_reg:system.i_reg + 5] == bytes(
        [0xF0, 0x90, 0xF0, 0x90, 0x90]
    )


def test_bcd():
    system = make_system(b"\x60\xFE\xA3\x00\xF0\x33")
    run(system, 3)
    assert list(system.memory[0x300:0x303]) == [2, 5, 4]


def test_store_out_of_memory_raises():
    system = make_system(b"\xAF\xFF\xF2\x55")
    system.step()
    with pytest.raises(EmulatorError):
        system.step()


def test_draw_and_collision():
    system = make_system(b"\xA0\x50\xD0\x05\xD0\x05")
    run(system, 2)
    assert system.display.pixel(0, 0) is True
    assert system.registers[0xF] == 0
    system.step()
    assert system.display.pixel(0, 0) is False
    assert system.registers[0xF] == 1


def test_clear_screen():
    system = make_system(b"\xA0\x50\xD0\x05\x00\xE0")
    run(system, 3)
    assert system.display.pixel(0, 0) is False


def test_draw_in_small_terminal_raises():
    system = make_system(b"\xD0\x05", size=(10, 10))
    with pytest.raises(TerminalTooSmallError):
        system.step()


def test_skip_if_pressed():
    system = make_system(b"\x60\x05\xE0\x9E", keys=["x"], keymap={"x": 5})
    run(system, 2)
    assert system.pc == PROGRAM_START + 6


def test_skip_if_not_pressed_without_input():
    system = make_system(b"\xE0\xA1")
    system.step()
    assert system.pc == PROGRAM_START + 4


def test_skip_if_not_pressed_with_matching_key():
    system = make_system(b"\x60\x05\xE0\xA1", keys=["x"], keymap={"x": 5})
    run(system, 2)
    assert system.pc == PROGRAM_START + 4


def test_unmapped_key_reads_as_zero():
    system = make_system(keys=["?"], keymap={"x": 5})
    assert system.pressed_key() == 0
    assert system.pressed_key() is None


def test_wait_for_key_blocks_until_release():
    system = make_system(b"\xF3\x0A", keys=[None, "x", "x", None], keymap={"x": 5})
    for _ in range(3):
        system.step()
        assert system.pc == PROGRAM_START
    system.step()
    assert system.pc == PROGRAM_START + 2
    assert system.registers[3] == 5


def test_delay_timer_round_trip():
    system = make_system(b"\x60\x2A\xF0\x15\xF1\x07\xF0\x18")
    run(system, 4)
    assert system.delay_timer.get() == 0x2A
    assert system.registers[1] == 0x2A
    assert system.sound_timer.get() == 0x2A


def test_parse_keymap_layout():
    keymap = parse_keymap("1234\nQWER\nasdf\nzxcv\n")
    assert keymap["1"] == 1
    assert keymap["4"] == 0xC
    assert keymap["q"] == 4
    assert keymap["z"] == 0xA
    assert keymap["x"] == 0
    assert keymap["v"] == 0xF
    assert len(keymap) == 16


def test_parse_keymap_too_many_keys():
    with pytest.raises(ValueError):
        parse_keymap("abcdefghijklmnopq")


def test_load_keymap(tmp_path, capsys):
    path = tmp_path / "KEYMAP"
    path.write_text("1234\nqwer\n", encoding="utf-8")
    assert load_keymap(str(path)) == parse_keymap("1234qwer")
    assert load_keymap(str(tmp_path / "missing")) == {}
    assert "Failed to load keymap" in capsys.readouterr().out