"""The interpreter core: memory, registers, call stack, timers and opcodes."""

from __future__ import annotations

import enum
import random
import sys
from pathlib import Path
from typing import Callable, Mapping, Optional

from chip8term.display import Display
from chip8term.stack import Stack, StackEmptyError
from chip8term.timer import Timer

FONT = bytes(
    [
        0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
        0x20, 0x60, 0x20, 0x20, 0x70,  # 1
        0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
        0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
        0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
        0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
        0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
        0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
        0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
        0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
        0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
        0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
        0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
        0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
        0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
        0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
    ]
)

MEMORY_SIZE = 4096
PROGRAM_START = 0x200
FONT_START = 0x50
KEYMAP_PATH = "./KEYMAP"

# Hex keypad values in the order the keymap file lists physical keys.
ORIGINAL_KEYS = (
    0x1, 0x2, 0x3, 0xC,
    0x4, 0x5, 0x6, 0xD,
    0x7, 0x8, 0x9, 0xE,
    0xA, 0x0, 0xB, 0xF,
)

KeySource = Callable[[], Optional[str]]


class EmulatorError(Exception):
    """Raised when the running program cannot continue."""


class UnknownInstructionError(EmulatorError):
    """Raised for an opcode the interpreter does not know."""


class _KeyWait(enum.Enum):
    NONE = enum.auto()
    PRESSED = enum.auto()


def parse_keymap(text: str) -> dict[str, int]:
    """Map the characters of ``text`` (newlines ignored) onto the hex keypad.

    Characters are lower-cased and assigned to keypad values in the order
    1 2 3 C / 4 5 6 D / 7 8 9 E / A 0 B F.
    """
    keys = [char.lower() for char in text if char != "\n"]
    if len(keys) > len(ORIGINAL_KEYS):
        raise ValueError(
            f"keymap lists {len(keys)} keys, at most {len(ORIGINAL_KEYS)} allowed"
        )
    return dict(zip(keys, ORIGINAL_KEYS))


def load_keymap(path: str = KEYMAP_PATH) -> dict[str, int]:
    """Read a keymap file; report and return an empty map if it is missing."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError:
        print(f"Failed to load keymap: {path}")
        return {}
    return parse_keymap(text)


def _beep() -> None:
    sys.stdout.write("\a")
    sys.stdout.flush()


class System:
    """A complete machine: 4 KiB memory, 16 registers, I, PC, stack and timers.

    ``key_source`` is polled without blocking and returns the character of a
    pressed key, or None. Without a key source no key is ever pressed. The
    timers are created stopped; call their ``start`` methods to have them
    tick in real time.
    """

    def __init__(
        self,
        rom: bytes = b"",
        keymap: Optional[Mapping[str, int]] = None,
        display: Optional[Display] = None,
        key_source: Optional[KeySource] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.memory = bytearray(MEMORY_SIZE)
        self.memory[FONT_START:FONT_START + len(FONT)] = FONT
        program = bytes(rom)[: MEMORY_SIZE - PROGRAM_START]
        self.memory[PROGRAM_START:PROGRAM_START + len(program)] = program

        self.pc = PROGRAM_START
        self.i_reg = 0
        self.registers = bytearray(16)
        self.call_stack: Stack[int] = Stack()
        self.display = display if display is not None else Display()
        self.keymap = dict(keymap or {})
        self.delay_timer = Timer(None)
        self.sound_timer = Timer(_beep)

        self._key_source = key_source
        self._rng = rng or random.Random()
        self._key_wait = _KeyWait.NONE
        self._last_key = 0

    def fetch(self) -> bytes:
        """Return the two-byte instruction at PC and advance PC."""
        if self.pc + 2 > MEMORY_SIZE:
            raise EmulatorError(f"program counter out of memory: {self.pc:#x}")
        instruction = bytes(self.memory[self.pc:self.pc + 2])
        self._advance(2)
        return instruction

    def step(self) -> None:
        """Fetch and execute one instruction."""
        self.decode(self.fetch())

    def decode(self, instruction: bytes) -> None:
        """Execute one two-byte instruction."""
        if len(instruction) != 2:
            raise ValueError(f"instruction must be 2 bytes, got {len(instruction)}")
        high, low = instruction
        op = high >> 4
        x = high & 0x0F
        y = low >> 4
        n = low & 0x0F
        addr = (x << 8) | low
        regs = self.registers

        match op:
            case 0x0:
                if low == 0xE0:
                    self.display.clear_screen()
                elif low == 0xEE:
                    self._ret()
            case 0x1:
                self.pc = addr
            case 0x2:
                self.call_stack.push(self.pc)
                self.pc = addr
            case 0x3:
                if regs[x] == low:
                    self._advance(2)
            case 0x4:
                if regs[x] != low:
                    self._advance(2)
            case 0x5:
                if regs[x] == regs[y]:
                    self._advance(2)
            case 0x6:
                regs[x] = low
            case 0x7:
                regs[x] = (regs[x] + low) & 0xFF
            case 0x8:
                self._arithmetic(instruction, n, x, y)
            case 0x9:
                if regs[x] != regs[y]:
                    self._advance(2)
            case 0xA:
                self.i_reg = addr
            case 0xB:
                self.pc = (regs[0] + addr) & 0xFFFF
            case 0xC:
                regs[x] = self._rng.randrange(256) & low
            case 0xD:
                self._draw(x, y, n)
            case 0xE:
                if low == 0x9E:
                    key = self.pressed_key()
                    if key is not None and key == regs[x]:
                        self._advance(2)
                elif low == 0xA1:
                    key = self.pressed_key()
                    if key is None or key != regs[x]:
                        self._advance(2)
            case _:
                self._misc(instruction, low, x)

    def pressed_key(self) -> Optional[int]:
        """Poll the key source; return the keypad value, or None if idle.

        A key missing from the keymap reads as keypad value 0.
        """
        if self._key_source is None:
            return None
        char = self._key_source()
        if char is None:
            return None
        return self.keymap.get(char, 0)

    def close(self) -> None:
        """Stop the timers."""
        self.delay_timer.stop()
        self.sound_timer.stop()

    def _advance(self, amount: int) -> None:
        self.pc = (self.pc + amount) & 0xFFFF

    def _check_range(self, start: int, length: int) -> None:
        if start + length > MEMORY_SIZE:
            raise EmulatorError(
                f"memory access out of range: {start:#x}+{length}"
            )

    def _ret(self) -> None:
        try:
            self.pc = self.call_stack.pop()
        except StackEmptyError as exc:
            raise EmulatorError(str(exc)) from exc

    def _arithmetic(self, instruction: bytes, kind: int, x: int, y: int) -> None:
        regs = self.registers
        vx, vy = regs[x], regs[y]
        match kind:
            case 0x0:
                regs[x] = vy
            case 0x1:
                regs[x] = vx | vy
            case 0x2:
                regs[x] = vx & vy
            case 0x3:
                regs[x] = vx ^ vy
            case 0x4:
                total = vx + vy
                regs[x] = total & 0xFF
                regs[0xF] = int(total > 0xFF)
            case 0x5:
                regs[x] = (vx - vy) & 0xFF
                regs[0xF] = int(vx >= vy)
            case 0x6:
                regs[x] = vx >> 1
                regs[0xF] = vx & 1
            case 0x7:
                regs[x] = (vy - vx) & 0xFF
                regs[0xF] = int(vy >= vx)
            case 0xE:
                regs[x] = (vx << 1) & 0xFF
                regs[0xF] = (vx >> 7) & 1
            case _:
                raise UnknownInstructionError(
                    f"unknown arithmetic instruction: {instruction.hex()}"
                )

    def _misc(self, instruction: bytes, kind: int, x: int) -> None:
        regs = self.registers
        match kind:
            case 0x07:
                regs[x] = self.delay_timer.get()
            case 0x0A:
                self._wait_key(x)
            case 0x15:
                self.delay_timer.set(regs[x])
            case 0x18:
                self.sound_timer.set(regs[x])
            case 0x1E:
                self.i_reg = (self.i_reg + regs[x]) & 0xFFFF
                regs[0xF] = int(self.i_reg > 0x0FFF)
            case 0x29:
                self.i_reg = FONT_START + (regs[x] & 0x0F) * 5
            case 0x33:
                self._check_range(self.i_reg, 3)
                value = regs[x]
                self.memory[self.i_reg:self.i_reg + 3] = bytes(
                    [value // 100, (value % 100) // 10, value % 10]
                )
            case 0x55:
                self._check_range(self.i_reg, x + 1)
                self.memory[self.i_reg:self.i_reg + x + 1] = regs[: x + 1]
            case 0x65:
                self._check_range(self.i_reg, x + 1)
                regs[: x + 1] = self.memory[self.i_reg:self.i_reg + x + 1]
            case _:
                raise UnknownInstructionError(
                    f"unknown instruction: {instruction.hex()}"
                )

    def _draw(self, x: int, y: int, n: int) -> None:
        self._check_range(self.i_reg, n)
        sprite = bytes(self.memory[self.i_reg:self.i_reg + n])
        self.registers[0xF] = 0
        if self.display.draw_sprite(sprite, self.registers[x], self.registers[y], n):
            self.registers[0xF] = 1

    def _wait_key(self, x: int) -> None:
        key = self.pressed_key()
        if self._key_wait is _KeyWait.NONE:
            if key is not None:
                self._key_wait = _KeyWait.PRESSED
                self._last_key = key
            self._advance(-2)
        elif key is None or key != self._last_key:
            self.registers[x] = self._last_key
            self._key_wait = _KeyWait.NONE
        else:
            self._advance(-2)