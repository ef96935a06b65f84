"""A 64x32 monochrome display rendered with ANSI escapes in a terminal."""

from __future__ import annotations

import os
import sys
from typing import Callable, Optional, Sequence, TextIO, Tuple

WIDTH = 64
HEIGHT = 32

_CLEAR = "\x1b[2J\x1b[H"
_RESET = "\x1b[0m"
_BLOCK = "█"


class TerminalTooSmallError(RuntimeError):
    """Raised when the terminal cannot hold the whole display."""


def get_terminal_size() -> Tuple[int, int]:
    """Return the (columns, rows) of the terminal attached to stdout."""
    size = os.get_terminal_size(sys.stdout.fileno())
    return size.columns, size.lines


class Display:
    """Pixel buffer that mirrors every change onto a terminal."""

    def __init__(
        self,
        out: Optional[TextIO] = None,
        size_provider: Optional[Callable[[], Tuple[int, int]]] = None,
    ) -> None:
        self._out = out if out is not None else sys.stdout
        self._size_provider = size_provider or get_terminal_size
        self._pixels = [False] * (WIDTH * HEIGHT)

    def clear_screen(self) -> None:
        """Clear the terminal and turn every pixel off."""
        self._out.write(_CLEAR)
        self._out.flush()
        self._pixels = [False] * (WIDTH * HEIGHT)

    def pixel(self, x: int, y: int) -> bool:
        """Return whether the pixel at (x, y) is lit."""
        if not (0 <= x < WIDTH and 0 <= y < HEIGHT):
            raise IndexError(f"pixel out of range: ({x}, {y})")
        return self._pixels[x + y * WIDTH]

    def draw_sprite(self, sprite: Sequence[int], pos_x: int, pos_y: int, n: int) -> bool:
        """XOR ``n`` rows of ``sprite`` onto the screen at (pos_x, pos_y).

        The start position wraps around the screen; pixels running past the
        right or bottom edge are clipped. Returns True if any lit pixel was
        turned off.
        """
        columns, rows = self._size_provider()
        if columns < WIDTH or rows < HEIGHT:
            raise TerminalTooSmallError("terminal window too small")

        pos_x %= WIDTH
        pos_y %= HEIGHT

        erasing = False
        for row, line in enumerate(sprite[:n]):
            for bit in range(8):
                if (line >> (7 - bit)) & 1 and self._toggle(pos_x + bit, pos_y + row):
                    erasing = True
        self._out.flush()
        return erasing

    def _toggle(self, x: int, y: int) -> bool:
        if x >= WIDTH or y >= HEIGHT:
            return False
        idx = x + y * WIDTH
        erased = self._pixels[idx]
        self._pixels[idx] = not erased
        color = "255" if erased else "0"
        self._out.write(f"\x1b[{y + 1};{x + 1}H\x1b[48;5;{color}m{_BLOCK}{_RESET}")
        return erased