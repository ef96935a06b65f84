"""Command line entry point: run a ROM in the terminal."""

from __future__ import annotations

import queue
import random
import signal
import sys
import threading
from pathlib import Path
from typing import Optional, Sequence, TextIO

from chip8term.display import Display, TerminalTooSmallError
from chip8term.system import KEYMAP_PATH, EmulatorError, System, load_keymap

try:
    import termios
    import tty
except ImportError:  # not a POSIX terminal
    termios = None
    tty = None

CTRL_C = "\x03"
_KEY_BUFFER = 10


class KeyboardReader:
    """Reads single key presses from a stream in a background thread.

    A terminal stream is put into cbreak mode for the life of the context.
    Up to ten unread keys are buffered; further keys are dropped.
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream if stream is not None else sys.stdin
        self._keys: "queue.Queue[str]" = queue.Queue(maxsize=_KEY_BUFFER)
        self.interrupted = threading.Event()
        self._fd: Optional[int] = None
        self._saved_mode = None

    def __enter__(self) -> "KeyboardReader":
        self._fd = self._terminal_fd()
        if self._fd is not None:
            self._saved_mode = termios.tcgetattr(self._fd)
            tty.setcbreak(self._fd)
        threading.Thread(target=self._read_loop, daemon=True).start()
        return self

    def __exit__(self, *args) -> None:
        if self._saved_mode is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved_mode)
            self._saved_mode = None

    def poll(self) -> Optional[str]:
        """Return the next buffered key, or None if there is none."""
        try:
            return self._keys.get_nowait()
        except queue.Empty:
            return None

    def _terminal_fd(self) -> Optional[int]:
        if termios is None:
            return None
        try:
            fd = self._stream.fileno()
        except (AttributeError, OSError, ValueError):
            return None
        return fd if self._stream.isatty() else None

    def _read_loop(self) -> None:
        while True:
            try:
                char = self._stream.read(1)
            except (OSError, ValueError):
                return
            if not char:
                return
            if char == CTRL_C:
                self.interrupted.set()
            try:
                self._keys.put_nowait(char)
            except queue.Full:
                pass


def init_terminal(out: Optional[TextIO] = None) -> None:
    """Hide the cursor."""
    out = out if out is not None else sys.stdout
    out.write("\x1b[?25l")
    out.flush()


def restore_terminal(out: Optional[TextIO] = None) -> None:
    """Reset attributes, show the cursor, clear the screen and home it."""
    out = out if out is not None else sys.stdout
    out.write("\x1b[0m\x1b[?25h\x1b[2J\x1b[H")
    out.flush()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the ROM named on the command line until interrupted."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("usage: chip8term rom_path")
        return 1
    rom_path = args[0]

    keymap = load_keymap(KEYMAP_PATH)
    try:
        rom = Path(rom_path).read_bytes()
    except OSError:
        print(f"Failed to load rom: {rom_path}")
        return 1

    stop = threading.Event()
    try:
        previous = signal.signal(signal.SIGTERM, lambda *_: stop.set())
    except ValueError:  # not on the main thread
        previous = None

    error: Optional[BaseException] = None
    out = sys.stdout
    try:
        with KeyboardReader(sys.stdin) as keyboard:
            system = System(rom, keymap, Display(out), keyboard.poll, random.Random())
            system.delay_timer.start()
            system.sound_timer.start()
            init_terminal(out)
            try:
                while not (stop.is_set() or keyboard.interrupted.is_set()):
                    system.step()
            except KeyboardInterrupt:
                pass
            except (EmulatorError, TerminalTooSmallError, OSError) as exc:
                error = exc
            finally:
                system.close()
                restore_terminal(out)
    finally:
        if previous is not None:
            signal.signal(signal.SIGTERM, previous)

    if error is not None:
        print(error)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())