# chip8term

A CHIP-8 interpreter that runs in your terminal. It draws the 64×32 display
with coloured block characters and uses ANSI escape sequences to place them.
While the sound timer counts down, the terminal bell rings.

## Installation

```
pip install .
```

## Usage

```
chip8term path/to/rom.ch8
```

If no ROM path is given, the command prints `usage: chip8term rom_path` and
exits with status 1. It does the same if the ROM cannot be read.

While it runs, the cursor is hidden and the terminal is put into cbreak mode.
This only happens on POSIX systems when standard input is a terminal.
Instructions run one after another as fast as possible. The delay timer and
the sound timer each count down at 60 Hz in a background thread.

To stop the interpreter, press Ctrl-C or send it SIGTERM. When it exits, it
resets the colours, shows the cursor again and clears the screen.

The program stops with status 1 and prints the reason when any of these
happens:

- an unknown opcode in the `8XYN` or `FXNN` groups,
- a return with an empty call stack,
- a memory access past the end of the 4 KiB memory,
- a terminal smaller than 64 columns by 32 rows, checked each time a sprite
  is drawn.

## Key mapping

The keymap is read from a file named `KEYMAP` in the current directory. The
file lists up to sixteen characters, and a file with more than sixteen is an
error. Newlines are ignored. Each character is lower-cased and assigned to a
keypad value in this order:

```
1 2 3 C
4 5 6 D
7 8 9 E
A 0 B F
```

For example, a `KEYMAP` file for a QWERTY keyboard could be:

```
1234
qwer
asdf
zxcv
```

Typed characters are looked up exactly as they arrive, so with the file above
you must type lower-case letters. A typed character that is not in the map
reads as keypad value `0`. If the file is missing, the program prints
`Failed to load keymap: ./KEYMAP` and runs with an empty map, so every key
then reads as `0`.

Each character read from the terminal counts as one key press. Up to ten
unread presses are kept, and any further presses are dropped.

## Behaviour notes

- `BNNN` jumps to `V0 + NNN`.
- `8XY6` and `8XYE` shift `Vx` only and ignore `Vy`.
- `FX55` and `FX65` leave `I` unchanged.
- `FX1E` sets `VF` to 1 when `I` goes past `0xFFF`, and to 0 otherwise.
- `FX0A` waits until a key has been pressed and then released or replaced by
  another key. It then stores the first key.
- Opcodes in the `0NNN` and `EXNN` groups other than `00E0`, `00EE`, `EX9E`
  and `EXA1` do nothing.
- A ROM larger than the space above `0x200` is cut off to fit.

## What it does not do

- Instruction speed is not limited or configurable.
- Key releases are not tracked. A key counts as pressed only on the step that
  reads its character.
- Compatibility variants, such as shifting `Vy` or incrementing `I` in
  `FX55`/`FX65`, cannot be selected.
- There is no window or sound output beyond the terminal and its bell.

## Library use

Each part of the interpreter can be used on its own:

- `chip8term.system.System(rom, keymap, display, key_source, rng)` holds the
  memory, registers, call stack and timers. `step()` fetches and runs one
  instruction. `fetch()` and `decode(instruction)` do the two halves
  separately. `key_source` is a callable that returns a typed character or
  `None`. The timers start stopped; call `delay_timer.start()` and
  `sound_timer.start()` to run them, and `close()` to stop them.
- `chip8term.system.parse_keymap(text)` and `load_keymap(path)` build a keymap.
- `chip8term.display.Display(out, size_provider)` is the framebuffer. It has
  `draw_sprite(sprite, pos_x, pos_y, n)`, `clear_screen()` and `pixel(x, y)`.
- `chip8term.timer.Timer(action)` is a countdown timer. It has `set`, `get`
  and `tick`, plus `start` and `stop` to run it in a background thread.
- `chip8term.stack.Stack` is the call stack. Its `peek` and `pop` raise
  `StackEmptyError` when it is empty.
- `chip8term.cli.KeyboardReader` reads key presses from a stream.

The example below draws the font glyph for `5` into an in-memory display:

```python
import io

from chip8term.display import Display
from chip8term.system import System

display = Display(io.StringIO(), size_provider=lambda: (80, 40))
rom = bytes([0x60, 0x05, 0xF0, 0x29, 0xD1, 0x15])  # V0=5; I=font(V0); draw
machine = System(rom, display=display)
for _ in range(3):
    machine.step()
print(display.pixel(0, 0))  # True
```

## Running the tests

```
pip install .[test]
pytest
```