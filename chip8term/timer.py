"""A 60 Hz countdown timer as used for the delay and sound timers."""

from __future__ import annotations

import threading
from typing import Callable, Optional

TICK_RATE = 60


class Timer:
    """An 8-bit value that counts down to zero at 60 Hz.

    ``action`` is invoked on every tick that decrements the value.
    """

    def __init__(self, action: Optional[Callable[[], None]] = None) -> None:
        self._value = 0
        self._action = action
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def set(self, value: int) -> None:
        """Set the counter to ``value`` (0-255)."""
        if not 0 <= value <= 0xFF:
            raise ValueError(f"timer value out of range: {value}")
        with self._lock:
            self._value = value

    def get(self) -> int:
        """Return the current counter value."""
        with self._lock:
            return self._value

    def tick(self) -> None:
        """Advance the timer by one tick."""
        with self._lock:
            if self._value > 0:
                self._value -= 1
                if self._action is not None:
                    self._action()

    def start(self) -> None:
        """Start ticking in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the background thread, if running."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _run(self) -> None:
        interval = 1 / TICK_RATE
        while not self._stop_event.wait(interval):
            self.tick()