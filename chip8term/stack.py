"""A minimal LIFO stack used for the interpreter's call stack."""

from __future__ import annotations

from typing import Generic, List, TypeVar

T = TypeVar("T")


class StackEmptyError(IndexError):
    """Raised when reading from an empty stack."""


class Stack(Generic[T]):
    """Last-in, first-out container."""

    def __init__(self) -> None:
        self._items: List[T] = []

    def push(self, item: T) -> None:
        """Put ``item`` on top of the stack."""
        self._items.append(item)

    def peek(self) -> T:
        """Return the top item without removing it."""
        if not self._items:
            raise StackEmptyError("peek failed: stack is empty")
        return self._items[-1]

    def pop(self) -> T:
        """Remove and return the top item."""
        if not self._items:
            raise StackEmptyError("pop failed: stack is empty")
        return self._items.pop()

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Stack({self._items!r})"