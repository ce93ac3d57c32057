"""A small fixed-capacity stack used for the tracer's pushable modes."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

T = TypeVar("T")

PUSHABLE_DEPTH = 8


class StackError(IndexError):
    """Raised on stack overflow, underflow, or an out-of-range index."""


class ArrayStack(Generic[T]):
    """A stack holding at most ``capacity`` values.

    Indexing counts from the top: ``stack[0]`` is the most recently pushed value.
    """

    __slots__ = ("_items", "_capacity")

    def __init__(self, *args: T, capacity: int = PUSHABLE_DEPTH) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        if len(args) >= capacity:
            raise StackError(
                f"{len(args)} initial values do not leave room in a stack of capacity {capacity}"
            )
        self._capacity = capacity
        self._items: list[T] = list(args)

    @property
    def capacity(self) -> int:
        """The maximum number of values the stack can hold."""
        return self._capacity

    def clear(self) -> None:
        """Remove every value."""
        self._items.clear()

    def __getitem__(self, index: int) -> T:
        if not isinstance(index, int) or isinstance(index, bool):
            raise TypeError(f"stack indices must be integers, not {type(index).__name__}")
        if not 0 <= index < len(self._items):
            raise StackError(f"Index {index} out of bound!")
        return self._items[len(self._items) - 1 - index]

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def peek(self) -> T:
        """Return the top value without removing it."""
        if not self._items:
            raise StackError("Stack contains no elements!")
        return self._items[-1]

    def push(self, value: T) -> None:
        """Put a value on top of the stack."""
        if len(self._items) >= self._capacity:
            raise StackError("Stack overflow!")
        self._items.append(value)

    def pop(self) -> T:
        """Remove and return the top value."""
        if not self._items:
            raise StackError("Stack underflow!")
        return self._items.pop()

    def __repr__(self) -> str:
        values: Any = ", ".join(repr(v) for v in self._items)
        return f"ArrayStack([{values}], capacity={self._capacity})"