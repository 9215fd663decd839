"""
ValueStack: the operand stack values travel through between host and VM.

Slots hold raw Lua-side values (None for nil, Python scalars, lupa tables and
functions). Depth is counted from the bottom, so callers can record ``top()``
before an operation and read back whatever was left above it.
"""

from __future__ import annotations

from typing import Any, List


class ValueStack:
    def __init__(self) -> None:
        self._slots: List[Any] = []

    def top(self) -> int:
        return len(self._slots)

    def push(self, value: Any) -> None:
        self._slots.append(value)

    def peek(self) -> Any:
        if not self._slots:
            raise IndexError("peek on an empty value stack")
        return self._slots[-1]

    def pop(self) -> Any:
        if not self._slots:
            raise IndexError("pop on an empty value stack")
        return self._slots.pop()

    def pop_many(self, count: int) -> List[Any]:
        """Remove the top ``count`` slots, returned bottom-first."""
        if count <= 0:
            return []
        if count > len(self._slots):
            raise IndexError(f"cannot pop {count} values from a stack of {len(self._slots)}")
        values = self._slots[-count:]
        del self._slots[-count:]
        return values

    def settop(self, depth: int) -> None:
        """Discard everything above ``depth``."""
        del self._slots[depth:]

    def __len__(self) -> int:
        return len(self._slots)
