from __future__ import annotations

from typing import Any, Dict, Optional


class HandleRegistry:
    """Keeps Lua values the Variant model cannot hold, keyed by integer handle.

    Holding the lupa object keeps the Lua value referenced (and so alive) in
    the VM until the handle is released.
    """

    def __init__(self) -> None:
        self._values: Dict[int, Any] = {}
        self._next = 1

    def ref(self, value: Any) -> int:
        handle = self._next
        self._next += 1
        self._values[handle] = value
        return handle

    def get(self, handle: int) -> Optional[Any]:
        return self._values.get(handle)

    def unref(self, handle: int) -> bool:
        return self._values.pop(handle, None) is not None

    def clear(self) -> None:
        self._values.clear()

    def __contains__(self, handle: object) -> bool:
        return handle in self._values

    def __len__(self) -> int:
        return len(self._values)
