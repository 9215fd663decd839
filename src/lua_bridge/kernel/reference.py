from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Any, Iterable, Optional

from .variant import Variant, variant_list

if TYPE_CHECKING:
    from .engine import LuaEngine


class GlobalReference:
    """
    Handle to a named Lua global.

    Reads, writes and calls go through the engine without repeating the
    identifier. The engine is held weakly; without one every operation is a
    no-op returning an invalid Variant.

    Example:
        add = engine["add"]
        add(2, 3)                 # -> Variant(REAL, 5)
        engine["greeting"].assign("hello")
    """

    def __init__(self, identifier: str = "", engine: Optional["LuaEngine"] = None) -> None:
        self.identifier = identifier
        self._engine_ref = weakref.ref(engine) if engine is not None else None

    @property
    def engine(self) -> Optional["LuaEngine"]:
        if self._engine_ref is None:
            return None
        return self._engine_ref()

    def value(self) -> Variant:
        engine = self.engine
        if engine is None:
            return Variant()
        return engine.global_value(self.identifier)

    def assign(self, value: Any) -> "GlobalReference":
        engine = self.engine
        if engine is not None:
            engine.set_global_value(self.identifier, value)
        return self

    def call(self, args: Optional[Iterable[Any]] = None) -> Variant:
        engine = self.engine
        if engine is None:
            return Variant()
        return engine.invoke(self.identifier, variant_list(list(args or [])))

    def __call__(self, *args: Any) -> Variant:
        return self.call(args)

    def __repr__(self) -> str:
        return f"GlobalReference({self.identifier!r})"
