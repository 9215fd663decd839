"""
Scriptable: host objects whose methods can be called by name from Lua.

A Scriptable carries its own dispatch table mapping exposed names to
callables taking the argument list and returning a Variant. Methods are
registered explicitly with register_method(), or marked with @exposed on a
subclass and picked up at construction.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional

from .variant import Variant, VariantList

ScriptMethod = Callable[[VariantList], Variant]

_EXPOSED_ATTR = "__script_name__"


def exposed(name: Optional[str] = None) -> Callable[[Callable], Callable]:
    """
    Decorator marking a Scriptable method for registration.

    Example:
        class Calculator(Scriptable):
            @exposed("sum")
            def total(self, args):
                return Variant(sum(arg.to_real() for arg in args))
    """
    def decorator(func: Callable) -> Callable:
        setattr(func, _EXPOSED_ATTR, name or func.__name__)
        return func
    return decorator


class Scriptable:
    def __init__(self) -> None:
        self._methods: Dict[str, ScriptMethod] = {}
        for attr in dir(type(self)):
            member = getattr(type(self), attr, None)
            script_name = getattr(member, _EXPOSED_ATTR, None)
            if script_name:
                self.register_method(script_name, getattr(self, attr))

    def register_method(self, name: str, method: ScriptMethod) -> None:
        """Expose ``method`` to scripts as ``name``, replacing any previous binding."""
        self._methods[name] = method

    def invoke_method(self, name: str, args: Optional[VariantList] = None) -> Variant:
        """Invoke a registered method.

        An unknown name is not an error: it returns an invalid Variant.
        """
        method = self._methods.get(name)
        if method is None:
            return Variant()
        return method(list(args or []))

    @property
    def method_count(self) -> int:
        return len(self._methods)

    @property
    def methods(self) -> Mapping[str, ScriptMethod]:
        return MappingProxyType(self._methods)
