"""
Gateways: the callables Lua invokes when a script calls into the host.

Each gateway is bound into a Lua closure as its upvalue (see
LuaEngine._install_gateway), together with everything it needs to forward
the call: a weak reference to the engine plus either a native function and
its user data, or a Scriptable and a method name. Nothing is looked up
through VM globals.

Call protocol:
    1. Lua arguments are pushed onto the engine's value stack.
    2. They are popped back one at a time, last argument first, and each is
       prepended so the list ends up in call order.
    3. The target is invoked with that list.
    4. The result (a Variant, or plain data wrapped into one) is pushed and
       handed back as exactly one return value when valid;
       an invalid result returns nothing.
"""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Any, Callable, Optional

from .scriptable import Scriptable
from .variant import Variant, VariantList, as_variant

if TYPE_CHECKING:
    from .engine import LuaEngine

NativeFunction = Callable[[VariantList, Any], Variant]


class Gateway:
    def __init__(self, engine: "LuaEngine") -> None:
        self._engine_ref = weakref.ref(engine)

    @property
    def engine(self) -> "LuaEngine":
        engine = self._engine_ref()
        if engine is None:
            raise RuntimeError("LuaEngine behind this gateway no longer exists")
        return engine

    def __call__(self, *lua_args: Any) -> Any:
        engine = self.engine
        stack = engine.stack
        base = stack.top()

        try:
            for value in lua_args:
                stack.push(value)

            args: VariantList = []
            for _ in range(stack.top() - base):
                args.insert(0, engine.pop_value())

            result = as_variant(self.dispatch(args))

            if result.is_valid():
                engine.push_value(result)
        except BaseException:
            stack.settop(base)
            raise
        return engine.pack_results(base)

    def dispatch(self, args: VariantList) -> Optional[Variant]:
        raise NotImplementedError


class FunctionGateway(Gateway):
    """Forwards to a native function ``fn(args, user_data)``."""

    def __init__(self, engine: "LuaEngine", function: NativeFunction, user_data: Any = None) -> None:
        super().__init__(engine)
        self.function = function
        self.user_data = user_data

    def dispatch(self, args: VariantList) -> Optional[Variant]:
        return self.function(args, self.user_data)


class MethodGateway(Gateway):
    """Forwards to ``scriptable.invoke_method(method_name, args)``."""

    def __init__(self, engine: "LuaEngine", method_name: str, scriptable: Scriptable) -> None:
        super().__init__(engine)
        self.method_name = method_name
        self.scriptable = scriptable

    def dispatch(self, args: VariantList) -> Optional[Variant]:
        return self.scriptable.invoke_method(self.method_name, args)
