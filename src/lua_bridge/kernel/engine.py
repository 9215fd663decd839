"""
LuaEngine: the marshaling engine between Variants and an embedded Lua VM.

Architecture:
    host ──> push_value ──┐                 ┌──> pop_value ──> host
                          ├── ValueStack ───┤
    Lua  <── results  ────┘                 └──── arguments <── Lua
                                 │
                      FunctionGateway / MethodGateway

Every value crossing the boundary goes through the engine's value stack:
push_value converts a Variant into a raw Lua value and pushes it, pop_value
converts the top raw value back into a Variant and removes it. Entry points
record the stack depth first and collect whatever the VM left above it as
their return set.

Failures never raise. They are recorded in a single error slot (code and
message) that stays set until clear_error() is called, so callers must check
error / is_error() rather than the shape of the returned Variant.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

from lupa import LuaError, LuaRuntime, LuaSyntaxError, lua_type

from .gateway import FunctionGateway, Gateway, MethodGateway, NativeFunction
from .handles import HandleRegistry
from .reference import GlobalReference
from .schema import EngineConfig, ErrorCode, ErrorState
from .scriptable import Scriptable
from .stack import ValueStack
from .variant import Variant, VariantList, VariantMap, VariantType, as_variant, variant_list

logger = logging.getLogger(__name__)

# Range of a 64-bit lua_Integer; larger ints are pushed as numbers
LUA_INTEGER_MIN = -(2 ** 63)
LUA_INTEGER_MAX = 2 ** 63 - 1

# Calls f with the given arguments and returns every result packed with its
# count, so trailing nils survive the trip back into Python.
_PACK_CALL = """
local select = select
local function pack(...)
    return {n = select('#', ...), ...}
end
return function(f, ...)
    return pack(f(...))
end
"""

# Wraps a gateway into a real Lua function holding it as its only upvalue.
# The gateway answers with a packed table; the closure unpacks it so Lua sees
# zero or one return values.
_GATEWAY_CLOSURE = """
local unpack = table.unpack or unpack
return function(gateway)
    return function(...)
        local results = gateway(...)
        return unpack(results, 1, results.n)
    end
end
"""


class LuaEngine:
    """
    Host-side wrapper around a Lua VM.

    Example:
        engine = LuaEngine()
        engine.evaluate("function add(x, y) return x + y end")
        engine["add"](2, 3)          # -> Variant(REAL, 5)
        engine["greeting"] = "hi"
        engine["greeting"].value()   # -> Variant(STRING, 'hi')
    """

    def __init__(
        self,
        runtime: Optional[LuaRuntime] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            runtime: An existing LuaRuntime to borrow. The engine never tears
                a borrowed runtime down. When omitted the engine creates and
                owns its own.
            config: Engine settings; defaults to EngineConfig().
        """
        self.config = config or EngineConfig()
        self._stack = ValueStack()
        self._handles = HandleRegistry()
        self._error = ErrorState()
        self._lua: Optional[LuaRuntime] = None
        self._owns_runtime = False
        self._attach(runtime)

    def _create_runtime(self) -> LuaRuntime:
        # Strings come back from the VM as bytes and are decoded by
        # _decode(), so arbitrary Lua byte strings never fail to convert.
        options = {
            "encoding": None,
            "source_encoding": self.config.encoding,
            "register_eval": self.config.expose_python,
            "register_builtins": self.config.expose_python,
        }
        if self.config.max_memory is not None:
            options["max_memory"] = self.config.max_memory
        return LuaRuntime(**options)

    def _attach(self, runtime: Optional[LuaRuntime]) -> None:
        if runtime is None:
            runtime = self._create_runtime()
            self._owns_runtime = True
        else:
            self._owns_runtime = False

        self._lua = runtime
        self._globals = runtime.globals()
        self._pack_call = runtime.execute(_PACK_CALL)
        self._make_closure = runtime.execute(_GATEWAY_CLOSURE)
        self._stack.settop(0)
        self._handles.clear()
        self.clear_error()

    def _require_runtime(self) -> LuaRuntime:
        if self._lua is None:
            raise RuntimeError("LuaEngine is closed")
        return self._lua

    @property
    def runtime(self) -> LuaRuntime:
        """The underlying lupa runtime."""
        return self._require_runtime()

    @property
    def owns_runtime(self) -> bool:
        return self._owns_runtime

    @property
    def stack(self) -> ValueStack:
        return self._stack

    def stack_top(self) -> int:
        return self._stack.top()

    def reset(self) -> None:
        """Replace the VM with a fresh owned one.

        Registered objects, functions, handles and error state are dropped.
        A borrowed runtime is left untouched.
        """
        self._attach(None)

    def close(self) -> None:
        """Release an owned runtime or detach from a borrowed one."""
        if self._lua is None:
            return
        if self._owns_runtime:
            logger.debug("Releasing owned Lua runtime")
        self._handles.clear()
        self._stack.settop(0)
        self._lua = None
        self._globals = None
        self._pack_call = None
        self._make_closure = None

    def __enter__(self) -> "LuaEngine":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Error slot
    # ------------------------------------------------------------------

    def clear_error(self) -> None:
        self._error = ErrorState()

    @property
    def error(self) -> ErrorCode:
        """Current error code; ErrorCode.NONE (0) when no error is pending."""
        return self._error.code

    @property
    def error_text(self) -> str:
        return self._error.message

    @property
    def error_state(self) -> ErrorState:
        return self._error

    def is_error(self) -> bool:
        return self._error.code != ErrorCode.NONE

    def _record_error(self, code: ErrorCode, error: Union[BaseException, str]) -> None:
        self._error = ErrorState(code=code, message=str(error))
        logger.debug("Lua %s (%d): %s", self._error.kind, int(code), self._error.message)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def evaluate(self, source: str) -> Variant:
        """
        Run a chunk of Lua source and collect its return values.

        Does not clear a pending error; while one is pending the result is
        always invalid.

        Returns:
            Invalid for no results, the value itself for one result, or a
            list of values in return order.
        """
        self._require_runtime()
        top = self._stack.top()
        self._load_and_run(source)
        return self._pop_return_values(top)

    def evaluate_file(self, path: Union[str, Path]) -> Variant:
        """Run a Lua source file. Clears any pending error first."""
        self._require_runtime()
        self.clear_error()
        top = self._stack.top()
        try:
            source = Path(path).read_text(encoding=self.config.encoding)
        except (OSError, UnicodeDecodeError):
            self._record_error(ErrorCode.FILE, f"cannot open {path}")
        else:
            self._load_and_run(source)
        return self._pop_return_values(top)

    def invoke(self, name: str, args: Optional[Iterable[Any]] = None) -> Variant:
        """
        Call the global function ``name`` with ``args`` in protected mode.

        An undefined global is a lookup miss, not an error: the result is
        invalid and the error slot is left alone.
        """
        self._require_runtime()
        function = self._globals[self._encode(name)]
        if function is None:
            logger.debug("invoke: global %r is not defined", name)
            return Variant()
        return self._call(function, args)

    def call_handle(self, handle: Union[int, Variant], args: Optional[Iterable[Any]] = None) -> Variant:
        """Call a Lua function previously retained as a handle by pop_value()."""
        self._require_runtime()
        if isinstance(handle, Variant):
            handle = handle.to_integer()
        function = self._handles.get(handle)
        if function is None:
            logger.debug("call_handle: no function behind handle %r", handle)
            return Variant()
        return self._call(function, args)

    def release_handle(self, handle: Union[int, Variant]) -> bool:
        """Drop a retained function handle. Returns False if it was unknown."""
        if isinstance(handle, Variant):
            handle = handle.to_integer()
        released = self._handles.unref(handle)
        if released:
            logger.debug("Released function handle %d", handle)
        return released

    @property
    def handle_count(self) -> int:
        return len(self._handles)

    def _call(self, function: Any, args: Optional[Iterable[Any]]) -> Variant:
        top = self._stack.top()
        arguments = variant_list(list(args or []))
        self._stack.push(function)
        for arg in arguments:
            self.push_value(arg)
        self._pcall(len(arguments))
        return self._pop_return_values(top)

    def _load_and_run(self, source: str) -> ErrorCode:
        try:
            chunk = self._lua.compile(source)
        except LuaSyntaxError as exc:
            self._record_error(ErrorCode.SYNTAX, exc)
            return ErrorCode.SYNTAX
        except LuaError as exc:
            code = ErrorCode.MEMORY if isinstance(exc, MemoryError) else ErrorCode.RUNTIME
            self._record_error(code, exc)
            return code
        self._stack.push(chunk)
        return self._pcall(0)

    def _pcall(self, nargs: int) -> ErrorCode:
        """
        Pop a function and its ``nargs`` arguments, call it, push its results.

        On failure nothing is pushed and the error slot is set.
        """
        args = self._stack.pop_many(nargs)
        function = self._stack.pop()
        try:
            results = self._pack_call(function, *args)
        except Exception as exc:
            # LuaError, or a Python exception re-raised by lupa from a gateway
            code = ErrorCode.MEMORY if isinstance(exc, MemoryError) else ErrorCode.RUNTIME
            self._record_error(code, exc)
            return code

        for index in range(1, results[b"n"] + 1):
            self._stack.push(results[index])
        return ErrorCode.NONE

    def _pop_return_values(self, top: int) -> Variant:
        if self.is_error():
            self._stack.settop(top)
            return Variant()

        values: VariantList = []
        for _ in range(self._stack.top() - top):
            values.insert(0, self.pop_value())

        if not values:
            return Variant()
        if len(values) == 1:
            return values[0]
        return Variant(values)

    def pack_results(self, base: int) -> Any:
        """Move everything above ``base`` into a Lua table ``{n = count, ...}``."""
        values = self._stack.pop_many(self._stack.top() - base)
        results = self._require_runtime().table(*values)
        results[b"n"] = len(values)
        return results

    # ------------------------------------------------------------------
    # Host callables
    # ------------------------------------------------------------------

    def register_object(self, name: str, scriptable: Optional[Scriptable]) -> None:
        """Expose every method in ``scriptable``'s dispatch table as ``name.method``."""
        lua = self._require_runtime()
        if scriptable is None:
            return

        table = lua.table()
        for method_name in scriptable.methods:
            table[self._encode(method_name)] = self._install_gateway(MethodGateway(self, method_name, scriptable))
        self._globals[self._encode(name)] = table

    def register_function(self, name: str, function: NativeFunction, user_data: Any = None) -> None:
        """Expose ``function(args, user_data) -> Variant`` as the global ``name``."""
        self._require_runtime()
        if not callable(function):
            return
        self._globals[self._encode(name)] = self._install_gateway(FunctionGateway(self, function, user_data))

    def function(self, name: Optional[str] = None, user_data: Any = None) -> Callable[[NativeFunction], NativeFunction]:
        """
        Decorator to register a native function.

        Example:
            @engine.function("sum")
            def total(args, data):
                return Variant(sum(arg.to_real() for arg in args))
        """
        def decorator(function: NativeFunction) -> NativeFunction:
            self.register_function(name or function.__name__, function, user_data)
            return function
        return decorator

    def _install_gateway(self, gateway: Gateway) -> Any:
        return self._make_closure(gateway)

    # ------------------------------------------------------------------
    # Globals
    # ------------------------------------------------------------------

    def global_value(self, identifier: str) -> Variant:
        """Read a global. A nil global reads as null."""
        self._require_runtime()
        top = self._stack.top()
        self._stack.push(self._globals[self._encode(identifier)])
        return self._pop_return_values(top)

    def set_global_value(self, identifier: str, value: Any) -> None:
        """Write a global. Invalid and null values delete it."""
        self._require_runtime()
        self.push_value(value)
        self._globals[self._encode(identifier)] = self._stack.pop()

    def __getitem__(self, identifier: str) -> GlobalReference:
        return GlobalReference(identifier, self)

    def __setitem__(self, identifier: str, value: Any) -> None:
        self.set_global_value(identifier, value)

    # ------------------------------------------------------------------
    # Marshaling
    # ------------------------------------------------------------------

    def push_value(self, value: Any) -> None:
        """Convert ``value`` (a Variant, or data a Variant can hold) and push it."""
        self._require_runtime()
        self._stack.push(self._to_lua(as_variant(value)))

    def _to_lua(self, value: Variant) -> Any:
        kind = value.type
        if kind == VariantType.BOOLEAN:
            return value.to_boolean()
        if kind == VariantType.INTEGER:
            number = value.to_integer()
            if LUA_INTEGER_MIN <= number <= LUA_INTEGER_MAX:
                return number
            try:
                return float(number)
            except OverflowError:
                return math.copysign(math.inf, number)
        if kind == VariantType.REAL:
            return value.to_real()
        if kind == VariantType.STRING:
            return self._encode(value.string())
        if kind == VariantType.LIST:
            # Lua sequences start at 1
            return self._lua.table(*[self._to_lua(item) for item in value.list()])
        if kind == VariantType.MAP:
            table = self._lua.table()
            entries = value.map()
            for key in sorted(entries):
                table[self._encode(key)] = self._to_lua(entries[key])
            return table
        # Invalid and null
        return None

    def pop_value(self) -> Variant:
        """Convert the top of the stack into a Variant and remove it."""
        return self.pop_value_safe(self.config.max_table_depth)

    def pop_value_safe(self, table_level: int) -> Variant:
        """
        Pop the top value, allowing at most ``table_level`` levels of tables.

        A table reached with no levels left becomes an invalid entry inside
        its parent. A function is not converted: it moves into the handle
        registry and the handle id comes back as an integer Variant.
        """
        raw = self._stack.peek()
        kind = lua_type(raw)

        if kind == "function":
            return Variant(self._handles.ref(self._stack.pop()))

        self._stack.pop()
        if raw is None:
            return Variant.null()
        if kind == "table":
            if table_level <= 0:
                return Variant()
            return self._table_to_variant(raw, table_level)
        if kind is not None:
            # userdata, thread
            return Variant()
        if isinstance(raw, bool):
            return Variant(raw)
        if isinstance(raw, (int, float)):
            return Variant(float(raw))
        if isinstance(raw, str):
            return Variant(raw)
        if isinstance(raw, bytes):
            return Variant(self._decode(raw))
        return Variant()

    def _table_to_variant(self, table: Any, table_level: int) -> Variant:
        """
        Classify a table as a list or a map.

        String keys build a map; every other key appends its value to a
        sequence. When both are present the sequence is folded into the map
        under "1", "2", ... by position. An empty table is an empty map.
        """
        mapping: VariantMap = {}
        sequence: VariantList = []

        for key, value in table.items():
            self._stack.push(value)
            converted = self.pop_value_safe(table_level - 1)
            if isinstance(key, bytes):
                key = self._decode(key)
            if isinstance(key, str):
                mapping[key] = converted
            else:
                sequence.append(converted)

        if not mapping:
            if not sequence:
                return Variant(VariantType.MAP)
            return Variant(sequence)

        for index, item in enumerate(sequence, start=1):
            mapping[str(index)] = item
        return Variant(mapping)

    def _decode(self, raw: bytes) -> str:
        return raw.decode(self.config.encoding, errors="replace")

    def _encode(self, text: str) -> bytes:
        return text.encode(self.config.encoding, errors="replace")
