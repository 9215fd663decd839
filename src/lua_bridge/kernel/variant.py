"""
Variant: the host-side value model.

A Variant holds exactly one kind of value at a time. Container kinds own
their contents: building a Variant from a list, dict or another Variant
always copies, so two Variants never share a container.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Dict, List, Optional

VariantList = List["Variant"]
VariantMap = Dict[str, "Variant"]


class VariantType(Enum):
    """The kinds a Variant can hold."""
    INVALID = 0
    NULL = 1
    BOOLEAN = 2
    INTEGER = 3
    REAL = 4
    STRING = 5
    LIST = 6
    MAP = 7


_EMPTY_PAYLOADS = {
    VariantType.INVALID: lambda: None,
    VariantType.NULL: lambda: None,
    VariantType.BOOLEAN: lambda: False,
    VariantType.INTEGER: lambda: 0,
    VariantType.REAL: lambda: 0.0,
    VariantType.STRING: lambda: "",
    VariantType.LIST: list,
    VariantType.MAP: dict,
}

# Leading numeric prefixes, read the way a stream extraction would.
_INTEGER_PREFIX = re.compile(r"\s*([+-]?\d+)")
_REAL_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


class Variant:
    """
    A tagged value crossing the host/script boundary.

    Example:
        Variant()              # invalid
        Variant.null()         # null
        Variant(3)             # integer
        Variant([1, "a"])      # list of two variants
        Variant({"x": 1.5})    # map
    """

    __slots__ = ("_type", "_value")
    __hash__ = None  # mutable

    def __init__(self, value: Any = None) -> None:
        self._type = VariantType.INVALID
        self._value: Any = None
        self.assign(value)

    @classmethod
    def null(cls) -> "Variant":
        return cls(VariantType.NULL)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def assign(self, value: Any) -> "Variant":
        """Replace the current payload with ``value``.

        Accepts another Variant (deep-copied), a VariantType (empty value of
        that kind), None (invalid), or a plain Python bool, int, float, str,
        list/tuple or dict.
        """
        if isinstance(value, Variant):
            kind, payload = value._type, _copy_payload(value._type, value._value)
        elif isinstance(value, VariantType):
            kind, payload = value, _EMPTY_PAYLOADS[value]()
        elif value is None:
            kind, payload = VariantType.INVALID, None
        elif isinstance(value, bool):
            kind, payload = VariantType.BOOLEAN, value
        elif isinstance(value, int):
            kind, payload = VariantType.INTEGER, value
        elif isinstance(value, float):
            kind, payload = VariantType.REAL, value
        elif isinstance(value, str):
            kind, payload = VariantType.STRING, value
        elif isinstance(value, (list, tuple)):
            kind, payload = VariantType.LIST, [Variant(item) for item in value]
        elif isinstance(value, dict):
            kind = VariantType.MAP
            payload = {str(key): Variant(item) for key, item in sorted(value.items(), key=lambda kv: str(kv[0]))}
        else:
            raise TypeError(f"Cannot hold {type(value).__name__} in a Variant")

        self._type = kind
        self._value = payload
        return self

    def clear(self) -> None:
        """Reset to invalid, dropping any owned payload."""
        self._type = VariantType.INVALID
        self._value = None

    def copy(self) -> "Variant":
        return Variant(self)

    __copy__ = copy

    def __deepcopy__(self, memo: Dict[int, Any]) -> "Variant":
        return Variant(self)

    # ------------------------------------------------------------------
    # Tag queries
    # ------------------------------------------------------------------

    @property
    def type(self) -> VariantType:
        return self._type

    def is_valid(self) -> bool:
        return self._type != VariantType.INVALID

    def is_null(self) -> bool:
        return self._type == VariantType.NULL

    # ------------------------------------------------------------------
    # Coercions (never fail)
    # ------------------------------------------------------------------

    def to_boolean(self, default: bool = False) -> bool:
        if self._type == VariantType.BOOLEAN:
            return self._value
        if self._type == VariantType.INTEGER:
            return self._value != 0
        if self._type == VariantType.STRING:
            return self._value == "true"
        return default

    def to_integer(self, default: int = 0) -> int:
        if self._type == VariantType.BOOLEAN:
            return 1 if self._value else 0
        if self._type == VariantType.INTEGER:
            return self._value
        if self._type == VariantType.REAL:
            try:
                return int(self._value)
            except (OverflowError, ValueError):
                return default
        if self._type == VariantType.STRING:
            match = _INTEGER_PREFIX.match(self._value)
            return int(match.group(1)) if match else default
        return default

    def to_real(self, default: float = 0.0) -> float:
        if self._type == VariantType.BOOLEAN:
            return 1.0 if self._value else 0.0
        if self._type == VariantType.INTEGER:
            return float(self._value)
        if self._type == VariantType.REAL:
            return self._value
        if self._type == VariantType.STRING:
            match = _REAL_PREFIX.match(self._value)
            return float(match.group(1)) if match else default
        return default

    def to_string(self, default: str = "") -> str:
        """Render the canonical text of this value.

        Lists render as ``[a, b]`` and maps as ``{k: v}`` in key order.
        """
        kind = self._type
        if kind == VariantType.INVALID:
            return "invalid"
        if kind == VariantType.NULL:
            return "null"
        if kind == VariantType.BOOLEAN:
            return "true" if self._value else "false"
        if kind == VariantType.INTEGER:
            return str(self._value)
        if kind == VariantType.REAL:
            return "%g" % self._value
        if kind == VariantType.STRING:
            return self._value
        if kind == VariantType.LIST:
            return "[" + ", ".join(item.to_string() for item in self._value) + "]"
        if kind == VariantType.MAP:
            return "{" + ", ".join(
                f"{key}: {self._value[key].to_string()}" for key in sorted(self._value)
            ) + "}"
        return default

    def to_python(self) -> Any:
        """Convert to plain Python data (invalid and null become None)."""
        if self._type == VariantType.LIST:
            return [item.to_python() for item in self._value]
        if self._type == VariantType.MAP:
            return {key: self._value[key].to_python() for key in sorted(self._value)}
        return self._value

    # ------------------------------------------------------------------
    # Direct payload access (tag must match)
    # ------------------------------------------------------------------

    def string(self) -> str:
        self._expect(VariantType.STRING)
        return self._value

    def list(self) -> VariantList:
        self._expect(VariantType.LIST)
        return self._value

    def map(self) -> VariantMap:
        self._expect(VariantType.MAP)
        return self._value

    def _expect(self, kind: VariantType) -> None:
        if self._type != kind:
            raise TypeError(f"Variant holds {self._type.name}, not {kind.name}")

    # ------------------------------------------------------------------
    # Protocols
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Variant):
            return NotImplemented
        return self._type == other._type and self._value == other._value

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Variant({self._type.name}, {self.to_string()!r})"


def as_variant(value: Any) -> Variant:
    """Return ``value`` itself if it is a Variant, else wrap it in one."""
    if isinstance(value, Variant):
        return value
    return Variant(value)


def _copy_payload(kind: VariantType, payload: Any) -> Any:
    if kind == VariantType.LIST:
        return [Variant(item) for item in payload]
    if kind == VariantType.MAP:
        return {key: Variant(item) for key, item in payload.items()}
    return payload


def variant_list(values: Optional[List[Any]] = None) -> VariantList:
    """Wrap every element of ``values`` as a Variant."""
    return [as_variant(value) for value in (values or [])]
