"""
Kernel: the machinery of the bridge.

This module contains the marshaling infrastructure:
- variant: Host-side value model
- scriptable: Per-object dispatch tables of exposed methods
- stack: Operand stack values cross the boundary on
- handles: Registry of retained Lua functions
- gateway: Callables Lua invokes to reach the host
- reference: Proxies bound to named Lua globals
- schema: Engine configuration and error state
- engine: The marshaling engine around a Lua VM
"""
from .variant import Variant, VariantList, VariantMap, VariantType, as_variant
from .scriptable import Scriptable, exposed
from .stack import ValueStack
from .handles import HandleRegistry
from .gateway import FunctionGateway, MethodGateway, NativeFunction
from .reference import GlobalReference
from .schema import EngineConfig, ErrorCode, ErrorState
from .engine import LuaEngine

__all__ = [
    # Values
    "Variant",
    "VariantList",
    "VariantMap",
    "VariantType",
    "as_variant",
    # Dispatch
    "Scriptable",
    "exposed",
    "FunctionGateway",
    "MethodGateway",
    "NativeFunction",
    # Machinery
    "ValueStack",
    "HandleRegistry",
    "GlobalReference",
    # Schema
    "EngineConfig",
    "ErrorCode",
    "ErrorState",
    # Engine
    "LuaEngine",
]
