"""
lua-bridge: Variant marshaling between Python and an embedded Lua VM.

Public API re-exports from kernel/.
"""
from .kernel.variant import Variant, VariantList, VariantMap, VariantType, as_variant
from .kernel.scriptable import Scriptable, exposed
from .kernel.reference import GlobalReference
from .kernel.schema import EngineConfig, ErrorCode, ErrorState
from .kernel.engine import LuaEngine

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
    # Globals
    "GlobalReference",
    # Schema
    "EngineConfig",
    "ErrorCode",
    "ErrorState",
    # Engine
    "LuaEngine",
]
