from __future__ import annotations

import os
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, Field


DEFAULT_MAX_TABLE_DEPTH = 16


class ErrorCode(IntEnum):
    """Lua status codes recorded in the engine's error slot."""
    NONE = 0
    RUNTIME = 2
    SYNTAX = 3
    MEMORY = 4
    FILE = 6


_ERROR_KINDS = {
    ErrorCode.NONE: "",
    ErrorCode.RUNTIME: "RuntimeError",
    ErrorCode.SYNTAX: "SyntaxError",
    ErrorCode.MEMORY: "MemoryError",
    ErrorCode.FILE: "FileError",
}


class ErrorState(BaseModel):
    """The engine's single error slot. A non-zero code means an error is pending."""

    code: ErrorCode = ErrorCode.NONE
    message: str = ""

    @property
    def kind(self) -> str:
        return _ERROR_KINDS[self.code]


class EngineConfig(BaseModel):
    """
    Settings for a LuaEngine.

    max_table_depth bounds table nesting when converting Lua values back to
    Variants; deeper tables become invalid entries.
    """

    max_table_depth: int = Field(default=DEFAULT_MAX_TABLE_DEPTH, ge=0)
    encoding: str = "UTF-8"
    max_memory: Optional[int] = Field(default=None, gt=0)
    # Register lupa's python.eval/python.builtins helpers inside the VM
    expose_python: bool = False

    @classmethod
    def from_env(cls, max_table_depth: Optional[int] = None) -> "EngineConfig":
        """
        Resolve settings:
        1. Explicit argument
        2. Environment variables LUA_BRIDGE_*
        3. Defaults
        """
        values = {}

        env_depth = os.environ.get("LUA_BRIDGE_MAX_TABLE_DEPTH")
        if max_table_depth is not None:
            values["max_table_depth"] = max_table_depth
        elif env_depth:
            values["max_table_depth"] = int(env_depth)

        env_encoding = os.environ.get("LUA_BRIDGE_ENCODING")
        if env_encoding:
            values["encoding"] = env_encoding

        env_memory = os.environ.get("LUA_BRIDGE_MAX_MEMORY")
        if env_memory:
            values["max_memory"] = int(env_memory)

        env_expose = os.environ.get("LUA_BRIDGE_EXPOSE_PYTHON")
        if env_expose:
            values["expose_python"] = env_expose.lower() in ("1", "true", "yes")

        return cls(**values)
