"""
Command line front end for the Lua bridge.

Usage:
    python -m lua_bridge.cli eval "return 1 + 2"
    python -m lua_bridge.cli run script.lua
    python -m lua_bridge.cli call add --file lib.lua --args '[2, 3]'
    python -m lua_bridge.cli --json eval "return {a = 1}"
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Callable, List, Optional

from .kernel.engine import LuaEngine
from .kernel.schema import EngineConfig
from .kernel.variant import Variant


def build_engine(args: argparse.Namespace) -> LuaEngine:
    """Create an engine, resolving settings from flags then LUA_BRIDGE_* variables."""
    return LuaEngine(config=EngineConfig.from_env(max_table_depth=args.max_depth))


def emit_result(
    engine: LuaEngine,
    result: Variant,
    as_json: bool,
    output_sink: Callable[[str], None] = print,
) -> int:
    """Print a result, or the pending error to stderr. Returns the exit status."""
    if engine.is_error():
        state = engine.error_state
        print(f"✗ {state.kind}: {state.message}", file=sys.stderr)
        return 1

    if as_json:
        output_sink(json.dumps(result.to_python(), indent=2))
    elif result.is_valid():
        output_sink(result.to_string())
    return 0


# =============================================================================
# Commands
# =============================================================================

def cmd_eval(args: argparse.Namespace) -> int:
    """Evaluate a chunk of Lua source."""
    with build_engine(args) as engine:
        result = engine.evaluate(args.source)
        return emit_result(engine, result, args.json)


def cmd_run(args: argparse.Namespace) -> int:
    """Evaluate a Lua file."""
    with build_engine(args) as engine:
        result = engine.evaluate_file(args.path)
        return emit_result(engine, result, args.json)


def cmd_call(args: argparse.Namespace) -> int:
    """Invoke a global function, optionally after loading a file."""
    call_args: List[Any] = []
    if args.args:
        try:
            call_args = json.loads(args.args)
        except json.JSONDecodeError as e:
            print(f"✗ Invalid JSON arguments: {e}", file=sys.stderr)
            return 1
        if not isinstance(call_args, list):
            call_args = [call_args]

    with build_engine(args) as engine:
        if args.file:
            engine.evaluate_file(args.file)
            if engine.is_error():
                return emit_result(engine, Variant(), args.json)

        result = engine.invoke(args.function, [Variant(arg) for arg in call_args])
        return emit_result(engine, result, args.json)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="lua-bridge",
        description="Evaluate Lua through the Variant marshaling engine",
    )
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--max-depth", type=int, help="Maximum table nesting to convert")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log engine activity")
    subparsers = parser.add_subparsers(dest="command", required=True)

    eval_parser = subparsers.add_parser("eval", help="Evaluate Lua source")
    eval_parser.add_argument("source", help="Lua chunk to evaluate")

    run_parser = subparsers.add_parser("run", help="Evaluate a Lua file")
    run_parser.add_argument("path", help="Path to the Lua file")

    call_parser = subparsers.add_parser("call", help="Invoke a global Lua function")
    call_parser.add_argument("function", help="Name of the global function")
    call_parser.add_argument("--file", "-f", help="Lua file to load first")
    call_parser.add_argument("--args", "-a", help="JSON array of arguments")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "eval":
        return cmd_eval(args)
    elif args.command == "run":
        return cmd_run(args)
    elif args.command == "call":
        return cmd_call(args)

    return 1


if __name__ == "__main__":
    sys.exit(main())
