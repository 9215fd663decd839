"""
Pytest configuration, shared fixtures and shared BDD steps for the bridge tests.
"""
from pathlib import Path

import pytest
from pytest_bdd import given, parsers, then, when

from lua_bridge import ErrorCode, LuaEngine, VariantType


@pytest.fixture
def engine():
    """Create a LuaEngine owning its own runtime."""
    lua_engine = LuaEngine()

    yield lua_engine

    # Cleanup
    lua_engine.close()


@pytest.fixture
def test_context():
    """Shared context for passing data between steps."""
    return {
        "engine": None,
        "result": None,
        "lua_file": None,
    }


@pytest.fixture
def lua_file(tmp_path):
    """Write Lua source to a temporary file and return its path."""
    def write(source: str, name: str = "script.lua") -> Path:
        path = tmp_path / name
        path.write_text(source, encoding="utf-8")
        return path
    return write


# =============================================================================
# Shared Steps
# =============================================================================


@given("a fresh Lua engine")
def fresh_engine(test_context, engine):
    test_context["engine"] = engine


@given(parsers.parse('the script "{source}" has been evaluated'))
def script_evaluated(test_context, source):
    engine = test_context["engine"]
    engine.evaluate(source)
    assert not engine.is_error(), engine.error_text


@when(parsers.parse('I evaluate "{source}"'))
def evaluate_source(test_context, source):
    test_context["result"] = test_context["engine"].evaluate(source)


@then(parsers.parse("the result kind is {kind}"))
def result_kind(test_context, kind):
    assert test_context["result"].type == VariantType[kind]


@then(parsers.parse('the result renders as "{text}"'))
def result_renders(test_context, text):
    assert test_context["result"].to_string() == text


@then("the engine has no error")
def no_error(test_context):
    engine = test_context["engine"]
    assert engine.error == ErrorCode.NONE
    assert engine.error_text == ""


@then("the value stack is empty")
def stack_empty(test_context):
    assert test_context["engine"].stack_top() == 0
