"""
Integration tests for engine ownership, configuration and teardown.
"""
import pytest
from lupa import LuaRuntime

from lua_bridge import EngineConfig, ErrorCode, ErrorState, LuaEngine, Variant, VariantType


def test_borrowed_runtime_survives_close():
    runtime = LuaRuntime()
    engine = LuaEngine(runtime)
    engine["shared"] = Variant("kept")
    assert not engine.owns_runtime

    engine.close()

    assert runtime.eval("shared") == "kept"


def test_owned_runtime_is_released_on_close():
    engine = LuaEngine()
    assert engine.owns_runtime

    engine.close()

    with pytest.raises(RuntimeError):
        engine.evaluate("return 1")


def test_context_manager_closes_engine():
    with LuaEngine() as engine:
        assert engine.evaluate("return 2 + 2") == Variant(4.0)

    with pytest.raises(RuntimeError):
        engine.invoke("print")


def test_reset_discards_globals_and_errors():
    engine = LuaEngine()
    engine.evaluate("answer = 42")
    engine.evaluate("return +")
    assert engine.is_error()

    engine.reset()

    assert engine.error == ErrorCode.NONE
    assert engine.global_value("answer").is_null()
    engine.close()


def test_reset_leaves_a_borrowed_runtime_alone():
    runtime = LuaRuntime()
    runtime.execute("marker = 'borrowed'")
    engine = LuaEngine(runtime)

    engine.reset()

    assert engine.owns_runtime
    assert engine.global_value("marker").is_null()
    assert runtime.eval("marker") == "borrowed"
    engine.close()


def test_configured_depth_limits_conversion():
    engine = LuaEngine(config=EngineConfig(max_table_depth=1))

    result = engine.evaluate("return {1, {2}}")

    assert result.type == VariantType.LIST
    assert result.list() == [Variant(1.0), Variant()]
    assert not engine.is_error()
    engine.close()


def test_zero_depth_discards_every_table():
    engine = LuaEngine(config=EngineConfig(max_table_depth=0))

    assert engine.evaluate("return {}").type == VariantType.INVALID
    engine.close()


def test_byte_strings_convert_through_every_entry_point(engine):
    engine.evaluate("raw = '\\255ok' function get_raw() return raw end")

    assert engine.global_value("raw") == Variant("\ufffdok")
    assert engine.invoke("get_raw") == Variant("\ufffdok")
    handle = engine.evaluate("return get_raw")
    assert engine.call_handle(handle) == Variant("\ufffdok")
    assert engine.error == ErrorCode.NONE
    assert engine.stack_top() == 0


def test_configured_encoding_decodes_and_encodes_strings():
    engine = LuaEngine(config=EngineConfig(encoding="latin-1"))
    engine["word"] = "caf\xe9"

    assert engine.evaluate("return #word").to_integer() == 4
    assert engine.evaluate("return '\\255'") == Variant("\xff")
    engine.close()


def test_big_integer_arguments_do_not_raise(engine):
    engine.evaluate("function half(x) return x / 2 end")

    result = engine.invoke("half", [2 ** 70])

    assert result.to_real() == float(2 ** 69)
    assert engine.error == ErrorCode.NONE


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("LUA_BRIDGE_MAX_TABLE_DEPTH", "4")
    monkeypatch.setenv("LUA_BRIDGE_EXPOSE_PYTHON", "true")

    config = EngineConfig.from_env()

    assert config.max_table_depth == 4
    assert config.expose_python is True


def test_explicit_depth_beats_env(monkeypatch):
    monkeypatch.setenv("LUA_BRIDGE_MAX_TABLE_DEPTH", "4")

    assert EngineConfig.from_env(max_table_depth=9).max_table_depth == 9


def test_config_rejects_negative_depth():
    with pytest.raises(ValueError):
        EngineConfig(max_table_depth=-1)


def test_python_helpers_are_hidden_by_default(engine):
    assert engine.evaluate("return python.eval").is_null()
    assert engine.evaluate("return python.builtins").is_null()


def test_non_representable_values_pop_as_invalid(engine):
    assert engine.evaluate("return coroutine.create(function() end)").type == VariantType.INVALID


def test_register_object_ignores_none(engine):
    engine.register_object("Nothing", None)

    assert engine.global_value("Nothing").is_null()


def test_register_function_ignores_non_callables(engine):
    engine.register_function("notafunction", "not callable")

    assert engine.global_value("notafunction").is_null()


def test_unknown_handles_are_a_silent_miss(engine):
    assert not engine.call_handle(999).is_valid()
    assert not engine.release_handle(999)
    assert engine.error == ErrorCode.NONE


def test_gateway_after_engine_is_gone_raises_inside_lua():
    runtime = LuaRuntime()
    engine = LuaEngine(runtime)
    engine.register_function("ping", lambda args, data: Variant("pong"))
    del engine

    with pytest.raises(Exception):
        runtime.execute("return ping()")


def test_error_codes_follow_lua_status_numbers():
    assert {code.name: int(code) for code in ErrorCode} == {
        "NONE": 0,
        "RUNTIME": 2,
        "SYNTAX": 3,
        "MEMORY": 4,
        "FILE": 6,
    }
    assert ErrorState(code=ErrorCode.FILE).kind == "FileError"


def test_encoding_defaults_to_utf8_and_reads_env(monkeypatch):
    assert EngineConfig().encoding == "UTF-8"

    monkeypatch.setenv("LUA_BRIDGE_ENCODING", "latin-1")

    assert EngineConfig.from_env().encoding == "latin-1"
