"""
Step definitions for the global reference feature.
"""
import json

from pytest_bdd import given, parsers, scenarios, then, when

from lua_bridge import GlobalReference, Variant, VariantType

# Load scenarios from feature file
scenarios("../features/global_reference.feature")


@given(parsers.parse('a reference to "{name}" without an engine'), target_fixture="detached")
def detached_reference(name):
    return GlobalReference(name)


@when(parsers.parse('the global "{name}" is set to the string "{text}"'))
def set_global_string(test_context, name, text):
    test_context["engine"][name] = Variant(text)


@when(parsers.parse("the global \"{name}\" is set to the JSON '{text}'"))
def set_global_json(test_context, name, text):
    test_context["engine"].set_global_value(name, Variant(json.loads(text)))


@when(parsers.parse('the global "{name}" is set to {base:d} ** {power:d}'))
def set_global_power(test_context, name, base, power):
    test_context["engine"][name] = base ** power


@when(parsers.parse('the reference "{name}" is called with {a:d} and {b:d}'))
def call_reference(test_context, name, a, b):
    test_context["result"] = test_context["engine"][name](a, b)


@when(parsers.parse('the reference "{name}" is called with five arguments'))
def call_reference_five(test_context, name):
    reference = test_context["engine"][name]
    test_context["result"] = reference(Variant(1), Variant("two"), Variant(3.0), Variant(True), Variant.null())


@when(parsers.parse('the reference "{name}" is called with the list "{a}" and "{b}"'))
def call_reference_list(test_context, name, a, b):
    test_context["result"] = test_context["engine"][name].call([Variant(a), Variant(b)])


@when(parsers.parse('the reference "{name}" is assigned "{text}"'))
def assign_reference(test_context, name, text):
    test_context["engine"][name].assign(text)


@then(parsers.parse('reading the global "{name}" gives the string "{text}"'))
def global_is_string(test_context, name, text):
    value = test_context["engine"][name].value()
    assert value.type == VariantType.STRING
    assert value == Variant(text)


@then(parsers.parse('reading the global "{name}" gives null'))
def global_is_null(test_context, name):
    assert test_context["engine"].global_value(name).is_null()


@then("the detached reference reads as invalid")
def detached_reads_invalid(detached):
    assert not detached.value().is_valid()


@then("calling the detached reference gives invalid")
def detached_call_invalid(detached):
    assert not detached().is_valid()
    assert not detached.call([1, 2]).is_valid()


@then(parsers.parse('reading the global "{name}" gives the real {base:d} ** {power:d}'))
def global_is_big_real(test_context, name, base, power):
    value = test_context["engine"].global_value(name)
    assert value.type == VariantType.REAL
    assert value.to_real() == float(base ** power)
