"""Tests for BrickContext.

Validates output accumulation, integration binding, implicit data flow,
and child scoping for loop bodies.
"""

from __future__ import annotations

import pytest

from brick_runtime.context import BrickContext, validate_output_key, variable_name
from brick_runtime.errors import InvalidOutputKeyError


def test_initial_context_has_input_and_options():
    ctx = BrickContext({"key": "value"}, options={"theme": "dark"})
    data = ctx.get_data()
    assert data["@input"] == {"key": "value"}
    assert data["@options"] == {"theme": "dark"}


def test_options_default_to_empty():
    assert BrickContext({}).get_data()["@options"] == {}


def test_set_output():
    ctx = BrickContext({"k": "v"})
    ctx.set_output("step1", [1, 2, 3])
    data = ctx.get_data()
    assert data["@step1"] == [1, 2, 3]
    assert data["@input"] == {"k": "v"}


def test_set_output_accepts_prefixed_key():
    ctx = BrickContext({})
    ctx.set_output("@html", "<p>")
    assert ctx.get_data()["@html"] == "<p>"


def test_output_key_can_be_reused():
    ctx = BrickContext({})
    ctx.set_output("step1", "first")
    ctx.set_output("step1", "second")
    assert ctx.get_data()["@step1"] == "second"


@pytest.mark.parametrize("key", ["", "@", "1abc", "has space", "a.b", "@@a"])
def test_invalid_output_key(key):
    with pytest.raises(InvalidOutputKeyError):
        validate_output_key(key)


def test_variable_name():
    assert variable_name("my-var") == "@my-var"
    assert variable_name("@my_var") == "@my_var"


def test_set_integration():
    ctx = BrickContext({})
    integration = {"id": "google/sheet", "config": {"spreadsheetId": "abc"}}
    ctx.set_integration("sheet", integration)

    value = ctx.get_data()["@sheet"]
    assert value["spreadsheetId"] == "abc"
    assert value["__service"] == integration


def test_render_context_explicit_data_flow_ignores_previous_output():
    ctx = BrickContext({"a": 1})
    data = ctx.render_context({"name": "x"})
    assert "name" not in data


def test_render_context_implicit_data_flow_merges_previous_output():
    ctx = BrickContext({"a": 1})
    data = ctx.render_context(
        {"name": "x", "@input": "shadowed"}, explicit_data_flow=False
    )
    assert data["name"] == "x"
    assert data["@input"] == "shadowed"
    assert ctx.get_data()["@input"] == {"a": 1}


def test_render_context_ignores_non_dict_previous_output():
    ctx = BrickContext({})
    assert ctx.render_context("text", explicit_data_flow=False) is ctx.get_data()


def test_child_context_sees_parent():
    parent = BrickContext({"x": 1})
    parent.set_output("a", "alpha")
    child = parent.child({"element": "item_val"})
    data = child.get_data()
    assert data["@a"] == "alpha"
    assert data["@element"] == "item_val"
    assert data["@input"] == {"x": 1}


def test_child_output_does_not_leak():
    parent = BrickContext({})
    child = parent.child({"element": 1})
    child.set_output("inner", "val")
    assert "@inner" not in parent.get_data()
    assert "@element" not in parent.get_data()
