"""Tests for brick YAML loading and JSON Schema validation."""

from __future__ import annotations

import pytest

from brick_runtime.errors import BrickYamlError, InputValidationError
from brick_runtime.expressions import (
    make_defer_expression,
    make_pipeline_expression,
    make_template_expression,
    make_variable_expression,
)
from brick_runtime.loader import (
    dump_brick_yaml,
    load_brick_definition,
    load_brick_yaml,
    validate_input,
)


def test_load_scalar_tags():
    raw = load_brick_yaml(
        """\
message: !nunjucks "Hello {{ @input.name }}"
target: !var "@input.selector"
title: !mustache "{{@input.title}}"
plain: "{{ not rendered }}"
"""
    )
    assert raw == {
        "message": make_template_expression("nunjucks", "Hello {{ @input.name }}"),
        "target": make_variable_expression("@input.selector"),
        "title": make_template_expression("mustache", "{{@input.title}}"),
        "plain": "{{ not rendered }}",
    }


def test_load_pipeline_and_defer_tags():
    raw = load_brick_yaml(
        """\
body: !pipeline
  - id: "@pixiebrix/html"
    config:
      html: !var "@input.html"
element: !defer
  text: !nunjucks "{{ @element.label }}"
"""
    )
    assert raw["body"] == make_pipeline_expression(
        [{"id": "@pixiebrix/html", "config": {"html": make_variable_expression("@input.html")}}]
    )
    assert raw["element"] == make_defer_expression(
        {"text": make_template_expression("nunjucks", "{{ @element.label }}")}
    )


def test_unknown_tag_raises():
    with pytest.raises(BrickYamlError, match="Invalid brick YAML"):
        load_brick_yaml('x: !javascript "1 + 1"')


def test_invalid_yaml_raises():
    with pytest.raises(BrickYamlError):
        load_brick_yaml("a: [unclosed")


def test_dump_writes_tags():
    text = dump_brick_yaml(
        {
            "message": make_template_expression("nunjucks", "Hi {{ name }}"),
            "steps": make_pipeline_expression([{"id": "b"}]),
        }
    )
    assert "!nunjucks" in text
    assert "!pipeline" in text
    assert "__type__" not in text


def test_dump_then_load_preserves_expressions():
    value = {
        "a": make_variable_expression("@input.ünïcode"),
        "b": make_defer_expression({"c": make_template_expression("mustache", "{{x}}")}),
        "d": [1, "two", None],
    }
    assert load_brick_yaml(dump_brick_yaml(value)) == value


def test_dump_null_template():
    assert load_brick_yaml(dump_brick_yaml({"a": make_variable_expression(None)})) == {
        "a": make_variable_expression("")
    }


def test_load_brick_definition(tmp_path):
    path = tmp_path / "brick.yaml"
    path.write_text(
        """\
apiVersion: v3
pipeline:
  - id: "@pixiebrix/html"
    config:
      html: !var "@input.html"
"""
    )
    definition = load_brick_definition(path)
    assert definition["apiVersion"] == "v3"
    assert definition["pipeline"][0]["config"]["html"] == make_variable_expression("@input.html")


def test_load_missing_definition(tmp_path):
    with pytest.raises(BrickYamlError, match="not found"):
        load_brick_definition(tmp_path / "missing.yaml")


def test_load_non_mapping_definition(tmp_path):
    path = tmp_path / "brick.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(BrickYamlError, match="must be a mapping"):
        load_brick_definition(path)


def test_validate_input_valid():
    schema = {"type": "object", "properties": {"url": {"type": "string"}}, "required": ["url"]}
    validate_input(schema, {"url": "https://example.com"})


def test_validate_input_invalid():
    schema = {"type": "object", "properties": {"url": {"type": "string"}}, "required": ["url"]}
    with pytest.raises(InputValidationError, match="Input validation failed"):
        validate_input(schema, {"url": 5})
