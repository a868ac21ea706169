"""Tests for the pre-flight brick config validator."""

from __future__ import annotations

import pytest

from brick_runtime.errors import BrickYamlError
from brick_runtime.expressions import (
    make_defer_expression,
    make_pipeline_expression,
    make_template_expression,
    make_variable_expression,
)
from brick_runtime.renderers import RendererRegistry
from brick_runtime.validator import (
    Severity,
    load_and_validate_brick,
    validate_brick_config,
    validate_pipeline,
)

IN_SCOPE = {"@input", "@options"}


# ── Single configs ────────────────────────────────────────────────


def test_valid_config():
    config = {
        "text": make_template_expression("nunjucks", "Hi {{ @input.name }}"),
        "target": make_variable_expression("@input.selector?.id"),
        "title": make_template_expression("mustache", "{{#@input.items}}{{.}}{{/@input.items}}"),
        "literal": "{{ not checked }}",
    }
    result = validate_brick_config(config, IN_SCOPE)
    assert result.ok
    assert result.diagnostics == []


def test_invalid_var_path_is_error():
    result = validate_brick_config({"x": make_variable_expression("@input..name")})
    assert not result.ok
    assert result.errors[0].path == "x"
    assert "Invalid variable path" in result.errors[0].message


def test_unavailable_var_root_is_warning():
    result = validate_brick_config({"x": make_variable_expression("@nope.name")}, IN_SCOPE)
    assert result.ok
    assert len(result.warnings) == 1
    assert "'@nope'" in result.warnings[0].message


def test_references_unchecked_without_scope():
    result = validate_brick_config({"x": make_variable_expression("@nope.name")})
    assert result.diagnostics == []


def test_nunjucks_syntax_error():
    result = validate_brick_config(
        {"body": {"text": make_template_expression("nunjucks", "{{ oops")}}
    )
    assert [d.severity for d in result.diagnostics] == [Severity.ERROR]
    assert result.errors[0].path == "body.text"


def test_nunjucks_undeclared_variable_is_warning():
    template = "{% for x in @input.items %}{{ x }}{% endfor %}{{ @missing }}{{ range(3) }}"
    result = validate_brick_config({"t": make_template_expression("nunjucks", template)}, IN_SCOPE)
    assert [w.message.split("'")[1] for w in result.warnings] == ["@missing"]


def test_mustache_syntax_error():
    result = validate_brick_config([make_template_expression("mustache", "{{#a}}x{{/b}}")])
    assert not result.ok
    assert result.errors[0].path == "[0]"


def test_unregistered_engine_is_error():
    result = validate_brick_config({"x": make_template_expression("handlebars", "{{a}}")})
    assert "No renderer registered" in result.errors[0].message


def test_custom_registry():
    result = validate_brick_config(
        {"x": make_variable_expression("@input")}, registry=RendererRegistry()
    )
    assert not result.ok


def test_malformed_expression_is_error():
    result = validate_brick_config({"x": {"__type__": "var", "__value__": 5}})
    assert "Malformed var expression" in result.errors[0].message


def test_unknown_expression_type_is_warning():
    result = validate_brick_config({"x": {"__type__": "javascript", "__value__": "1"}})
    assert result.ok
    assert "Unknown expression type 'javascript'" in result.warnings[0].message


def test_null_template_is_valid():
    assert validate_brick_config({"x": make_template_expression("nunjucks", None)}).ok


def test_defer_is_walked():
    config = {"el": make_defer_expression({"t": make_template_expression("nunjucks", "{{ x")})}
    result = validate_brick_config(config)
    assert result.errors[0].path == "el.t"


def test_special_keys_are_quoted_in_paths():
    result = validate_brick_config({"a b": make_variable_expression("a..b")})
    assert result.errors[0].path == '["a b"]'


# ── Pipelines ─────────────────────────────────────────────────────


def test_output_keys_enter_scope():
    steps = [
        {"id": "first", "outputKey": "html", "config": {}},
        {"id": "second", "config": {"x": make_variable_expression("@html.body")}},
    ]
    assert validate_pipeline(steps, IN_SCOPE).diagnostics == []


def test_output_key_used_before_defined():
    steps = [
        {"id": "first", "config": {"x": make_template_expression("nunjucks", "{{ @html }}")}},
        {"id": "second", "outputKey": "html"},
    ]
    result = validate_pipeline(steps, IN_SCOPE)
    assert result.warnings[0].path == "[0].config.x"


def test_nested_pipeline_sees_outer_scope():
    steps = [
        {"id": "a", "outputKey": "rows"},
        {
            "id": "loop",
            "config": {
                "body": make_pipeline_expression(
                    [{"id": "inner", "config": {"x": make_variable_expression("@rows.0")}}]
                )
            },
        },
    ]
    assert validate_pipeline(steps, IN_SCOPE).diagnostics == []


@pytest.mark.parametrize(
    ("steps", "path"),
    [
        ("not a list", ""),
        ([{"config": {}}], "[0]"),
        (["brick"], "[0]"),
        ([{"id": "a", "outputKey": "1bad"}], "[0].outputKey"),
    ],
)
def test_pipeline_structure_errors(steps, path):
    result = validate_pipeline(steps)
    assert not result.ok
    assert result.errors[0].path == path


def test_load_and_validate_pipeline(tmp_path):
    path = tmp_path / "brick.yaml"
    path.write_text(
        """\
apiVersion: v3
pipeline:
  - id: "@pixiebrix/get"
    outputKey: page
  - id: "@pixiebrix/html"
    config:
      html: !nunjucks "{{ @page.title }} {{ @unknown }}"
"""
    )
    result = load_and_validate_brick(path, IN_SCOPE)
    assert result.ok
    assert [w.path for w in result.warnings] == ["[1].config.html"]


def test_load_and_validate_config(tmp_path):
    path = tmp_path / "brick.yaml"
    path.write_text('config:\n  x: !var "@input..x"\n')
    assert not load_and_validate_brick(path).ok


def test_load_and_validate_missing_file(tmp_path):
    with pytest.raises(BrickYamlError):
        load_and_validate_brick(tmp_path / "nope.yaml")
