"""Predicates and constructors for tagged expressions.

A tagged expression is a plain dict carrying ``__type__`` (the expression
kind) and ``__value__`` (the payload). Configuration trees keep them as
dicts; :func:`parse_expression` lifts one into its pydantic variant so the
evaluator can match on it.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from brick_runtime.errors import ExpressionError
from brick_runtime.models import (
    EXPRESSION_ADAPTER,
    EXPRESSION_TYPES,
    TEMPLATE_ENGINES,
    DeferExpression,
    PipelineExpression,
    TemplateEngine,
    TemplateExpression,
)

_TEMPLATE_SYNTAX_RE = re.compile(r"{{|{%|{#")


def _type_tag(value: Any) -> str | None:
    if isinstance(value, dict):
        tag = value.get("__type__")
        if isinstance(tag, str):
            return tag
    return None


def is_expression(value: Any) -> bool:
    return _type_tag(value) in EXPRESSION_TYPES


def is_template_expression(value: Any) -> bool:
    return _type_tag(value) in TEMPLATE_ENGINES


def is_var_expression(value: Any) -> bool:
    return _type_tag(value) == TemplateEngine.VAR.value


def is_nunjucks_expression(value: Any) -> bool:
    return _type_tag(value) == TemplateEngine.NUNJUCKS.value


def is_pipeline_expression(value: Any) -> bool:
    return _type_tag(value) == "pipeline"


def is_defer_expression(value: Any) -> bool:
    return _type_tag(value) == "defer"


def parse_expression(
    value: Any,
) -> TemplateExpression | PipelineExpression | DeferExpression | None:
    """Lift a tagged-expression dict into its model.

    Returns None for anything that isn't a tagged expression, including
    dicts whose ``__type__`` isn't a known expression kind.

    Raises:
        ExpressionError: If the tag is known but the payload is malformed.
    """
    if not is_expression(value):
        return None

    try:
        return EXPRESSION_ADAPTER.validate_python(value)
    except PydanticValidationError as e:
        raise ExpressionError(
            f"Malformed {value['__type__']} expression: {e}"
        ) from e


# ── Constructors ──────────────────────────────────────────────────


def make_template_expression(
    engine: TemplateEngine | str, template: str | None
) -> dict[str, Any]:
    engine = TemplateEngine(engine)
    return {"__type__": engine.value, "__value__": template}


def make_variable_expression(path: str | None) -> dict[str, Any]:
    return make_template_expression(TemplateEngine.VAR, path)


def make_pipeline_expression(steps: list[Any]) -> dict[str, Any]:
    return {"__type__": "pipeline", "__value__": list(steps)}


def make_defer_expression(config: Any) -> dict[str, Any]:
    return {"__type__": "defer", "__value__": config}


def cast_text_literal_or_throw(value: Any) -> str | None:
    """Return the literal text of *value*.

    Accepts None, plain strings, and text-template expressions whose
    template contains no template syntax.

    Raises:
        ExpressionError: If *value* needs rendering to produce its text.
    """
    if value is None or isinstance(value, str):
        return value

    if (
        is_template_expression(value)
        and not is_var_expression(value)
        and isinstance(value.get("__value__"), str)
        and not _TEMPLATE_SYNTAX_RE.search(value["__value__"])
    ):
        return value["__value__"]

    raise ExpressionError(f"Expected a text literal, got: {value!r}")
