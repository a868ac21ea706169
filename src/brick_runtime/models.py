"""Pydantic models for expressions, brick configs and runtime options.

Shapes only. Tagged expressions use a discriminated union on the
``__type__`` field so each kind is matched exhaustively by the evaluator.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

# Character used to prefix a variable reference, e.g. ``@input``
VARIABLE_REFERENCE_PREFIX = "@"


class TemplateEngine(str, Enum):
    MUSTACHE = "mustache"
    NUNJUCKS = "nunjucks"
    HANDLEBARS = "handlebars"
    # Variable reference, with support for the ? operator
    VAR = "var"


TEMPLATE_ENGINES: frozenset[str] = frozenset(e.value for e in TemplateEngine)

EXPRESSION_TYPES: frozenset[str] = TEMPLATE_ENGINES | {"pipeline", "defer"}

DEFAULT_IMPLICIT_TEMPLATE_ENGINE = TemplateEngine.MUSTACHE


# ── Expressions ───────────────────────────────────────────────────


class TemplateExpression(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: Literal["mustache", "nunjucks", "handlebars", "var"] = Field(
        alias="__type__"
    )
    value: str | None = Field(default=None, alias="__value__")


class PipelineExpression(BaseModel):
    """Brick pipeline with deferred execution."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: Literal["pipeline"] = Field(alias="__type__")
    value: Any = Field(default=None, alias="__value__")


class DeferExpression(BaseModel):
    """Raw section rendered later by the brick that owns it."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: Literal["defer"] = Field(alias="__type__")
    value: Any = Field(default=None, alias="__value__")


Expression = Annotated[
    TemplateExpression | PipelineExpression | DeferExpression,
    Field(discriminator="kind"),
]

EXPRESSION_ADAPTER: TypeAdapter[Any] = TypeAdapter(Expression)


# ── API versions ──────────────────────────────────────────────────

# v1: implicit templating and data flow
# v2: explicit data flow
# v3: explicit expressions
ApiVersion = Literal["v1", "v2", "v3"]


class ApiVersionOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Brick arguments come only from the brick's config
    explicit_arg: bool
    # Outputs flow through output keys instead of the previous output
    explicit_data_flow: bool
    # Only tagged expressions are rendered
    explicit_render: bool
    autoescape: bool


def api_version_options(version: str) -> ApiVersionOptions:
    """Return the runtime options for a declared ``apiVersion``.

    Raises:
        ValueError: If *version* is not a known API version.
    """
    match version:
        case "v1":
            return ApiVersionOptions(
                explicit_arg=False,
                explicit_data_flow=False,
                explicit_render=False,
                autoescape=True,
            )
        case "v2":
            return ApiVersionOptions(
                explicit_arg=True,
                explicit_data_flow=True,
                explicit_render=False,
                autoescape=True,
            )
        case "v3":
            return ApiVersionOptions(
                explicit_arg=True,
                explicit_data_flow=True,
                explicit_render=True,
                autoescape=False,
            )
        case _:
            raise ValueError(f"Unknown API version: {version}")


# ── Brick configuration ───────────────────────────────────────────


class BrickConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    config: Any = None
    output_key: str | None = Field(default=None, alias="outputKey")
    template_engine: TemplateEngine | None = Field(
        default=None, alias="templateEngine"
    )
    label: str | None = None
