"""Brick argument rendering.

Walks a brick configuration tree and resolves it against an execution
context. Two strategies exist, chosen once per call from the declared
``apiVersion``:

* explicit (v3): only tagged expressions are rendered; everything else is
  literal. Pipeline and defer expressions are returned untouched for the
  brick to run later.
* implicit (v1/v2): every string is a template, and a bare variable path
  resolves straight to its value.

Object and array children are rendered concurrently and gathered back in
input order. Object keys whose value renders to None are dropped.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from brick_runtime.expressions import parse_expression
from brick_runtime.models import (
    DEFAULT_IMPLICIT_TEMPLATE_ENGINE,
    ApiVersionOptions,
    DeferExpression,
    PipelineExpression,
    TemplateEngine,
    TemplateExpression,
)
from brick_runtime.path_helpers import get_prop_by_path, is_simple_path
from brick_runtime.renderers import (
    RendererRegistry,
    TemplateRenderer,
    default_registry,
    resolve_rendered,
)
from brick_runtime.templates import render_mustache_template

Unwrapper = Callable[[Any], Any]


def unwrap_service_context(value: Any) -> Any:
    """Return the integration config held by a service-context wrapper.

    Lets legacy configs pass ``@service`` straight to a brick expecting the
    integration itself.
    """
    if isinstance(value, Mapping) and "__service" in value:
        return value["__service"]
    return value


# ── Options ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ExplicitRender:
    """Render tagged expressions only."""


@dataclass(frozen=True)
class ImplicitRender:
    """Treat every string as a template for *render*."""

    render: TemplateRenderer
    unwrap: Unwrapper = unwrap_service_context


RenderStrategy = ExplicitRender | ImplicitRender


@dataclass(frozen=True)
class MapOptions:
    strategy: RenderStrategy
    autoescape: bool | None = None
    registry: RendererRegistry = default_registry

    @property
    def implicit_render(self) -> TemplateRenderer | None:
        """The implicit renderer callback, or None for explicit rendering."""
        if isinstance(self.strategy, ImplicitRender):
            return self.strategy.render
        return None


def map_options_for(
    api_options: ApiVersionOptions,
    *,
    template_engine: TemplateEngine | str | None = None,
    registry: RendererRegistry | None = None,
) -> MapOptions:
    """Build :class:`MapOptions` for a brick's declared API version.

    Args:
        api_options: Options derived from the ``apiVersion``.
        template_engine: Engine for implicit rendering. Defaults to
            mustache; ignored for explicit rendering.
        registry: Renderer registry; the default registry if None.
    """
    if registry is None:
        registry = default_registry

    if api_options.explicit_render:
        strategy: RenderStrategy = ExplicitRender()
    else:
        strategy = ImplicitRender(
            registry.renderer(
                template_engine or DEFAULT_IMPLICIT_TEMPLATE_ENGINE,
                autoescape=api_options.autoescape,
            )
        )

    return MapOptions(
        strategy=strategy, autoescape=api_options.autoescape, registry=registry
    )


# ── Tree walking ──────────────────────────────────────────────────


async def _render_object(
    config: Mapping[str, Any], render_child: Callable[[Any], Any]
) -> dict[str, Any]:
    keys = list(config)
    values = await asyncio.gather(*(render_child(config[k]) for k in keys))
    return {k: v for k, v in zip(keys, values) if v is not None}


async def _render_array(
    config: list[Any] | tuple[Any, ...], render_child: Callable[[Any], Any]
) -> list[Any]:
    return list(await asyncio.gather(*(render_child(item) for item in config)))


async def render_explicit(config: Any, ctxt: Mapping[str, Any], options: MapOptions) -> Any:
    """Render the tagged expressions in *config*.

    Raises:
        UnregisteredRendererError: If an expression names an engine with
            no registered renderer.
        ExpressionError: If a tagged expression is malformed.
        InvalidPathError: If a variable path can't be resolved.
    """
    match parse_expression(config):
        case TemplateExpression(kind=kind, value=template) if template is None or (
            kind == TemplateEngine.VAR.value and not template.strip()
        ):
            # Empty templates are never an error
            return None if kind == TemplateEngine.VAR.value else ""
        case TemplateExpression(kind=kind, value=template):
            render = options.registry.renderer(kind, autoescape=options.autoescape)
            return await resolve_rendered(render(template, ctxt))
        case PipelineExpression() | DeferExpression():
            # Run by the brick that owns them
            return config
        case None:
            pass

    async def render_child(value: Any) -> Any:
        return await render_explicit(value, ctxt, options)

    if isinstance(config, Mapping):
        return await _render_object(config, render_child)
    if isinstance(config, (list, tuple)):
        return await _render_array(config, render_child)
    return config


async def render_implicit(
    config: Any,
    ctxt: Mapping[str, Any],
    render: TemplateRenderer,
    *,
    unwrap: Unwrapper = unwrap_service_context,
) -> Any:
    """Render every string in *config* with *render* (API v1/v2).

    Strings that are simple paths into *ctxt* resolve directly to their
    value, passed through *unwrap*.
    """

    async def render_child(value: Any) -> Any:
        return await render_implicit(value, ctxt, render, unwrap=unwrap)

    if isinstance(config, Mapping):
        return await _render_object(config, render_child)
    if isinstance(config, (list, tuple)):
        return await _render_array(config, render_child)
    if isinstance(config, str):
        if is_simple_path(config, ctxt):
            return unwrap(get_prop_by_path(ctxt, config))
        return await resolve_rendered(render(config, ctxt))
    return config


def render_mustache(config: Any, ctxt: Mapping[str, Any]) -> Any:
    """Render a tree whose leaves are all mustache template strings.

    Raises:
        TypeError: If a leaf isn't a string.
    """
    if isinstance(config, Mapping):
        rendered = {k: render_mustache(v, ctxt) for k, v in config.items()}
        return {k: v for k, v in rendered.items() if v is not None}
    if isinstance(config, (list, tuple)):
        return [render_mustache(item, ctxt) for item in config]
    if isinstance(config, str):
        return render_mustache_template(config, ctxt)
    raise TypeError(
        f"Expected a template string, got {type(config).__name__}"
    )


async def map_args(config: Any, ctxt: Mapping[str, Any], options: MapOptions) -> Any:
    """Render *config* against *ctxt* using the strategy in *options*.

    There is no default strategy: callers derive *options*
    from the declared API version (see :func:`map_options_for`).
    """
    match options.strategy:
        case ImplicitRender(render=render, unwrap=unwrap):
            return await render_implicit(config, ctxt, render, unwrap=unwrap)
        case ExplicitRender():
            return await render_explicit(config, ctxt, options)
        case _:
            raise TypeError(f"Unknown render strategy: {options.strategy!r}")
