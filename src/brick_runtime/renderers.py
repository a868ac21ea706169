"""Template renderer registry.

Maps each :class:`TemplateEngine` to a factory that builds a renderer for
a given autoescape setting. A renderer takes ``(template, ctxt)`` and
returns the rendered value, either directly or as an awaitable.

The default engines are registered explicitly at startup by
:func:`register_default_renderers` (called from the package ``__init__``).
Asking for an engine with no registration raises instead of silently
skipping the expression.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from brick_runtime.errors import UnregisteredRendererError
from brick_runtime.models import TemplateEngine
from brick_runtime.path_helpers import get_prop_by_path
from brick_runtime.templates import render_mustache_template, render_nunjucks

TemplateRenderer = Callable[[str, Mapping[str, Any]], Any]
AsyncTemplateRenderer = Callable[[str, Mapping[str, Any]], Awaitable[Any]]
RendererFactory = Callable[[bool], TemplateRenderer]


async def resolve_rendered(result: Any) -> Any:
    """Await *result* if a renderer returned an awaitable."""
    if inspect.isawaitable(result):
        return await result
    return result


def as_async_renderer(render: TemplateRenderer) -> AsyncTemplateRenderer:
    """Wrap a sync-or-async renderer so it can always be awaited."""

    async def render_async(template: str, ctxt: Mapping[str, Any]) -> Any:
        return await resolve_rendered(render(template, ctxt))

    return render_async


class RendererRegistry:
    """Engine -> renderer factory lookup."""

    def __init__(self) -> None:
        self._factories: dict[TemplateEngine, RendererFactory] = {}

    def register(
        self,
        engine: TemplateEngine | str,
        factory: RendererFactory,
        *,
        replace: bool = False,
    ) -> None:
        """Register *factory* for *engine*.

        Raises:
            ValueError: If *engine* is already registered and *replace*
                is False.
        """
        engine = TemplateEngine(engine)
        if engine in self._factories and not replace:
            raise ValueError(f"Renderer already registered for {engine.value}")
        self._factories[engine] = factory

    def is_registered(self, engine: TemplateEngine | str) -> bool:
        return TemplateEngine(engine) in self._factories

    def renderer(
        self, engine: TemplateEngine | str, *, autoescape: bool | None = None
    ) -> TemplateRenderer:
        """Return the renderer for *engine* as registered (sync or async).

        Raises:
            UnregisteredRendererError: If nothing is registered for *engine*.
        """
        engine = TemplateEngine(engine)
        factory = self._factories.get(engine)
        if factory is None:
            raise UnregisteredRendererError(engine.value)
        return factory(True if autoescape is None else autoescape)

    def async_renderer(
        self, engine: TemplateEngine | str, *, autoescape: bool | None = None
    ) -> AsyncTemplateRenderer:
        return as_async_renderer(self.renderer(engine, autoescape=autoescape))


default_registry = RendererRegistry()


def _mustache_factory(autoescape: bool) -> TemplateRenderer:
    return lambda template, ctxt: render_mustache_template(
        template, ctxt, autoescape=autoescape
    )


def _nunjucks_factory(autoescape: bool) -> TemplateRenderer:
    return lambda template, ctxt: render_nunjucks(
        template, ctxt, autoescape=autoescape
    )


def _var_factory(autoescape: bool) -> TemplateRenderer:
    return lambda template, ctxt: get_prop_by_path(ctxt, template.strip())


_DEFAULT_FACTORIES: dict[TemplateEngine, RendererFactory] = {
    TemplateEngine.MUSTACHE: _mustache_factory,
    TemplateEngine.NUNJUCKS: _nunjucks_factory,
    TemplateEngine.VAR: _var_factory,
}


def register_default_renderers(registry: RendererRegistry | None = None) -> None:
    """Register the built-in engines on *registry* (default registry if None).

    Engines that already have a renderer are left alone, so calling this
    more than once is harmless.
    """
    if registry is None:
        registry = default_registry
    for engine, factory in _DEFAULT_FACTORIES.items():
        if not registry.is_registered(engine):
            registry.register(engine, factory)


def engine_renderer(
    engine: TemplateEngine | str,
    *,
    autoescape: bool | None = None,
    registry: RendererRegistry | None = None,
) -> AsyncTemplateRenderer:
    """Return an awaitable renderer for *engine*.

    Raises:
        UnregisteredRendererError: If nothing is registered for *engine*.
    """
    if registry is None:
        registry = default_registry
    return registry.async_renderer(engine, autoescape=autoescape)
