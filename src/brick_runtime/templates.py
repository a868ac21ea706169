"""Text template rendering for the nunjucks and mustache engines.

Nunjucks templates are rendered with Jinja2, whose syntax is a superset of
what brick authors use. Missing variables render as empty strings, matching
nunjucks: templates run against live page data where absent fields are
normal.

Jinja2 identifiers can't contain ``@`` or ``-``, so top-level context keys
are renamed (``@input`` -> ``_at_input``, ``my-var`` -> ``my_var``) and
``@name`` references inside tags are rewritten to match.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

import jinja2
import pystache

from brick_runtime.errors import ExpressionError
from brick_runtime.models import VARIABLE_REFERENCE_PREFIX

AT_ALIAS_PREFIX = "_at_"

_TAG_RE = re.compile(r"({{|{%)(.*?)(}}|%})", re.DOTALL)
# String literals are matched first and kept as written
_AT_REFERENCE_RE = re.compile(
    r"""("(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')|(?<![\w@.])@(?=[A-Za-z_])"""
)

_ENVIRONMENTS = {
    autoescape: jinja2.Environment(
        undefined=jinja2.ChainableUndefined,
        # nunjucks prints null as an empty string
        finalize=lambda value: "" if value is None else value,
        autoescape=autoescape,
        keep_trailing_newline=True,
    )
    for autoescape in (True, False)
}

_MUSTACHE_RENDERERS = {
    True: pystache.Renderer(missing_tags="ignore"),
    False: pystache.Renderer(escape=lambda u: u, missing_tags="ignore"),
}


def nunjucks_identifier(key: str) -> str:
    """Return the Jinja2 identifier a context key is exposed under."""
    if key.startswith(VARIABLE_REFERENCE_PREFIX):
        key = AT_ALIAS_PREFIX + key[len(VARIABLE_REFERENCE_PREFIX) :]
    return key.replace("-", "_")


def _alias_reference(match: re.Match[str]) -> str:
    return match[1] or AT_ALIAS_PREFIX


def rewrite_variable_references(template: str) -> str:
    """Rewrite ``@name`` references inside ``{{ }}`` and ``{% %}`` tags.

    Quoted string literals inside a tag are left untouched.
    """
    return _TAG_RE.sub(
        lambda m: m[1] + _AT_REFERENCE_RE.sub(_alias_reference, m[2]) + m[3],
        template,
    )


def nunjucks_context(ctxt: Mapping[str, Any]) -> dict[str, Any]:
    """Expose *ctxt* under Jinja2 identifiers.

    Raises:
        ExpressionError: If two keys map to the same identifier
            (e.g. ``my-var`` and ``my_var``).
    """
    context: dict[str, Any] = {}
    sources: dict[str, str] = {}
    for key, value in ctxt.items():
        identifier = nunjucks_identifier(key)
        if identifier in sources:
            raise ExpressionError(
                f"Context keys '{sources[identifier]}' and '{key}' both render as "
                f"'{identifier}' in nunjucks templates"
            )
        sources[identifier] = key
        context[identifier] = value
    return context


def nunjucks_environment(autoescape: bool = True) -> jinja2.Environment:
    return _ENVIRONMENTS[bool(autoescape)]


def render_nunjucks(
    template_str: str, ctxt: Mapping[str, Any], *, autoescape: bool = True
) -> str:
    """Render a nunjucks template against *ctxt*.

    Args:
        template_str: Template source (e.g. ``"Hi {{ @input.name }}"``).
        ctxt: Execution context; top-level keys may be ``@``-prefixed.
        autoescape: HTML-escape interpolated values.

    Raises:
        jinja2.TemplateSyntaxError: If the template doesn't parse.
        ExpressionError: If two context keys collide as identifiers.
    """
    template = nunjucks_environment(autoescape).from_string(
        rewrite_variable_references(template_str)
    )
    return template.render(nunjucks_context(ctxt))


def _mustache_view(value: Any) -> Any:
    # Mustache renders null as an empty string
    if value is None:
        return ""
    if isinstance(value, Mapping):
        return {k: _mustache_view(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_mustache_view(v) for v in value]
    return value


def render_mustache_template(
    template_str: str, ctxt: Mapping[str, Any], *, autoescape: bool = True
) -> str:
    """Render a mustache template against *ctxt*.

    ``@``-prefixed keys are referenced as written: ``{{@input.name}}``.
    """
    renderer = _MUSTACHE_RENDERERS[bool(autoescape)]
    return renderer.render(template_str, _mustache_view(ctxt))
