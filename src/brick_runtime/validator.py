"""Pre-flight brick configuration validator.

Statically checks a brick config (or a pipeline of bricks) without
rendering it. Catches bad variable paths, template syntax errors,
references to variables that aren't in scope, and engines with no
renderer before the brick runs against a live page.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import jinja2
import pystache
from jinja2 import meta as jinja_meta
from pystache.parser import ParsingError

from brick_runtime.context import validate_output_key
from brick_runtime.errors import ExpressionError, InvalidOutputKeyError, InvalidPathError
from brick_runtime.expressions import is_expression, parse_expression
from brick_runtime.loader import load_brick_definition
from brick_runtime.models import (
    EXPRESSION_TYPES,
    VARIABLE_REFERENCE_PREFIX,
    DeferExpression,
    PipelineExpression,
    TemplateEngine,
    TemplateExpression,
)
from brick_runtime.path_helpers import add_path_part, parse_path
from brick_runtime.renderers import RendererRegistry, default_registry
from brick_runtime.templates import (
    AT_ALIAS_PREFIX,
    nunjucks_environment,
    nunjucks_identifier,
    rewrite_variable_references,
)

# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """A single validation finding."""

    severity: Severity
    path: str  # location in the config, e.g. "config.body[0].config.text"
    message: str


@dataclass(frozen=True)
class ValidationResult:
    """Aggregate result of config validation."""

    diagnostics: list[Diagnostic]

    @property
    def ok(self) -> bool:
        """True when there are no error-severity diagnostics."""
        return not any(d.severity == Severity.ERROR for d in self.diagnostics)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]


def _error(path: str, message: str) -> Diagnostic:
    return Diagnostic(severity=Severity.ERROR, path=path, message=message)


def _warning(path: str, message: str) -> Diagnostic:
    return Diagnostic(severity=Severity.WARNING, path=path, message=message)


def _unavailable(path: str, name: str, available: set[str]) -> Diagnostic:
    return _warning(
        path,
        f"Variable '{name}' is not available. Available variables: {sorted(available)}",
    )


# ---------------------------------------------------------------------------
# 1. Variable expressions
# ---------------------------------------------------------------------------


def _check_var(template: str, path: str, available: set[str] | None) -> list[Diagnostic]:
    """Check a ``var`` expression's path syntax and root variable."""
    try:
        parts = parse_path(template.strip())
    except InvalidPathError as e:
        return [_error(path, f"Invalid variable path: {e}")]

    if available is None or not parts:
        return []

    root = parts[0].key
    if root not in available:
        return [_unavailable(path, root, available)]
    return []


# ---------------------------------------------------------------------------
# 2. Template syntax
# ---------------------------------------------------------------------------


def _check_nunjucks(
    template: str, path: str, available: set[str] | None
) -> list[Diagnostic]:
    """Parse a nunjucks template and check the variables it references."""
    env = nunjucks_environment()
    try:
        ast = env.parse(rewrite_variable_references(template))
    except jinja2.TemplateSyntaxError as e:
        return [_error(path, f"Invalid nunjucks template: {e}")]

    if available is None:
        return []

    identifiers = {nunjucks_identifier(name) for name in available}
    diagnostics: list[Diagnostic] = []

    for name in sorted(jinja_meta.find_undeclared_variables(ast)):
        if name in identifiers or name in env.globals:
            continue
        if name.startswith(AT_ALIAS_PREFIX):
            name = VARIABLE_REFERENCE_PREFIX + name[len(AT_ALIAS_PREFIX) :]
        diagnostics.append(_unavailable(path, name, available))

    return diagnostics


def _check_mustache(template: str, path: str) -> list[Diagnostic]:
    """Parse a mustache template for syntax errors."""
    try:
        pystache.parse(template)
        return []
    except ParsingError as e:
        return [_error(path, f"Invalid mustache template: {e}")]


# ---------------------------------------------------------------------------
# 3. Tree walk
# ---------------------------------------------------------------------------


def _check_expression(
    config: dict[str, Any],
    path: str,
    available: set[str] | None,
    registry: RendererRegistry,
) -> list[Diagnostic]:
    try:
        expression = parse_expression(config)
    except ExpressionError as e:
        return [_error(path, str(e))]

    match expression:
        case TemplateExpression(kind=kind, value=template):
            if not registry.is_registered(kind):
                return [_error(path, f"No renderer registered for template engine: {kind}")]
            if template is None:
                return []
            if kind == TemplateEngine.VAR.value:
                return _check_var(template, path, available)
            if kind == TemplateEngine.NUNJUCKS.value:
                return _check_nunjucks(template, path, available)
            if kind == TemplateEngine.MUSTACHE.value:
                return _check_mustache(template, path)
            return []
        case PipelineExpression(value=steps):
            return _check_steps(steps, path, available, registry)
        case DeferExpression(value=value):
            return _walk(value, path, available, registry)
        case _:
            return []


def _walk(
    config: Any,
    path: str,
    available: set[str] | None,
    registry: RendererRegistry,
) -> list[Diagnostic]:
    if isinstance(config, list):
        diagnostics: list[Diagnostic] = []
        for index, item in enumerate(config):
            diagnostics.extend(
                _walk(item, add_path_part(path, index), available, registry)
            )
        return diagnostics

    if not isinstance(config, dict):
        return []

    if is_expression(config):
        return _check_expression(config, path, available, registry)

    diagnostics = []
    tag = config.get("__type__")
    if isinstance(tag, str) and tag not in EXPRESSION_TYPES:
        diagnostics.append(_warning(path, f"Unknown expression type '{tag}'"))

    for key, value in config.items():
        diagnostics.extend(_walk(value, add_path_part(path, key), available, registry))
    return diagnostics


def _check_steps(
    steps: Any,
    path: str,
    available: set[str] | None,
    registry: RendererRegistry,
) -> list[Diagnostic]:
    """Check each brick of a pipeline in order.

    A brick's output key is in scope for the bricks after it.
    """
    if not isinstance(steps, list):
        return [_error(path, "Pipeline must be a list of bricks")]

    scope = set(available) if available is not None else None
    diagnostics: list[Diagnostic] = []

    for index, step in enumerate(steps):
        step_path = add_path_part(path, index)
        if not isinstance(step, dict) or "id" not in step:
            diagnostics.append(_error(step_path, "Brick must be a mapping with an 'id'"))
            continue

        diagnostics.extend(
            _walk(step.get("config"), add_path_part(step_path, "config"), scope, registry)
        )

        output_key = step.get("outputKey")
        if output_key is None:
            continue
        try:
            key = validate_output_key(output_key)
        except InvalidOutputKeyError as e:
            diagnostics.append(_error(add_path_part(step_path, "outputKey"), str(e)))
            continue
        if scope is not None:
            scope.add(VARIABLE_REFERENCE_PREFIX + key)

    return diagnostics


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_brick_config(
    config: Any,
    available: set[str] | None = None,
    *,
    registry: RendererRegistry | None = None,
) -> ValidationResult:
    """Validate one brick's config.

    Args:
        config: The brick's ``config`` tree.
        available: Variables in scope (e.g. ``{"@input", "@options"}``).
            If None, references aren't checked.
        registry: Renderer registry; the default registry if None.
    """
    return ValidationResult(
        diagnostics=_walk(config, "", available, registry or default_registry)
    )


def validate_pipeline(
    steps: list[Any],
    available: set[str] | None = None,
    *,
    registry: RendererRegistry | None = None,
) -> ValidationResult:
    """Validate a pipeline of brick configs, tracking output keys in scope."""
    return ValidationResult(
        diagnostics=_check_steps(steps, "", available, registry or default_registry)
    )


def load_and_validate_brick(
    path: str | Path,
    available: set[str] | None = None,
) -> ValidationResult:
    """Load a brick YAML file and validate its pipeline or config.

    Raises:
        BrickYamlError: If the file can't be loaded.
    """
    definition = load_brick_definition(path)
    if "pipeline" in definition:
        return validate_pipeline(definition["pipeline"], available)
    return validate_brick_config(definition.get("config"), available)
