"""brick-runtime: argument rendering and expression evaluation for bricks."""

# Register the built-in template engines before anything renders.
from brick_runtime.renderers import register_default_renderers as _register_default_renderers

_register_default_renderers()

from brick_runtime.context import BrickContext
from brick_runtime.errors import (
    BrickRenderError,
    BrickRuntimeError,
    BrickYamlError,
    ExpressionError,
    InputValidationError,
    InvalidOutputKeyError,
    InvalidPathError,
    MethodInvocationError,
    UnregisteredRendererError,
)
from brick_runtime.executor import render_brick_args
from brick_runtime.expressions import (
    is_defer_expression,
    is_expression,
    is_pipeline_expression,
    is_template_expression,
    is_var_expression,
    make_defer_expression,
    make_pipeline_expression,
    make_template_expression,
    make_variable_expression,
)
from brick_runtime.loader import dump_brick_yaml, load_brick_definition, load_brick_yaml
from brick_runtime.map_args import (
    ExplicitRender,
    ImplicitRender,
    MapOptions,
    map_args,
    map_options_for,
    render_explicit,
    render_implicit,
    render_mustache,
)
from brick_runtime.models import (
    ApiVersionOptions,
    BrickConfig,
    TemplateEngine,
    api_version_options,
)
from brick_runtime.path_helpers import (
    PathSpecPart,
    add_path_part,
    get_path_from_array,
    get_prop_by_path,
    is_simple_path,
)
from brick_runtime.pipeline_logger import configure_logging
from brick_runtime.renderers import RendererRegistry, default_registry, engine_renderer
from brick_runtime.validator import (
    Diagnostic,
    Severity,
    ValidationResult,
    load_and_validate_brick,
    validate_brick_config,
    validate_pipeline,
)

__all__ = [
    "add_path_part",
    "api_version_options",
    "ApiVersionOptions",
    "BrickConfig",
    "BrickContext",
    "BrickRenderError",
    "BrickRuntimeError",
    "BrickYamlError",
    "configure_logging",
    "default_registry",
    "Diagnostic",
    "dump_brick_yaml",
    "engine_renderer",
    "ExplicitRender",
    "ExpressionError",
    "get_path_from_array",
    "get_prop_by_path",
    "ImplicitRender",
    "InputValidationError",
    "InvalidOutputKeyError",
    "InvalidPathError",
    "is_defer_expression",
    "is_expression",
    "is_pipeline_expression",
    "is_simple_path",
    "is_template_expression",
    "is_var_expression",
    "load_and_validate_brick",
    "load_brick_definition",
    "load_brick_yaml",
    "make_defer_expression",
    "make_pipeline_expression",
    "make_template_expression",
    "make_variable_expression",
    "map_args",
    "map_options_for",
    "MapOptions",
    "MethodInvocationError",
    "PathSpecPart",
    "render_brick_args",
    "render_explicit",
    "render_implicit",
    "render_mustache",
    "RendererRegistry",
    "Severity",
    "TemplateEngine",
    "UnregisteredRendererError",
    "validate_brick_config",
    "validate_pipeline",
    "ValidationResult",
]
