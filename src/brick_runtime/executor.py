"""Brick argument rendering entry point.

Turns a brick's raw configuration into the arguments the brick runs with:
picks the rendering strategy from the declared API version, assembles the
render context, renders, and validates the result.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any

from brick_runtime import pipeline_logger
from brick_runtime.context import BrickContext
from brick_runtime.errors import BrickRenderError, BrickRuntimeError, InvalidPathError
from brick_runtime.loader import validate_input
from brick_runtime.map_args import map_args, map_options_for
from brick_runtime.models import ApiVersion, BrickConfig, api_version_options
from brick_runtime.renderers import RendererRegistry


async def render_brick_args(
    brick: BrickConfig | dict[str, Any],
    context: BrickContext | Mapping[str, Any],
    *,
    api_version: ApiVersion,
    previous_output: Any = None,
    input_schema: dict[str, Any] | None = None,
    registry: RendererRegistry | None = None,
    log_values: bool = False,
) -> Any:
    """Render a brick's ``config`` into its arguments.

    1. Derives the runtime options from *api_version*.
    2. apiVersion v1 only: if the previous output isn't an object, returns
       the config unrendered.
    3. Builds the render context (v1 merges *previous_output* into it).
    4. Renders the config with :func:`map_args`.
    5. Validates the result against *input_schema*, if given.

    Args:
        brick: The brick's step configuration.
        context: Variables in scope for the brick.
        api_version: Declared API version of the enclosing definition.
        previous_output: Output of the preceding brick (v1 data flow).
        input_schema: JSON Schema for the brick's arguments.
        registry: Renderer registry; the default registry if None.
        log_values: Log the rendered arguments.

    Returns:
        The rendered arguments.

    Raises:
        InputValidationError: If the arguments don't match *input_schema*.
        BrickRenderError: If a renderer fails with a non-runtime error.
        BrickRuntimeError: Path, expression and registry errors propagate
            unchanged.
    """
    if not isinstance(brick, BrickConfig):
        brick = BrickConfig.model_validate(brick)

    options = api_version_options(api_version)

    if not options.explicit_arg and not isinstance(previous_output, dict):
        # Legacy v1: nothing to render the template against
        return brick.config

    if isinstance(context, BrickContext):
        data = context.render_context(
            previous_output, explicit_data_flow=options.explicit_data_flow
        )
    elif not options.explicit_data_flow and isinstance(previous_output, dict):
        data = {**context, **previous_output}
    else:
        data = context

    map_options = map_options_for(
        options, template_engine=brick.template_engine, registry=registry
    )

    start = time.monotonic()
    pipeline_logger.log_render_start(brick.id, api_version)

    try:
        args = await map_args(
            brick.config if brick.config is not None else {}, data, map_options
        )
        if input_schema is not None:
            validate_input(input_schema, args)
    except InvalidPathError as e:
        pipeline_logger.log_error(brick.id, str(e), path=e.path)
        raise
    except BrickRuntimeError as e:
        pipeline_logger.log_error(brick.id, str(e))
        raise
    except Exception as e:
        pipeline_logger.log_error(brick.id, str(e))
        raise BrickRenderError(brick.id, str(e), cause=e) from e

    pipeline_logger.log_render_complete(brick.id, (time.monotonic() - start) * 1000)
    if log_values:
        pipeline_logger.log_render_args(brick.id, args)

    return args
