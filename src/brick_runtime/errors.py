"""Custom exception hierarchy for brick-runtime.

All exceptions inherit from BrickRuntimeError so callers can catch broadly
or narrowly as needed.
"""

from __future__ import annotations


class BrickRuntimeError(Exception):
    """Base for all brick-runtime errors."""


class InvalidPathError(BrickRuntimeError):
    """A property path could not be parsed or traversed.

    This is the expected failure for malformed or absent paths. Missing
    values on optional or trailing segments are not errors.
    """

    def __init__(self, message: str, path: str) -> None:
        self.path = path
        super().__init__(message)


class MethodInvocationError(BrickRuntimeError):
    """A method reached through a property path raised."""


class ExpressionError(BrickRuntimeError):
    """A tagged expression is malformed."""


class UnregisteredRendererError(BrickRuntimeError):
    """No renderer is registered for a template engine.

    Indicates a bug in the caller or its setup, not bad user input.
    """

    def __init__(self, engine: str) -> None:
        self.engine = engine
        super().__init__(f"No renderer registered for template engine: {engine}")


class InvalidOutputKeyError(BrickRuntimeError):
    """An output key is not a valid variable name."""


class BrickYamlError(BrickRuntimeError):
    """Brick YAML parsing or structure validation failed."""


class InputValidationError(BrickRuntimeError):
    """Rendered brick arguments failed JSON Schema validation."""


class BrickRenderError(BrickRuntimeError):
    """Rendering a brick's arguments failed."""

    def __init__(
        self,
        brick_id: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        self.brick_id = brick_id
        self.cause = cause
        super().__init__(f"Brick '{brick_id}' failed to render arguments: {message}")
