"""Brick execution context.

Accumulates the variables in scope for a brick: the mod input, the mod
options, integration configs, and outputs of earlier bricks. Every
variable lives under an ``@``-prefixed key. Supports child contexts for
control-flow bricks (loops) whose inner bindings don't leak back into
the parent scope.
"""

from __future__ import annotations

import re
from typing import Any

from brick_runtime.errors import InvalidOutputKeyError
from brick_runtime.models import VARIABLE_REFERENCE_PREFIX

_OUTPUT_KEY_RE = re.compile(r"[A-Za-z][A-Za-z0-9_-]*")


def validate_output_key(output_key: str) -> str:
    """Return *output_key* without its ``@`` prefix, if valid.

    Raises:
        InvalidOutputKeyError: If the key isn't a valid variable name.
    """
    key = output_key.removeprefix(VARIABLE_REFERENCE_PREFIX)
    if not _OUTPUT_KEY_RE.fullmatch(key):
        raise InvalidOutputKeyError(f"Invalid output key: '{output_key}'")
    return key


def variable_name(output_key: str) -> str:
    """``"foo"`` -> ``"@foo"``."""
    return VARIABLE_REFERENCE_PREFIX + validate_output_key(output_key)


class BrickContext:
    """Scoped dict of ``@``-prefixed variables."""

    def __init__(
        self,
        brick_input: dict[str, Any],
        *,
        options: dict[str, Any] | None = None,
    ) -> None:
        self._data: dict[str, Any] = {
            "@input": brick_input,
            "@options": options or {},
        }

    def set_output(self, output_key: str, value: Any) -> None:
        """Store a brick's output. Later bricks may reuse an output key."""
        self._data[variable_name(output_key)] = value

    def set_integration(self, output_key: str, integration: dict[str, Any]) -> None:
        """Bind an integration config to ``@output_key``.

        The variable exposes the config's values for templates, and keeps
        the integration itself under ``__service`` so legacy bricks can
        pass the variable as-is.
        """
        self._data[variable_name(output_key)] = {
            **integration.get("config", {}),
            "__service": integration,
        }

    def get_data(self) -> dict[str, Any]:
        """Return the full context dict for rendering."""
        return self._data

    def render_context(
        self, previous_output: Any = None, *, explicit_data_flow: bool = True
    ) -> dict[str, Any]:
        """Return the context a brick's arguments render against.

        With implicit data flow (apiVersion v1) the previous brick's output
        is merged over the context and wins on conflicts.
        """
        if explicit_data_flow or not isinstance(previous_output, dict):
            return self._data
        return {**self._data, **previous_output}

    def child(self, extra: dict[str, Any] | None = None) -> BrickContext:
        """Create a child context for a loop body or sub-pipeline.

        The child sees all parent data plus any extra bindings. Outputs
        set on the child do NOT leak back into the parent.
        """
        child_data = {**self._data}
        if extra:
            child_data.update(
                {variable_name(key): value for key, value in extra.items()}
            )
        ctx = BrickContext.__new__(BrickContext)
        ctx._data = child_data
        return ctx
