"""Brick YAML loading and JSON Schema validation.

Brick definitions write expressions as YAML tags::

    config:
      message: !nunjucks "Hello {{ @input.name }}"
      target: !var "@input.selector"
      body: !pipeline
        - id: "@pixiebrix/html"

Each tag is loaded as a tagged-expression dict
(``{"__type__": "nunjucks", "__value__": "..."}``) and dumped back as a tag.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import jsonschema
import yaml

from brick_runtime.errors import BrickYamlError, InputValidationError
from brick_runtime.expressions import is_expression
from brick_runtime.models import EXPRESSION_TYPES


class BrickYamlLoader(yaml.SafeLoader):
    """SafeLoader that understands expression tags."""


class BrickYamlDumper(yaml.SafeDumper):
    """SafeDumper that writes expression dicts as tags."""


def _expression_constructor(expression_type: str):
    def construct(loader: yaml.SafeLoader, node: yaml.Node) -> dict[str, Any]:
        if isinstance(node, yaml.SequenceNode):
            value: Any = loader.construct_sequence(node, deep=True)
        elif isinstance(node, yaml.MappingNode):
            value = loader.construct_mapping(node, deep=True)
        else:
            value = loader.construct_scalar(node)
        return {"__type__": expression_type, "__value__": value}

    return construct


def _represent_dict(dumper: yaml.SafeDumper, data: dict[str, Any]) -> yaml.Node:
    if not is_expression(data):
        return dumper.represent_dict(data)

    tag = f"!{data['__type__']}"
    value = data.get("__value__")
    if isinstance(value, list):
        return dumper.represent_sequence(tag, value)
    if isinstance(value, dict):
        return dumper.represent_mapping(tag, value)
    return dumper.represent_scalar(tag, "" if value is None else str(value))


for _expression_type in sorted(EXPRESSION_TYPES):
    BrickYamlLoader.add_constructor(
        f"!{_expression_type}", _expression_constructor(_expression_type)
    )
BrickYamlDumper.add_representer(dict, _represent_dict)


def load_brick_yaml(text: str) -> Any:
    """Parse brick YAML, converting expression tags to expression dicts.

    Raises:
        BrickYamlError: If the YAML is invalid or uses an unknown tag.
    """
    try:
        return yaml.load(text, Loader=BrickYamlLoader)
    except yaml.YAMLError as e:
        raise BrickYamlError(f"Invalid brick YAML: {e}") from e


def dump_brick_yaml(value: Any) -> str:
    """Serialize *value* to YAML, writing expression dicts as tags."""
    return yaml.dump(
        value, Dumper=BrickYamlDumper, sort_keys=False, allow_unicode=True
    )


def load_brick_definition(path: str | Path) -> dict[str, Any]:
    """Load a brick definition from a YAML file.

    Raises:
        BrickYamlError: If the file doesn't exist, the YAML is invalid,
            or the document isn't a mapping.
    """
    path = Path(path)
    if not path.is_file():
        raise BrickYamlError(f"Brick definition not found: {path}")

    raw = load_brick_yaml(path.read_text(encoding="utf-8"))

    if not isinstance(raw, dict):
        raise BrickYamlError(
            f"Brick YAML must be a mapping, got {type(raw).__name__}"
        )
    return raw


def validate_input(schema: dict[str, Any], data: Any) -> None:
    """Validate rendered brick arguments against the brick's input schema.

    Raises:
        InputValidationError: If data doesn't match schema.
    """
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        raise InputValidationError(f"Input validation failed: {e.message}") from e
