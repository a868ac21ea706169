"""Property-path parsing, resolution and construction.

Paths look like ``@input.items[2].title``, ``foo?.bar`` or
``links["with space"]``. A trailing ``?`` on a segment makes it an optional
chain: a missing value there resolves to None instead of raising.

Resolution reads values through a :class:`PathProxy`. The default proxy
only reads a mapping's own keys and a sequence's indices, never attributes
or methods, so host objects can't leak values through the path syntax.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from brick_runtime.errors import InvalidPathError, MethodInvocationError

_BRACKET_RE = re.compile(
    r"""\[\s*(?:
        (?P<index>\d+)
        |"(?P<double>(?:[^"\\]|\\.)*)"
        |'(?P<single>(?:[^'\\]|\\.)*)'
    )\s*\]""",
    re.VERBOSE,
)
_NAME_RE = re.compile(r"[^.\[\]?]+")
_DIGITS_RE = re.compile(r"\d+")
_SIMPLE_PATH_RE = re.compile(r"@?[\w-]+\??(\.[\w-]+\??)*", re.ASCII)
# Segments the builder can emit with dot notation
_PLAIN_PART_RE = re.compile(r"[^\s.\[\]\"'?]+")


@dataclass(frozen=True)
class PathPart:
    """One parsed path segment."""

    key: str
    is_optional: bool = False


@dataclass(frozen=True)
class PathSpecPart:
    """A segment handed to the path builder."""

    part: str | int
    is_optional: bool = False


# ── Traversal proxies ─────────────────────────────────────────────


class PathProxy(Protocol):
    """Reads values during traversal.

    Alternate implementations read other object representations (e.g.
    component caches of a page framework) without first converting them
    to plain data.
    """

    def get(self, value: Any, key: str | int) -> Any: ...

    def to_js(self, value: Any) -> Any: ...


class OwnPropertyProxy:
    """Default proxy: own mapping keys and in-range sequence indices only."""

    def get(self, value: Any, key: str | int) -> Any:
        if isinstance(value, Mapping):
            return value[key] if key in value else None
        if isinstance(value, (list, tuple)) and isinstance(key, int):
            return value[key] if 0 <= key < len(value) else None
        return None

    def to_js(self, value: Any) -> Any:
        return value


DEFAULT_PROXY = OwnPropertyProxy()


# ── Parsing ───────────────────────────────────────────────────────


def _unquote(match: re.Match[str], path: str) -> str:
    if match["double"] is not None:
        try:
            return json.loads(f'"{match["double"]}"')
        except json.JSONDecodeError as e:
            raise InvalidPathError(f"Invalid path: {path}", path) from e
    return re.sub(r"\\(.)", r"\1", match["single"])


def _tokenize(path: str) -> Iterator[tuple[PathPart, int]]:
    """Yield each segment of *path* with its start offset."""
    pos = 0
    expect_segment = True

    while pos < len(path):
        start = pos
        char = path[pos]

        if char == ".":
            if expect_segment:
                raise InvalidPathError(f"Invalid path: {path}", path)
            pos += 1
            expect_segment = True
            continue

        if char == "[":
            match = _BRACKET_RE.match(path, pos)
            if match is None:
                raise InvalidPathError(f"Invalid path: {path}", path)
            key = match["index"] if match["index"] is not None else _unquote(match, path)
        else:
            match = _NAME_RE.match(path, pos) if expect_segment else None
            if match is None:
                raise InvalidPathError(f"Invalid path: {path}", path)
            key = match.group()

        pos = match.end()
        is_optional = pos < len(path) and path[pos] == "?"
        if is_optional:
            pos += 1

        yield PathPart(key, is_optional), start
        expect_segment = False

    if expect_segment and pos > 0:
        # Trailing dot
        raise InvalidPathError(f"Invalid path: {path}", path)


def parse_path(path: str) -> list[PathPart]:
    """Split *path* into segments.

    Raises:
        InvalidPathError: On malformed syntax (empty segments, unterminated
            brackets, characters after a bracket without a dot).
    """
    return [part for part, _ in _tokenize(path)]


# ── Resolution ────────────────────────────────────────────────────


def _is_primitive(value: Any) -> bool:
    return value is None or isinstance(value, (str, bytes, int, float, bool))


def clean_value(value: Any, max_depth: int | None = None, depth: int = 0) -> Any:
    """Return a plain-data copy of *value*.

    Mappings become dicts, tuples become lists, callables become None, and
    anything nested deeper than *max_depth* becomes None.
    """
    if max_depth is not None and depth > max_depth:
        return None
    if isinstance(value, Mapping):
        return {k: clean_value(v, max_depth, depth + 1) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [clean_value(v, max_depth, depth + 1) for v in value]
    if callable(value):
        return None
    return value


def get_prop_by_path(
    root: Any,
    path: str,
    *,
    args: Any = None,
    proxy: PathProxy | None = None,
    max_depth: int | None = None,
) -> Any:
    """Resolve *path* against *root*.

    Args:
        root: Object to traverse, usually the execution context.
        path: Property path, e.g. ``"@input.items[0]?.title"``.
        args: Single argument passed to methods met along the path.
            Defaults to an empty dict.
        proxy: Traversal proxy. Defaults to :class:`OwnPropertyProxy`.
        max_depth: Depth limit applied when cleaning the result.

    Returns:
        The resolved value, or None when an optional or final segment
        is missing.

    Raises:
        InvalidPathError: If the path is malformed, traverses into a
            primitive, or a required intermediate segment is missing.
        MethodInvocationError: If a method on the path raises.
    """
    if proxy is None:
        proxy = DEFAULT_PROXY
    if args is None:
        args = {}

    parts = parse_path(path)
    value = root

    for index, part in enumerate(parts):
        previous = value
        is_numeric_index = isinstance(previous, (list, tuple)) and bool(
            _DIGITS_RE.fullmatch(part.key)
        )

        if _is_primitive(previous) and not is_numeric_index:
            raise InvalidPathError("Invalid path", path)

        value = proxy.get(previous, int(part.key) if is_numeric_index else part.key)

        if value is None:
            if part.is_optional or index == len(parts) - 1:
                return None
            raise InvalidPathError(f"{path} undefined (missing {part.key})", path)

        if callable(value):
            try:
                value = value(args)
            except Exception as e:
                raise MethodInvocationError(
                    f"Error running method {part.key} of {path}: {e}"
                ) from e

    return clean_value(proxy.to_js(value), max_depth)


def is_simple_path(candidate: str, ctxt: Any) -> bool:
    """True if *candidate* is a plain dotted variable path into *ctxt*.

    The first segment (without a trailing ``?``) must be an own key of
    *ctxt*, so literal strings that happen to look like paths aren't
    mistaken for variables.
    """
    if not isinstance(candidate, str) or not _SIMPLE_PATH_RE.fullmatch(candidate):
        return False

    head = candidate.split(".", 1)[0].removesuffix("?")
    return isinstance(ctxt, Mapping) and head in ctxt


# ── Construction ──────────────────────────────────────────────────


def _normalize(part: str | int | PathSpecPart) -> tuple[str | int, bool]:
    if isinstance(part, PathSpecPart):
        return part.part, part.is_optional
    return part, False


def _format_part(part: str | int, *, first: bool, after_optional: bool) -> str:
    if isinstance(part, int):
        if part < 0:
            raise ValueError(f"Path index must be non-negative: {part}")
        token = f"[{part}]"
    elif not _PLAIN_PART_RE.fullmatch(part):
        token = f"[{json.dumps(part, ensure_ascii=False)}]"
    else:
        return part if first else f".{part}"

    return f".{token}" if after_optional else token


def get_path_from_array(parts: Sequence[str | int | PathSpecPart]) -> str:
    """Build a path string from segments.

    Integers and keys that aren't plain identifiers use bracket notation,
    attached without a dot unless the previous segment is optional::

        ["title", "Divine Comedy"]                -> 'title["Divine Comedy"]'
        ["links", 5]                              -> "links[5]"
        [PathSpecPart("foo", is_optional=True), 0] -> "foo?.[0]"
    """
    path = ""
    previous_optional = False

    for index, raw in enumerate(parts):
        part, is_optional = _normalize(raw)
        path += _format_part(part, first=index == 0, after_optional=previous_optional)
        if is_optional:
            path += "?"
        previous_optional = is_optional

    return path


def add_path_part(path: str, part: str | int) -> str:
    """Append one segment to *path*. An empty *path* returns just the part."""
    return path + _format_part(
        part, first=not path, after_optional=path.endswith("?")
    )


def get_field_names_from_path_string(path: str) -> tuple[str | None, str]:
    """Split *path* into its parent path and final field name.

    ``"foo.bar[0].baz"`` -> ``("foo.bar[0]", "baz")``; a single segment
    has no parent.
    """
    tokens = list(_tokenize(path))
    if not tokens:
        return None, ""

    last, start = tokens[-1]
    parent = path[:start].removesuffix(".")
    return (parent or None), last.key
