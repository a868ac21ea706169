"""Structured JSON logging for brick argument rendering.

Writes JSON-lines to disk so developers can debug brick runs after the
fact. Each log entry is a single JSON object on one line.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

_logger = logging.getLogger("brick_runtime")


def configure_logging(
    log_dir: str | Path, level: int = logging.DEBUG
) -> None:
    """Set up runtime logging to write JSON-lines to a file.

    Args:
        log_dir: Directory to write ``runtime.log`` into.
        level: Logging level (default: DEBUG).
    """
    log_path = Path(log_dir) / "runtime.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(str(log_path))
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    _logger.addHandler(handler)
    _logger.setLevel(level)


def _log(event: dict[str, Any], level: int = logging.INFO) -> None:
    _logger.log(level, json.dumps(event, default=str))


def log_render_start(brick_id: str, api_version: str) -> None:
    _log({"event": "render_start", "brick_id": brick_id, "api_version": api_version})


def log_render_complete(brick_id: str, duration_ms: float) -> None:
    _log({
        "event": "render_complete",
        "brick_id": brick_id,
        "duration_ms": round(duration_ms, 2),
    })


def log_render_args(brick_id: str, args: Any) -> None:
    # Rendered args may contain user data; only logged when asked for
    _log({"event": "render_args", "brick_id": brick_id, "args": args}, logging.DEBUG)


def log_error(brick_id: str, error: str, path: str | None = None) -> None:
    event: dict[str, Any] = {"event": "error", "brick_id": brick_id, "error": error}
    if path is not None:
        event["path"] = path
    _log(event, logging.ERROR)
