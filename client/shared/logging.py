"""Structured logging configuration with structlog.

Environment variables:
- LOG_FORMAT: "json" for machine-readable output, "console" or unset for
  human-readable colored output.
- LOG_LEVEL: "DEBUG", "INFO" (default), "WARNING", "ERROR", or "CRITICAL".

Wire traffic is logged at DEBUG, so LOG_LEVEL=DEBUG shows every line sent
to and received from the game server.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from typing import Any

LOG_FILE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
LOG_FILE_PREFIX = "client"

_VALID_LOG_FORMATS = {"json", "console", ""}
_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _serialize_enums(
    _logger: object,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Replace Enum instances (phases, cell states, outcomes) with their .value."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
        elif isinstance(value, (list, tuple)):
            event_dict[key] = [v.value if isinstance(v, Enum) else v for v in value]
    return event_dict


def _is_test() -> bool:
    return "pytest" in sys.modules


def _resolve_json_mode() -> bool:
    value = os.environ.get("LOG_FORMAT", "").lower()
    if value not in _VALID_LOG_FORMATS:
        msg = f"Invalid LOG_FORMAT={value!r}. Must be 'json', 'console', or unset."
        raise ValueError(msg)
    return value == "json"


def _resolve_log_level() -> int:
    value = os.environ.get("LOG_LEVEL", "INFO").upper()
    if value not in _VALID_LOG_LEVELS:
        msg = f"Invalid LOG_LEVEL={value!r}. Must be one of {', '.join(sorted(_VALID_LOG_LEVELS))}."
        raise ValueError(msg)
    return getattr(logging, value)


def _formatter(*, json_mode: bool, colors: bool) -> logging.Formatter:
    renderer: Any = structlog.processors.JSONRenderer() if json_mode else structlog.dev.ConsoleRenderer(colors=colors)
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def _log_file_name(tag: str | None) -> str:
    timestamp = datetime.now(tz=UTC).strftime(LOG_FILE_TIMESTAMP_FORMAT)
    parts = [LOG_FILE_PREFIX]
    if tag:
        parts.append("".join(ch if ch.isalnum() or ch in "-_" else "-" for ch in tag))
    parts.append(timestamp)
    return "_".join(parts) + ".log"


def setup_logging(
    log_dir: Path | str | None = None,
    level: int | None = None,
    *,
    tag: str | None = None,
) -> Path | None:
    """Configure structlog to render through the stdlib root logger.

    Output always goes to stdout. With log_dir, each client run also gets its
    own file, named client[_<tag>]_<utc timestamp>.log, whose path is
    returned. The tag is usually the nick so that two clients started from
    one checkout do not interleave in a single file. LOG_LEVEL applies
    unless level is passed.
    """
    json_mode = _resolve_json_mode()
    if level is None:
        level = _resolve_log_level()

    # exceptions are formatted per handler by ProcessorFormatter
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _serialize_enums,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_formatter(json_mode=json_mode, colors=sys.stdout.isatty()))
    root.addHandler(console)

    if log_dir is None or _is_test():
        return None

    dir_path = Path(log_dir)
    dir_path.mkdir(parents=True, exist_ok=True)
    file_path = dir_path / _log_file_name(tag)
    file_handler = logging.FileHandler(file_path, encoding="utf-8")
    file_handler.setFormatter(_formatter(json_mode=json_mode, colors=False))
    root.addHandler(file_handler)
    return file_path
