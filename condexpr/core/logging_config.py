"""
Logging infrastructure for condexpr.

Log records go to the ``condexpr`` logger hierarchy, rendered either as JSON
lines or as plain text, on stderr and optionally in a size-rotated file.
Evaluation results are written to stdout by the CLI, so logs never mix with
them.
"""

import json
import logging
import logging.handlers
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

PACKAGE_LOGGER = "condexpr"

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMG]?B)?\s*$", re.IGNORECASE)
_SIZE_UNITS = {None: 1, "B": 1, "KB": 1024, "MB": 1024 ** 2, "GB": 1024 ** 3}


class JSONFormatter(logging.Formatter):
    """Renders each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Plain one-line records: time, level, logger, message."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging(
    level: str = "WARNING",
    format_type: str = "text",
    log_file: Optional[str] = None,
    rotation_size: str = "10MB",
    rotation_count: int = 5
) -> None:
    """
    Configure the ``condexpr`` logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Level name, case-insensitive
        format_type: "json" or "text"
        log_file: Also write to this file, rotated by size
        rotation_size: Rotate the file past this size (e.g., "10MB")
        rotation_count: Rotated files to keep
    """
    # Enum members stringify as "LogLevel.DEBUG" on 3.11+
    level = getattr(level, "value", level)
    format_type = getattr(format_type, "value", format_type)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(getattr(logging, str(level).upper()))
    package_logger.handlers.clear()

    formatter = JSONFormatter() if format_type == "json" else TextFormatter()
    for handler in _build_handlers(log_file, rotation_size, rotation_count):
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    package_logger.debug(f"Logging configured: level={level}, format={format_type}")


def _build_handlers(
    log_file: Optional[str],
    rotation_size: str,
    rotation_count: int
) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if not log_file:
        return handlers

    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    handlers.append(logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=parse_size(rotation_size),
        backupCount=rotation_count,
        encoding="utf-8",
    ))
    return handlers


def parse_size(size_str: str) -> int:
    """
    Parse a human-readable size into bytes.

    Accepts a number with an optional B, KB, MB or GB suffix (any case);
    a bare number is bytes.

    Raises:
        ValueError: If the string is not a size

    Example:
        >>> parse_size("1.5KB")
        1536
    """
    match = _SIZE_PATTERN.match(size_str)
    if match is None:
        raise ValueError(f"Invalid size: {size_str!r}")

    number, unit = match.groups()
    multiplier = _SIZE_UNITS[unit.upper() if unit else None]
    return int(float(number) * multiplier)


def log_with_context(logger: logging.Logger, level: int, message: str, **context: Any) -> None:
    """
    Log a message with structured context.

    The context is attached to the record as ``record.context`` and shows up
    under the ``context`` key of JSON output.
    """
    extra = {"context": context} if context else {}
    logger.log(level, message, extra=extra)
