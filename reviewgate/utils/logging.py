"""Structured logging for reviewgate.

All package loggers live under the ``reviewgate`` namespace so a single
``setup_logging`` call configures the whole pipeline. Output goes to stderr,
leaving stdout free for the report (``--json`` pipes cleanly).
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

ROOT_LOGGER_NAME = "reviewgate"

_LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[1;31m",
}
_RESET = "\033[0m"


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for CI log collectors."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            payload["duration_ms"] = duration
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


class HumanFormatter(logging.Formatter):
    """Compact single-line formatter for terminals."""

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        if self.use_colors and level in _LEVEL_COLORS:
            level = f"{_LEVEL_COLORS[level]}{level}{_RESET}"
        line = f"{level:<8} {record.name}: {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(level: str = "WARNING", json_format: bool = False) -> logging.Logger:
    """Configure the root ``reviewgate`` logger.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR).
        json_format: Emit JSON lines instead of human-readable text.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(HumanFormatter(use_colors=sys.stderr.isatty()))
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger under the ``reviewgate`` namespace."""
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


@contextmanager
def log_operation(
    logger: logging.Logger,
    operation: str,
    level: int = logging.DEBUG,
) -> Iterator[None]:
    """Log the start and completion (with duration) of an operation."""
    logger.log(level, f"Starting {operation}")
    start = time.monotonic()
    try:
        yield
    except Exception:
        elapsed = (time.monotonic() - start) * 1000
        logger.log(logging.WARNING, f"{operation} failed after {elapsed:.0f}ms")
        raise
    elapsed = (time.monotonic() - start) * 1000
    logger.log(
        level,
        f"Completed {operation} in {elapsed:.0f}ms",
        extra={"duration_ms": round(elapsed, 1)},
    )
