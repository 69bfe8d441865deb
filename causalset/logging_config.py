"""Logging configuration helpers for causalset.

The library is silent by default: importing ``causalset`` only attaches a
``NullHandler``. Applications and test harnesses opt in explicitly.

Example usage:
    import causalset

    # Watch merges and tombstone pruning on the console
    causalset.enable_console_logging(level="DEBUG")

    # Keep a bounded log of a long convergence sweep, one JSON object per line
    causalset.enable_file_logging("logs/sweep.log", max_bytes=10_000_000, json_format=True)

    # Structured output for log aggregation
    causalset.enable_json_logging()

    # Or let the environment decide
    causalset.configure_from_env()

Environment variables:
    CS_LOGGING: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    CS_LOG_FILE: Path to log file (enables rotating file logging)
    CS_LOG_JSON: Set to "1" for JSON output
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Literal, TypeVar

__all__ = [
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "set_level",
    "set_module_level",
]

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5

LOGGER_NAME = "causalset"

ENV_LEVEL = "CS_LOGGING"
ENV_FILE = "CS_LOG_FILE"
ENV_JSON = "CS_LOG_JSON"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_H = TypeVar("_H", bound=logging.Handler)


class JsonFormatter(logging.Formatter):
    """Formats log records as one JSON object per line.

    Example output:
        {"timestamp": "2026-01-15T10:30:00.123456+00:00", "level": "DEBUG",
         "logger": "causalset.components.crdt.replicated_set",
         "message": "[replica 0] merged replica 1: ..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra"):
            log_data["extra"] = record.extra

        return json.dumps(log_data)


def _get_level(level: str | int) -> int:
    """Convert a level name or int to a logging level constant."""
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def _get_logger() -> logging.Logger:
    """Get the causalset root logger."""
    return logging.getLogger(LOGGER_NAME)


def _clear_handlers() -> None:
    """Remove and close every handler on the causalset logger except NullHandler."""
    logger = _get_logger()
    for handler in logger.handlers[:]:
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
            handler.close()


def _attach(handler: _H, level: LogLevel | int, formatter: logging.Formatter) -> _H:
    logger = _get_logger()
    logger.setLevel(_get_level(level))
    handler.setLevel(_get_level(level))
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return handler


def _prepare_path(path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def enable_console_logging(
    level: LogLevel | int = "INFO",
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> logging.StreamHandler:
    """Enable console (stderr) logging for causalset.

    Args:
        level: Log level name or int.
        format: Log message format string.
        date_format: Date format string for %(asctime)s.

    Returns:
        The created StreamHandler.
    """
    return _attach(logging.StreamHandler(), level, logging.Formatter(format, date_format))


def enable_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    json_format: bool = False,
) -> RotatingFileHandler:
    """Enable size-rotated file logging for causalset.

    Args:
        path: Log file path. Parent directories are created automatically.
        level: Log level name or int.
        max_bytes: Maximum size of each log file in bytes. Default 10 MB.
        backup_count: Number of rotated files to keep. Default 5.
        format: Log message format string. Ignored with ``json_format``.
        date_format: Date format string for %(asctime)s.
        json_format: Write one JSON object per line instead.

    Returns:
        The created RotatingFileHandler.
    """
    handler = RotatingFileHandler(
        _prepare_path(path),
        maxBytes=max_bytes,
        backupCount=backup_count,
    )
    formatter = JsonFormatter() if json_format else logging.Formatter(format, date_format)
    return _attach(handler, level, formatter)


def enable_json_logging(level: LogLevel | int = "INFO") -> logging.StreamHandler:
    """Enable JSON logging to stderr.

    Args:
        level: Log level name or int.

    Returns:
        The created StreamHandler with JsonFormatter.
    """
    return _attach(logging.StreamHandler(), level, JsonFormatter())


def configure_from_env() -> None:
    """Configure logging from ``CS_LOGGING``, ``CS_LOG_FILE`` and ``CS_LOG_JSON``.

    Does nothing when neither a level nor a file is set.
    """
    level = os.environ.get(ENV_LEVEL, "").upper()
    log_file = os.environ.get(ENV_FILE, "")
    use_json = os.environ.get(ENV_JSON, "") == "1"

    if not level and not log_file:
        return

    level = level or "INFO"

    if use_json:
        if log_file:
            enable_file_logging(log_file, level=level, json_format=True)
        else:
            enable_json_logging(level=level)
    elif log_file:
        enable_file_logging(log_file, level=level)
    else:
        enable_console_logging(level=level)


def set_level(level: LogLevel | int) -> None:
    """Set the log level of the causalset logger."""
    _get_logger().setLevel(_get_level(level))


def set_module_level(module: str, level: LogLevel | int) -> None:
    """Set the log level of one causalset submodule.

    Args:
        module: Module name relative to causalset (e.g. "simulation.convergence").
        level: Log level name or int.
    """
    logging.getLogger(f"{LOGGER_NAME}.{module}").setLevel(_get_level(level))


def disable_logging() -> None:
    """Silence causalset: drop all handlers and raise the level past CRITICAL."""
    logger = _get_logger()
    _clear_handlers()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.CRITICAL + 1)
