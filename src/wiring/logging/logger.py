# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""
Logger setup for wiring.

This module configures Python's standard logging for the ``wiring`` logger
hierarchy, enhanced with structured context output.
"""

from __future__ import annotations

import contextlib
import datetime
import enum
import json
import logging
import sys
import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

from wiring.logging.config import LoggingSettings
from wiring.logging.level import LogLevel

if TYPE_CHECKING:
    from collections.abc import Iterator

ROOT_LOGGER_NAME = "wiring"

# Context variable for storing log context data
_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime", "taskName"}


class StructuredFormatter(logging.Formatter):
    """Formatter that supports structured logging with context data."""

    def __init__(
        self,
        json_format: bool = False,
        include_timestamp: bool = True,
        include_level: bool = True,
    ) -> None:
        """Initialize a structured formatter.

        Args:
            json_format: Whether to format logs as JSON
            include_timestamp: Whether to include timestamps in logs
            include_level: Whether to include log level in logs
        """
        self.json_format = json_format
        self.include_timestamp = include_timestamp
        self.include_level = include_level

        fmt = "%(name)s %(message)s"
        if include_timestamp:
            fmt = "%(asctime)s " + fmt
        if include_level and not json_format:
            fmt = fmt + " [%(levelname)s]"

        super().__init__(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record with structured data."""
        extra: dict[str, Any] = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
        }

        context = _log_context.get()
        if context:
            extra.update(context)

        if self.json_format:
            return self._format_json(record, extra)
        message = super().format(record)
        return self._format_text(message, extra)

    def _format_json(self, record: logging.LogRecord, extra: dict[str, Any]) -> str:
        log_data = {"name": record.name, "message": record.getMessage(), **extra}

        if self.include_level:
            log_data["level"] = record.levelname

        if self.include_timestamp:
            log_data["timestamp"] = self.formatTime(record, self.datefmt)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
            log_data["error"] = str(record.exc_info[1])

        return json.dumps(log_data, default=self._format_value)

    def _format_text(self, message: str, extra: dict[str, Any]) -> str:
        if not extra:
            return message

        ctx_str = " ".join(f"{k}={self._format_value(v)}" for k, v in extra.items())
        return f"{message} {ctx_str}"

    def _format_value(self, value: Any) -> str:
        """Format a value for text output."""
        if isinstance(value, str):
            if " " in value:
                return f'"{value}"'
            return value
        if isinstance(value, datetime.datetime | datetime.date):
            return value.isoformat()
        if isinstance(value, uuid.UUID):
            return str(value)
        if isinstance(value, enum.Enum):
            return value.name
        if isinstance(value, type):
            return value.__name__
        if isinstance(value, BaseException):
            return str(value)
        try:
            return json.dumps(value)
        except TypeError:
            return str(value)


def configure_logging(settings: LoggingSettings | None = None) -> logging.Logger:
    """Install handlers on the ``wiring`` root logger.

    Calling this again replaces previously installed handlers.

    Args:
        settings: Logging settings (loaded from the environment if None)

    Returns:
        The configured ``wiring`` logger
    """
    settings = settings or LoggingSettings.load()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(LogLevel.from_string(settings.level).to_stdlib_level())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    formatter = StructuredFormatter(
        json_format=settings.json_format,
        include_timestamp=settings.include_timestamp,
        include_level=settings.include_level,
    )

    if settings.console_enabled:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(formatter)
        logger.addHandler(console)

    if settings.file_enabled and settings.file_path:
        file_handler = logging.FileHandler(settings.file_path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def get_logger(name: str, level: LogLevel | None = None) -> logging.Logger:
    """Get a logger inside the ``wiring`` hierarchy.

    Args:
        name: Logger name (typically __name__)
        level: Optional log level override

    Returns:
        A standard library logger
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level.to_stdlib_level())
    return logger


@contextlib.contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Add context values to every record formatted within this block.

    Uses a context variable, so values stay local to the current task.
    """
    token = _log_context.set({**_log_context.get(), **kwargs})
    try:
        yield
    finally:
        _log_context.reset(token)
