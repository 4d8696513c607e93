"""Logging setup for chunkvault.

Modules log through the standard library (``logging.getLogger(__name__)``).
This module adds a TRACE level used for call tracing and configures the
``chunkvault`` logger hierarchy with a console or JSON formatter.

Usage:
    >>> from chunkvault.infrastructure.logging import configure_logging
    >>>
    >>> configure_logging(level="debug", format="json")
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, TextIO

ROOT_LOGGER = "chunkvault"

TRACE = 5
logging.addLevelName(TRACE, "TRACE")


# =============================================================================
# Log Levels
# =============================================================================


class LogLevel(IntEnum):
    """Log severity levels."""

    TRACE = 5
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def from_string(cls, level: str) -> "LogLevel":
        """Convert string to LogLevel."""
        mapping = {
            "trace": cls.TRACE,
            "debug": cls.DEBUG,
            "info": cls.INFO,
            "warning": cls.WARNING,
            "warn": cls.WARNING,
            "error": cls.ERROR,
            "critical": cls.CRITICAL,
            "fatal": cls.CRITICAL,
        }
        return mapping.get(level.lower(), cls.INFO)


# =============================================================================
# Formatters
# =============================================================================


class ConsoleFormatter(logging.Formatter):
    """Human readable single line formatter."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def __init__(self, service: str = "") -> None:
        super().__init__()
        self._service = service

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self._service:
            data["service"] = self._service
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class LogConfig:
    """Logging configuration.

    Example:
        >>> config = LogConfig(level="debug", format="json", service="restore")
    """

    level: str | LogLevel = LogLevel.WARNING
    format: str = "console"  # console, json
    service: str = ""
    stream: TextIO | None = None

    @property
    def log_level(self) -> LogLevel:
        if isinstance(self.level, LogLevel):
            return self.level
        return LogLevel.from_string(str(self.level))


# =============================================================================
# Global Setup
# =============================================================================

_handler: logging.Handler | None = None
_lock = threading.Lock()


def configure_logging(
    *,
    level: str | LogLevel = LogLevel.WARNING,
    format: str = "console",
    service: str = "",
    stream: TextIO | None = None,
) -> LogConfig:
    """Configure the ``chunkvault`` logger.

    Replaces any handler installed by a previous call.

    Args:
        level: Log level.
        format: Output format (console, json).
        service: Service name included in JSON records.
        stream: Output stream (defaults to stderr).

    Returns:
        The applied configuration.
    """
    global _handler

    config = LogConfig(level=level, format=format, service=service, stream=stream)
    if config.format not in ("console", "json"):
        raise ValueError(f"Unsupported log format: {config.format}")

    handler = logging.StreamHandler(config.stream or sys.stderr)
    if config.format == "json":
        handler.setFormatter(JsonFormatter(service=config.service))
    else:
        handler.setFormatter(ConsoleFormatter())

    root = logging.getLogger(ROOT_LOGGER)
    with _lock:
        if _handler is not None:
            root.removeHandler(_handler)
        root.addHandler(handler)
        root.setLevel(int(config.log_level))
        _handler = handler

    return config


def reset_logging() -> None:
    """Remove the handler installed by ``configure_logging``."""
    global _handler

    root = logging.getLogger(ROOT_LOGGER)
    with _lock:
        if _handler is not None:
            root.removeHandler(_handler)
            _handler = None
        root.setLevel(logging.NOTSET)
