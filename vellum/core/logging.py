"""
Structured logging configuration for Vellum.

Supports both human-readable (development) and JSON (production) formats.
Fields bound with LogContext are attached to every record emitted inside it.
"""

import logging
import json
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict

from vellum.core.config import LOG_FORMAT, LOG_LEVEL


_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName",
))

_log_context: ContextVar[Dict[str, Any]] = ContextVar("vellum_log_context", default={})


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    One object per line: timestamp, level, logger, message, source location,
    exception text, LogContext fields and any `extra=` fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.pathname:
            log_data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data.update(LogContext.current())

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = LogContext.current()
        if context:
            bound = " ".join(f"{key}={value}" for key, value in context.items())
            line = f"{line} | {bound}"
        return line


def configure_logging(level: str = "INFO", format_type: str = "text") -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: "json" for structured, "text" for human-readable
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if format_type.lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())

    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name, typically __name__

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


class LogContext:
    """
    Context manager for adding fields to log records.

    Usage:
        with LogContext(document_id=doc_id, document_version_id=version_id):
            logger.info("Writing field rows")  # carries both ids

    Backed by a ContextVar so concurrent tasks keep separate fields.
    """

    def __init__(self, **kwargs):
        self._fields = kwargs
        self._token = None

    @staticmethod
    def current() -> Dict[str, Any]:
        return dict(_log_context.get())

    def bind(self, **kwargs) -> None:
        """Add fields to an already-entered context."""
        merged = dict(_log_context.get())
        merged.update(kwargs)
        _log_context.set(merged)

    def __enter__(self):
        merged = dict(_log_context.get())
        merged.update(self._fields)
        self._token = _log_context.set(merged)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _log_context.reset(self._token)
        self._token = None


# Auto-configure on import based on environment
configure_logging(level=LOG_LEVEL, format_type=LOG_FORMAT)
