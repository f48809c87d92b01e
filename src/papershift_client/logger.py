"""Structured JSON logger for the OCR client.

Outputs one JSON object per line:
{"time":"2026-10-19T14:06:20.829529+00:00","level":"INFO","source":{"function":"process","file":"client.py","line":43},"msg":"ocr request started","request_id":"..."}
"""

import json
import logging
import os
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any

# Per-task fields merged into every record (request_id, document_kind, ...)
_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

LOG_LEVEL = os.getenv("PAPERSHIFT_LOG_LEVEL", "INFO").upper()


class StructuredFormatter(logging.Formatter):
    """JSON formatter with time, level, source location and extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.fromtimestamp(record.created, timezone.utc).astimezone()

        log_entry: dict[str, Any] = {
            "time": now.isoformat(),
            "level": record.levelname,
            "source": {
                "function": record.funcName,
                "file": record.pathname,
                "line": record.lineno,
            },
            "msg": record.getMessage(),
        }

        ctx_fields = _log_context.get()
        if ctx_fields:
            log_entry.update(ctx_fields)

        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class StructuredLogger:
    """Logger that outputs structured JSON logs with context support."""

    def __init__(self, name: str = "app", level: str = LOG_LEVEL):
        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, level, logging.INFO))

        self._logger.handlers.clear()

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        self._logger.addHandler(handler)

        self._logger.propagate = False

    def _log(
        self,
        level: int,
        msg: str,
        stacklevel: int = 3,
        **fields: Any,
    ) -> None:
        """Internal log method that handles extra fields."""
        extra = {"extra_fields": fields} if fields else {}
        self._logger.log(level, msg, stacklevel=stacklevel, extra=extra)

    def set_level(self, level: str) -> None:
        """Change the minimum level, e.g. "DEBUG" or "WARNING"."""
        self._logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    def debug(self, msg: str, **fields: Any) -> None:
        """Log a debug message with optional fields."""
        self._log(logging.DEBUG, msg, **fields)

    def info(self, msg: str, **fields: Any) -> None:
        """Log an info message with optional fields."""
        self._log(logging.INFO, msg, **fields)

    def warn(self, msg: str, **fields: Any) -> None:
        """Log a warning message with optional fields."""
        self._log(logging.WARNING, msg, **fields)

    def error(self, msg: str, **fields: Any) -> None:
        """Log an error message with optional fields."""
        self._log(logging.ERROR, msg, **fields)


def set_context(**fields: Any) -> None:
    """Set context fields that will be included in all subsequent log messages.

    The context lives in a ContextVar, so fields set inside one asyncio task
    are not visible to other tasks.

    Example:
        set_context(request_id="abc-123", document_kind="pdf")
        logger.info("ocr request started")  # includes request_id and document_kind
    """
    current = _log_context.get()
    _log_context.set({**current, **fields})


def push_context(**fields: Any) -> Token:
    """Add context fields and return a token that restores the previous context.

    Use this instead of set_context/clear_context when the caller's own
    context must survive, e.g. inside a library call:

        token = push_context(request_id="abc-123")
        try:
            ...
        finally:
            pop_context(token)
    """
    return _log_context.set({**_log_context.get(), **fields})


def pop_context(token: Token) -> None:
    """Restore the context that was active before the matching push_context."""
    _log_context.reset(token)


def clear_context() -> None:
    """Clear all context fields."""
    _log_context.set({})


def get_context() -> dict[str, Any]:
    """Get current context fields."""
    return _log_context.get().copy()


# Default logger instance
logger = StructuredLogger("papershift_client")
