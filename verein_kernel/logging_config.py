"""
Module: verein_kernel.logging_config
Responsibility:
    Structured JSON logging for billing runs.  Every record is one JSON line
    carrying the run-scoped context (which member, invoice or SEPA batch is
    being processed) next to the event's own ``extra`` fields.

Architecture position:
    Kernel.  Imported by every layer; imports nothing from verein_*.

Usage:
    from verein_kernel.logging_config import LogContext, get_logger

    logger = get_logger("engines.dunning")
    with LogContext.bind(invoice_number="R-2025-0001"):
        logger.info("reminder_due", extra={"days_overdue": 24})
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator
from uuid import UUID

_LOGGER_PREFIX = "verein"

_CONTEXT_FIELDS = (
    "correlation_id",
    "actor_id",
    "member_id",
    "invoice_number",
    "batch_number",
    "trace_id",
)

_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"verein_log_{name}", default=None) for name in _CONTEXT_FIELDS
}


class LogContext:
    """
    Run-scoped fields merged into every log line.

    Backed by contextvars, so values set inside a thread or task never leak
    into another one.
    """

    @staticmethod
    def set(**fields: str | None) -> None:
        """Set context fields; None values leave the current value alone."""
        unknown = set(fields) - set(_CONTEXT_VARS)
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        for name, value in fields.items():
            if value is not None:
                _CONTEXT_VARS[name].set(value)

    @staticmethod
    def get_all() -> dict[str, str]:
        """Fields that currently hold a value."""
        return {
            name: var.get()
            for name, var in _CONTEXT_VARS.items()
            if var.get() is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _CONTEXT_VARS.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[type["LogContext"]]:
        """
        Set fields for the duration of a ``with`` block.

        Previous values (including "unset") are restored on exit.  Names
        that are not context fields are ignored.
        """
        tokens = [
            (_CONTEXT_VARS[name], _CONTEXT_VARS[name].set(value))
            for name, value in fields.items()
            if value is not None and name in _CONTEXT_VARS
        ]
        try:
            yield LogContext
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# Attributes every LogRecord has; anything else on a record came from extra=.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    """Serialize the value types billing events log (ids, dates, amounts)."""
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return str(value)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, context, extras, exception."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # Billing exceptions keep their data as public attributes
        # (member_id, missing_fields, invoice_number, ...).
        for name, value in vars(exc).items():
            if not name.startswith("_") and name not in ("args", "code"):
                fields[f"exc_{name}"] = value
        return fields


def get_logger(name: str) -> logging.Logger:
    """Logger named ``verein.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``verein`` logger.

    Only the first call has an effect until ``reset_logging()``.  Records do
    not propagate to the root logger, so host applications keep their own
    formatting.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())

    verein_logger = logging.getLogger(_LOGGER_PREFIX)
    verein_logger.setLevel(level)
    verein_logger.propagate = False
    verein_logger.addHandler(handler)


def reset_logging() -> None:
    """Drop handlers and undo ``configure_logging()``. Used by tests."""
    global _configured
    with _lock:
        _configured = False
    verein_logger = logging.getLogger(_LOGGER_PREFIX)
    verein_logger.handlers.clear()
    verein_logger.setLevel(logging.WARNING)
    verein_logger.propagate = True
