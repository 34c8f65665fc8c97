"""
Structured logging for the period-control engine.

Responsibility:
    One JSON object per log line, carrying the request context bound by
    FiscalPeriodService (correlation id, tenant, actor, fiscal year, period)
    and the structured attributes of PeriodControlError subclasses.

Architecture position:
    Infrastructure -- imported by every service module through get_logger().
    Handlers are installed once by configure_logging(); library code never
    configures logging itself.
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Iterator
from uuid import UUID

from finance_periods.exceptions import PeriodControlError

LOGGER_ROOT = "finance_periods"

CONTEXT_FIELDS = ("correlation_id", "tenant_id", "actor", "fiscal_year", "period_id")

_context: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"period_log_{name}", default=None) for name in CONTEXT_FIELDS
}


class LogContext:
    """Request-scoped log fields, safe across threads and asyncio tasks."""

    @staticmethod
    def get_all() -> dict[str, str]:
        values = {name: var.get() for name, var in _context.items()}
        return {name: value for name, value in values.items() if value is not None}

    @staticmethod
    def clear() -> None:
        for var in _context.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """
        Set context fields for the duration of a block.

        None values leave the enclosing value in place.  Previous values are
        restored on exit, including when the block raises.

        Raises:
            TypeError: A field name outside CONTEXT_FIELDS.
        """
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"unknown log context fields: {sorted(unknown)}")
        tokens = [
            (_context[name], _context[name].set(str(value)))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    return repr(value)


class StructuredFormatter(logging.Formatter):
    """Formats a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {"exc_type": type(exc).__name__, "exc_message": str(exc)}
        if isinstance(exc, PeriodControlError):
            fields["exc_code"] = exc.code
            fields.update(
                (f"exc_{name}", value)
                for name, value in vars(exc).items()
                if not name.startswith("_")
            )
        return fields


def get_logger(name: str) -> logging.Logger:
    """Logger ``finance_periods.<name>``."""
    return logging.getLogger(f"{LOGGER_ROOT}.{name}")


_configured = False


def configure_logging(
    *,
    level: int | str = logging.INFO,
    handler: logging.Handler | None = None,
) -> None:
    """
    Install the JSON handler on the ``finance_periods`` logger.

    Only the first call has an effect; later calls are ignored until
    reset_logging().  Without ``handler`` records go to stderr.
    """
    global _configured
    if _configured:
        return
    _configured = True

    root = logging.getLogger(LOGGER_ROOT)
    root.setLevel(level)
    root.propagate = False
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)


def reset_logging() -> None:
    """Undo configure_logging(). For tests."""
    global _configured
    _configured = False
    root = logging.getLogger(LOGGER_ROOT)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
    root.propagate = True
