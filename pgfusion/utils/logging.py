"""Logging helpers for pgfusion.

Every library logger lives under the ``pgfusion`` namespace and carries the
correlation id of the current context, if any. Nothing is configured on
import; applications either attach their own handlers or call
:func:`configure_logging`.

Statements are logged at DEBUG through :func:`log_statement`, which records
the SQL text (truncated) and the number of bound values, never the values
themselves.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Final

from pgfusion.utils.serializers import to_json

if TYPE_CHECKING:
    from collections.abc import Iterator
    from logging import LogRecord

__all__ = (
    "ROOT_LOGGER_NAME",
    "SQL_TRUNCATION_LENGTH",
    "CorrelationIDFilter",
    "StructuredFormatter",
    "configure_logging",
    "correlation_context",
    "correlation_id_var",
    "get_correlation_id",
    "get_logger",
    "log_statement",
    "log_with_context",
    "set_correlation_id",
    "truncate_sql",
)

ROOT_LOGGER_NAME: Final = "pgfusion"
SQL_TRUNCATION_LENGTH: Final = 2000
SIMPLE_FORMAT: Final = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

correlation_id_var: ContextVar[str | None] = ContextVar("pgfusion_correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for the current context.

    Args:
        correlation_id: The correlation ID to set, or None to clear
    """
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


@contextmanager
def correlation_context(correlation_id: str) -> Iterator[str]:
    """Tag every record logged inside the block with ``correlation_id``.

    Usage::

        with correlation_context(request_id):
            await db.insert("song", record)
    """
    token = correlation_id_var.set(correlation_id)
    try:
        yield correlation_id
    finally:
        correlation_id_var.reset(token)


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    return repr(value)


class StructuredFormatter(logging.Formatter):
    """Formats each record as one JSON object.

    Structured fields attached by :func:`log_with_context` are merged into the
    object; values that JSON cannot represent are written as their ``repr``.
    """

    def format(self, record: LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        correlation_id = getattr(record, "correlation_id", None) or get_correlation_id()
        if correlation_id:
            entry["correlation_id"] = correlation_id
        for key, value in getattr(record, "extra_fields", {}).items():
            entry[key] = _jsonable(value)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return to_json(entry)


class CorrelationIDFilter(logging.Filter):
    """Copies the context's correlation id onto each record it lets through."""

    def filter(self, record: LogRecord) -> bool:
        correlation_id = get_correlation_id()
        if correlation_id:
            record.correlation_id = correlation_id  # type: ignore[attr-defined]
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger in the ``pgfusion`` namespace.

    Args:
        name: Dotted name below ``pgfusion``; ``None`` returns the namespace root.

    Returns:
        The logger, with a :class:`CorrelationIDFilter` attached once.
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIDFilter) for f in logger.filters):
        logger.addFilter(CorrelationIDFilter())
    return logger


def configure_logging(
    level: str = "INFO",
    format_style: str = "structured",
    log_to_file: str | None = None,
    extra_handlers: list[logging.Handler] | None = None,
) -> None:
    """Install handlers on the ``pgfusion`` logger, replacing existing ones.

    Records stop propagating to the Python root logger afterwards.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_style: ``"structured"`` for JSON lines, anything else for plain text
        log_to_file: Optional file path; the file always receives JSON lines
        extra_handlers: Additional handlers to add as they are
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        StructuredFormatter() if format_style == "structured" else logging.Formatter(SIMPLE_FORMAT)
    )
    root_logger.addHandler(console_handler)

    if log_to_file:
        file_handler = logging.FileHandler(log_to_file)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    for handler in extra_handlers or ():
        root_logger.addHandler(handler)
    root_logger.propagate = False

    log_with_context(
        root_logger,
        logging.DEBUG,
        "pgfusion logging configured",
        log_level=level,
        format_style=format_style,
        handlers_count=len(root_logger.handlers),
    )


def log_with_context(logger: logging.Logger, level: int, message: str, *args: Any, **extra_fields: Any) -> None:
    """Log ``message % args`` with ``extra_fields`` attached for :class:`StructuredFormatter`."""
    if not logger.isEnabledFor(level):
        return
    logger.log(level, message, *args, extra={"extra_fields": extra_fields}, stacklevel=2)


def truncate_sql(text: str, limit: int = SQL_TRUNCATION_LENGTH) -> str:
    """Shorten ``text`` to at most ``limit`` characters, marking the cut with ``...``."""
    if len(text) <= limit:
        return text
    return f"{text[: max(limit - 3, 0)]}..."


def log_statement(logger: logging.Logger, text: str, values_count: int) -> None:
    """Log a statement about to be sent, without its bound values."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    sql = truncate_sql(text)
    log_with_context(logger, logging.DEBUG, "Executing statement: %s", sql, sql=sql, values_count=values_count)
