"""Unit tests for logging helpers."""

import logging
import sys
from collections.abc import Iterator

import pytest

from pgfusion.utils.logging import (
    CorrelationIDFilter,
    StructuredFormatter,
    configure_logging,
    correlation_context,
    get_correlation_id,
    get_logger,
    log_statement,
    log_with_context,
    set_correlation_id,
    truncate_sql,
)
from pgfusion.utils.serializers import from_json


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    root = logging.getLogger("pgfusion")
    handlers, level, propagate = list(root.handlers), root.level, root.propagate
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    root.propagate = propagate
    set_correlation_id(None)


class ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def _record(message: str = "hello", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("pgfusion.test", logging.INFO, __file__, 10, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_get_logger_namespaces_names() -> None:
    assert get_logger().name == "pgfusion"
    assert get_logger("driver").name == "pgfusion.driver"
    assert get_logger("pgfusion.migrations").name == "pgfusion.migrations"

    logger = get_logger("driver")
    get_logger("driver")
    assert sum(isinstance(f, CorrelationIDFilter) for f in logger.filters) == 1


def test_correlation_id_roundtrip() -> None:
    assert get_correlation_id() is None
    set_correlation_id("req-1")
    assert get_correlation_id() == "req-1"


def test_correlation_filter_sets_attribute() -> None:
    record = _record()
    set_correlation_id("req-2")
    assert CorrelationIDFilter().filter(record)
    assert record.correlation_id == "req-2"  # type: ignore[attr-defined]


def test_structured_formatter_emits_json() -> None:
    set_correlation_id("req-3")
    record = _record("executed", extra_fields={"values": 2, "table": "song", "path": object()})

    entry = from_json(StructuredFormatter().format(record))

    assert entry["message"] == "executed"
    assert entry["level"] == "INFO"
    assert entry["logger"] == "pgfusion.test"
    assert entry["correlation_id"] == "req-3"
    assert entry["values"] == 2
    assert entry["table"] == "song"
    assert entry["path"].startswith("<object object")


def test_structured_formatter_includes_exception() -> None:
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.LogRecord("pgfusion.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

    entry = from_json(StructuredFormatter().format(record))
    assert "ValueError: boom" in entry["exception"]


def test_configure_logging_installs_handlers() -> None:
    extra = ListHandler()
    configure_logging(level="debug", format_style="simple", extra_handlers=[extra])

    root = logging.getLogger("pgfusion")
    assert root.level == logging.DEBUG
    assert root.propagate is False
    assert isinstance(root.handlers[0], logging.StreamHandler)
    assert extra in root.handlers
    configured = [record for record in extra.records if record.getMessage() == "pgfusion logging configured"]
    assert len(configured) == 1
    assert configured[0].extra_fields == {  # type: ignore[attr-defined]
        "log_level": "debug",
        "format_style": "simple",
        "handlers_count": 2,
    }


def test_configure_logging_structured_default() -> None:
    configure_logging()
    root = logging.getLogger("pgfusion")
    assert isinstance(root.handlers[0].formatter, StructuredFormatter)
    assert root.level == logging.INFO


def test_log_with_context_attaches_fields() -> None:
    handler = ListHandler()
    logger = get_logger("test_context")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        log_with_context(logger, logging.INFO, "migrated", name="1_init")
        log_with_context(logger, logging.NOTSET + 1, "below threshold")
    finally:
        logger.removeHandler(handler)

    assert len(handler.records) == 1
    assert handler.records[0].extra_fields == {"name": "1_init"}  # type: ignore[attr-defined]


def test_correlation_context_resets_on_exit() -> None:
    set_correlation_id("outer")
    with correlation_context("inner") as value:
        assert value == "inner"
        assert get_correlation_id() == "inner"
    assert get_correlation_id() == "outer"


def test_truncate_sql() -> None:
    assert truncate_sql("SELECT 1") == "SELECT 1"
    assert truncate_sql("SELECT 1", limit=8) == "SELECT 1"
    assert truncate_sql("SELECT 100", limit=8) == "SELEC..."


def test_log_statement_records_text_and_count_only() -> None:
    handler = ListHandler()
    logger = get_logger("test_statement")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        log_statement(logger, 'SELECT * FROM "song" WHERE "id" = $1', 1)
        logger.setLevel(logging.INFO)
        log_statement(logger, "SELECT 2", 0)
    finally:
        logger.removeHandler(handler)

    assert len(handler.records) == 1
    record = handler.records[0]
    assert record.levelno == logging.DEBUG
    assert record.msg == "Executing statement: %s"
    assert record.args == ('SELECT * FROM "song" WHERE "id" = $1',)
    assert record.getMessage() == 'Executing statement: SELECT * FROM "song" WHERE "id" = $1'
    assert record.extra_fields == {  # type: ignore[attr-defined]
        "sql": 'SELECT * FROM "song" WHERE "id" = $1',
        "values_count": 1,
    }
