"""Statements used to empty every base table of the active schema."""

from collections.abc import Iterable
from typing import Optional

from pgfusion.core.fragment import Fragment, join, quote_qualified, raw, sql

__all__ = ("BASE_TABLES_QUERY", "build_truncate")

BASE_TABLES_QUERY = raw(
    "SELECT table_schema, table_name FROM information_schema.tables "
    "WHERE table_schema = current_schema() AND table_type = 'BASE TABLE' "
    "ORDER BY table_name"
)


def build_truncate(tables: "Iterable[tuple[str, str]]") -> "Optional[Fragment]":
    """Build a single ``TRUNCATE ... RESTART IDENTITY`` over ``(schema, table)`` pairs.

    Returns ``None`` when there is nothing to truncate.
    """
    names = [quote_qualified(schema, table) for schema, table in tables]
    if not names:
        return None
    return sql("TRUNCATE {} RESTART IDENTITY", join(names, ","))
