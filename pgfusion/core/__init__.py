"""Core statement building: fragments, composition and statement builders."""

from pgfusion.core.compiler import ComposedStatement, compose
from pgfusion.core.fragment import (
    Fragment,
    Interpolation,
    Raw,
    SQLFactory,
    Sub,
    Value,
    and_,
    join,
    literal,
    or_,
    param,
    quote,
    quote_qualified,
    raw,
    sql,
    to_fragment,
)
from pgfusion.core.insert import (
    ConflictAction,
    ConflictPolicy,
    ConflictTarget,
    OnConflict,
    build_insert,
    build_insert_all,
    derive_insert_result,
)
from pgfusion.core.truncate import BASE_TABLES_QUERY, build_truncate

__all__ = (
    "BASE_TABLES_QUERY",
    "ComposedStatement",
    "ConflictAction",
    "ConflictPolicy",
    "ConflictTarget",
    "Fragment",
    "Interpolation",
    "OnConflict",
    "Raw",
    "SQLFactory",
    "Sub",
    "Value",
    "and_",
    "build_insert",
    "build_insert_all",
    "build_truncate",
    "compose",
    "derive_insert_result",
    "join",
    "literal",
    "or_",
    "param",
    "quote",
    "quote_qualified",
    "raw",
    "sql",
    "to_fragment",
)
