"""pgfusion: composable SQL fragments and a small async PostgreSQL client."""

from pgfusion import adapters, core, driver, exceptions, migrations, typing, utils
from pgfusion.__metadata__ import __version__
from pgfusion.adapters.asyncpg import AsyncpgConfig, AsyncpgDriver, TypeCodec
from pgfusion.base import Database
from pgfusion.config import AsyncDatabaseConfig
from pgfusion.core import (
    ComposedStatement,
    ConflictPolicy,
    ConflictTarget,
    Fragment,
    Raw,
    SQLFactory,
    Sub,
    Value,
    and_,
    build_insert,
    build_insert_all,
    compose,
    join,
    literal,
    or_,
    param,
    quote,
    quote_qualified,
    raw,
    sql,
)
from pgfusion.driver import AsyncDriverAdapterBase
from pgfusion.exceptions import (
    CardinalityError,
    ImproperConfigurationError,
    MigrationError,
    MultipleResultsFoundError,
    NotFoundError,
    PgFusionError,
    SQLBuilderError,
)
from pgfusion.typing import DictRow

__all__ = (
    "AsyncDatabaseConfig",
    "AsyncDriverAdapterBase",
    "AsyncpgConfig",
    "AsyncpgDriver",
    "CardinalityError",
    "ComposedStatement",
    "ConflictPolicy",
    "ConflictTarget",
    "Database",
    "DictRow",
    "Fragment",
    "ImproperConfigurationError",
    "MigrationError",
    "MultipleResultsFoundError",
    "NotFoundError",
    "PgFusionError",
    "Raw",
    "SQLBuilderError",
    "SQLFactory",
    "Sub",
    "TypeCodec",
    "Value",
    "__version__",
    "adapters",
    "and_",
    "build_insert",
    "build_insert_all",
    "compose",
    "core",
    "driver",
    "exceptions",
    "join",
    "literal",
    "migrations",
    "or_",
    "param",
    "quote",
    "quote_qualified",
    "raw",
    "sql",
    "typing",
    "utils",
)
