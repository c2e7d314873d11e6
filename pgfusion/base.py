from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Any, Generic, Optional

from pgfusion.config import DriverT
from pgfusion.utils.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from pgfusion.config import AsyncDatabaseConfig
    from pgfusion.core.insert import OnConflict
    from pgfusion.typing import DictRow, Statement, T

__all__ = ("Database",)

logger = get_logger("base")


class Database(Generic[DriverT]):
    """An interface to a PostgreSQL database.

    Methods like ``query`` or ``migrate`` can be called directly on the
    Database, which acquires a pooled connection, runs the call through a
    driver bound to that connection, and releases the connection afterwards.

    Does not connect until :meth:`with_client` or one of the proxy methods is
    called.

    Usage::

        db = Database(AsyncpgConfig(pool_config={"dsn": "postgresql://localhost/app"}))
        rows = await db.query(sql('SELECT * FROM "song"'))
        await db.close()
    """

    __slots__ = ("config",)

    def __init__(self, config: "AsyncDatabaseConfig[Any, Any, DriverT]") -> None:
        self.config = config

    async def __aenter__(self) -> "Database[DriverT]":
        return self

    async def __aexit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        await self.close()

    def provide_session(self) -> "AbstractAsyncContextManager[DriverT]":
        """Acquire one connection, wrapped in a driver, for several calls."""
        return self.config.provide_session()

    async def with_client(self, callback: "Callable[[DriverT], Awaitable[T]]") -> "T":
        """Run ``callback`` with a driver bound to a single connection.

        More efficient than several proxy calls, each of which acquires its
        own connection.
        """
        async with self.provide_session() as driver:
            return await callback(driver)

    async def close(self) -> None:
        """Close the pool and all of its connections."""
        await self.config.close_pool()

    async def query(self, statement: "Statement") -> "list[DictRow]":
        return await self.with_client(lambda driver: driver.query(statement))

    async def query_one(self, statement: "Statement") -> "Optional[DictRow]":
        return await self.with_client(lambda driver: driver.query_one(statement))

    async def query_single(self, statement: "Statement") -> "DictRow":
        return await self.with_client(lambda driver: driver.query_single(statement))

    async def execute(self, statement: "Statement") -> None:
        await self.with_client(lambda driver: driver.execute(statement))

    async def execute_all(self, statements: "Sequence[Statement]") -> None:
        await self.with_client(lambda driver: driver.execute_all(statements))

    async def transaction(self, callback: "Callable[[DriverT], Awaitable[T]]") -> "T":
        """Run ``callback`` inside a transaction on a single connection."""

        async def run(driver: DriverT) -> "T":
            return await driver.run_transaction(lambda: callback(driver))

        return await self.with_client(run)

    async def insert(
        self, table: str, record: "Mapping[str, Any]", on_conflict: "OnConflict" = None
    ) -> "Optional[DictRow]":
        return await self.with_client(lambda driver: driver.insert(table, record, on_conflict))

    async def insert_all(
        self, table: str, records: "Iterable[Mapping[str, Any]]", on_conflict: "OnConflict" = None
    ) -> "list[DictRow]":
        return await self.with_client(lambda driver: driver.insert_all(table, records, on_conflict))

    async def migrate(self, **options: Any) -> "list[str]":
        """Run migrations; defaults come from the config's ``migration_config``."""
        merged = {**self.config.migration_config, **options}
        return await self.with_client(lambda driver: driver.migrate(**merged))

    async def clear(self) -> None:
        """Truncate every base table of the current schema."""
        logger.debug("Clearing all tables")
        await self.with_client(lambda driver: driver.clear())
