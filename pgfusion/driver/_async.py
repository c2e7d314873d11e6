"""Asynchronous driver: statement execution, transactions and the query API."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Mapping, Sequence
from contextlib import asynccontextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from anyio import CancelScope

from pgfusion.core.compiler import compose
from pgfusion.core.fragment import to_fragment
from pgfusion.core.insert import ConflictPolicy, build_insert, build_insert_all, derive_insert_result
from pgfusion.core.truncate import BASE_TABLES_QUERY, build_truncate
from pgfusion.exceptions import MultipleResultsFoundError, NotFoundError
from pgfusion.utils.logging import get_logger, log_statement

if TYPE_CHECKING:
    from pgfusion.core.insert import OnConflict
    from pgfusion.typing import DictRow, Statement, T

__all__ = ("AsyncDriverAdapterBase", "TransactionState")

logger = get_logger("driver")


class TransactionState(Enum):
    """Lifecycle of the outermost transaction on a driver."""

    IDLE = "idle"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class AsyncDriverAdapterBase(ABC):
    """Runs composed statements on one connection.

    Adapters implement :meth:`_execute_statement` (and :meth:`_execute_script`
    for multi-statement scripts). Everything else, including transaction
    boundaries, insert handling and table truncation, lives here.

    Statements run strictly one after another; a driver is bound to a single
    connection and must not be shared between concurrent tasks.
    """

    __slots__ = ("_transaction_depth", "connection", "driver_features", "transaction_state")

    dialect: str = "postgres"

    def __init__(self, connection: Any, driver_features: "Optional[dict[str, Any]]" = None) -> None:
        self.connection = connection
        self.driver_features: dict[str, Any] = driver_features or {}
        self.transaction_state = TransactionState.IDLE
        self._transaction_depth = 0

    @abstractmethod
    async def _execute_statement(self, text: str, values: "list[Any]") -> "list[DictRow]":
        """Send one statement with its bound values and return the resulting rows.

        Errors raised by the connection must propagate unchanged.
        """

    @abstractmethod
    async def _execute_script(self, script: str) -> None:
        """Send SQL text that may contain several statements and no parameters."""

    async def _dispatch(self, statement: "Statement") -> "list[DictRow]":
        composed = compose(to_fragment(statement))
        log_statement(logger, composed.text, len(composed.values))
        return await self._execute_statement(composed.text, composed.values)

    async def begin(self) -> None:
        """Begin a transaction on the current connection."""
        await self._dispatch("BEGIN")

    async def commit(self) -> None:
        """Commit the current transaction."""
        await self._dispatch("COMMIT")

    async def rollback(self) -> None:
        """Roll back the current transaction."""
        await self._dispatch("ROLLBACK")

    @property
    def in_transaction(self) -> bool:
        return self._transaction_depth > 0

    @asynccontextmanager
    async def transaction(self) -> "AsyncIterator[AsyncDriverAdapterBase]":
        """Run the enclosed block inside ``BEGIN`` ... ``COMMIT``.

        Any exception escaping the block, cancellation included, issues
        ``ROLLBACK`` and is re-raised unchanged. The ``ROLLBACK`` runs in a
        shielded cancel scope so an expired timeout cannot abort it. A failing ``ROLLBACK`` is
        logged and never replaces the original error.

        Nested use sends another ``BEGIN`` on the same connection rather than a
        savepoint. PostgreSQL answers it with a warning and keeps the existing
        transaction, so the inner ``COMMIT`` or ``ROLLBACK`` ends the outer
        transaction too.

        Usage::

            async with driver.transaction():
                artist = await driver.query_single(sql('SELECT * FROM "artist" WHERE "id" = {}', artist_id))
                await driver.insert("song", {"name": name, "artist": artist["name"]})
        """
        nested = self.in_transaction
        if nested:
            logger.warning(
                "Nested transaction requested at depth %d; sending BEGIN on the active transaction",
                self._transaction_depth,
            )
        await self.begin()
        self._transaction_depth += 1
        if not nested:
            self.transaction_state = TransactionState.ACTIVE

        try:
            yield self
        except BaseException:
            self._transaction_depth -= 1
            await self._rollback_after_error()
            if not self.in_transaction:
                self.transaction_state = TransactionState.ROLLED_BACK
            raise
        else:
            self._transaction_depth -= 1
            await self.commit()
            if not self.in_transaction:
                self.transaction_state = TransactionState.COMMITTED
            logger.debug("Transaction committed")

    async def _rollback_after_error(self) -> None:
        try:
            with CancelScope(shield=True):
                await self.rollback()
        except Exception:
            logger.exception("ROLLBACK failed; re-raising the error that aborted the transaction")
        else:
            logger.debug("Transaction rolled back")

    async def run_transaction(self, callback: "Callable[[], Awaitable[T]]") -> "T":
        """Await ``callback()`` inside :meth:`transaction` and return its result."""
        async with self.transaction():
            return await callback()

    async def query(self, statement: "Statement") -> "list[DictRow]":
        """Run the given statement and return the resulting rows.

        Usage::

            songs = await driver.query(sql('SELECT * FROM "song" WHERE "name" = {}', song_name))
        """
        return await self._dispatch(statement)

    async def query_one(self, statement: "Statement") -> "Optional[DictRow]":
        """Run the statement and return its only row, or ``None`` when there is none.

        Raises:
            MultipleResultsFoundError: If more than one row is returned.
        """
        rows = await self.query(statement)
        if len(rows) > 1:
            msg = f"Expected at most one row, got {len(rows)}"
            raise MultipleResultsFoundError(msg, row_count=len(rows))
        return rows[0] if rows else None

    async def query_single(self, statement: "Statement") -> "DictRow":
        """Run the statement and return exactly one row.

        Raises:
            NotFoundError: If no row is returned.
            MultipleResultsFoundError: If more than one row is returned.
        """
        row = await self.query_one(statement)
        if row is None:
            msg = "Expected one row, got none"
            raise NotFoundError(msg)
        return row

    async def execute(self, statement: "Statement") -> None:
        """Run the statement, discarding any rows."""
        await self._dispatch(statement)

    async def execute_script(self, script: str) -> None:
        """Run parameterless SQL text that may hold several statements."""
        logger.debug("Executing script (%d characters)", len(script))
        await self._execute_script(script)

    async def execute_all(self, statements: "Sequence[Statement]") -> None:
        """Run all statements in order inside a single transaction.

        Nothing at all is sent when ``statements`` is empty.
        """
        if not statements:
            return
        async with self.transaction():
            for statement in statements:
                await self._dispatch(statement)

    async def insert(
        self, table: str, record: "Mapping[str, Any]", on_conflict: "OnConflict" = None
    ) -> "Optional[DictRow]":
        """Insert one record and return the inserted row.

        ``None`` is only returned when ``on_conflict`` ignores conflicts and the
        record collided with an existing row.

        Usage::

            song = await driver.insert("song", {"name": "Take On Me", "artist": "A-ha"})
            maybe = await driver.insert("song", {"name": "Take On Me"}, on_conflict="ignore")
        """
        policy = ConflictPolicy.coerce(on_conflict)
        rows = await self.query(build_insert(table, record, policy))
        return derive_insert_result(rows, policy)

    async def insert_all(
        self, table: str, records: "Iterable[Mapping[str, Any]]", on_conflict: "OnConflict" = None
    ) -> "list[DictRow]":
        """Insert all records in a single transaction.

        Returns the inserted rows in record order, leaving out records skipped
        by an ignored conflict.
        """
        policy = ConflictPolicy.coerce(on_conflict)
        statements = build_insert_all(table, records, policy)
        if not statements:
            return []

        inserted: list[DictRow] = []
        async with self.transaction():
            for statement in statements:
                row = derive_insert_result(await self.query(statement), policy)
                if row is not None:
                    inserted.append(row)
        return inserted

    async def clear(self) -> None:
        """Truncate every base table of the current schema and reset identities."""
        async with self.transaction():
            rows = await self.query(BASE_TABLES_QUERY)
            statement = build_truncate((row["table_schema"], row["table_name"]) for row in rows)
            if statement is None:
                logger.debug("No tables to truncate")
                return
            await self.execute(statement)

    async def migrate(self, **options: Any) -> "list[str]":
        """Run migrations on this connection, see :func:`pgfusion.migrations.run_migrations`."""
        from pgfusion.migrations import run_migrations

        return await run_migrations(self, **options)
