from typing import TYPE_CHECKING, Any, Optional

from pgfusion.driver import AsyncDriverAdapterBase
from pgfusion.utils.logging import get_logger

if TYPE_CHECKING:
    from pgfusion.adapters.asyncpg._types import AsyncpgConnection
    from pgfusion.typing import DictRow

__all__ = ("AsyncpgDriver",)

logger = get_logger("adapters.asyncpg")


class AsyncpgDriver(AsyncDriverAdapterBase):
    """AsyncPG PostgreSQL driver.

    ``asyncpg`` speaks the extended protocol with ``$n`` placeholders natively,
    so composed statements are sent as they are. Database errors, timeouts
    and cancellation propagate unchanged to the caller and abort any enclosing
    transaction.
    """

    dialect = "postgres"

    def __init__(
        self, connection: "AsyncpgConnection", driver_features: "Optional[dict[str, Any]]" = None
    ) -> None:
        super().__init__(connection=connection, driver_features=driver_features)

    async def _execute_statement(self, text: str, values: "list[Any]") -> "list[DictRow]":
        records = await self.connection.fetch(text, *values)
        return [dict(record) for record in records]

    async def _execute_script(self, script: str) -> None:
        await self.connection.execute(script)

    async def begin(self) -> None:
        """Begin transaction using asyncpg's simple query protocol."""
        logger.debug("BEGIN")
        await self.connection.execute("BEGIN")

    async def commit(self) -> None:
        """Commit transaction using asyncpg's simple query protocol."""
        logger.debug("COMMIT")
        await self.connection.execute("COMMIT")

    async def rollback(self) -> None:
        """Rollback transaction using asyncpg's simple query protocol."""
        logger.debug("ROLLBACK")
        await self.connection.execute("ROLLBACK")
