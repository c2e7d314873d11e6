"""Migration version tracking.

Applied migrations are recorded in a table (``pgmigrations`` by default) with
one row per migration file stem, in the order they were run.
"""

from typing import TYPE_CHECKING

from pgfusion.core.fragment import quote, sql
from pgfusion.utils.logging import get_logger

if TYPE_CHECKING:
    from pgfusion.driver import AsyncDriverAdapterBase

__all__ = ("MigrationTracker",)

logger = get_logger("migrations.tracker")


class MigrationTracker:
    """Reads and writes the migration tracking table."""

    __slots__ = ("table",)

    def __init__(self, table: str = "pgmigrations") -> None:
        self.table = table

    async def ensure_tracking_table(self, driver: "AsyncDriverAdapterBase") -> None:
        """Create the migration tracking table if it doesn't exist."""
        await driver.execute(
            sql(
                "CREATE TABLE IF NOT EXISTS {} ("
                "id SERIAL PRIMARY KEY, "
                "name VARCHAR(255) NOT NULL, "
                "run_on TIMESTAMP NOT NULL)",
                quote(self.table),
            )
        )

    async def get_applied_migrations(self, driver: "AsyncDriverAdapterBase") -> "list[str]":
        """Names of applied migrations, oldest first."""
        rows = await driver.query(sql("SELECT name FROM {} ORDER BY run_on, id", quote(self.table)))
        return [row["name"] for row in rows]

    async def record_migration(self, driver: "AsyncDriverAdapterBase", name: str) -> None:
        await driver.execute(sql("INSERT INTO {} (name, run_on) VALUES ({}, NOW())", quote(self.table), name))
        logger.debug("Recorded migration %s", name)

    async def remove_migration(self, driver: "AsyncDriverAdapterBase", name: str) -> None:
        await driver.execute(sql("DELETE FROM {} WHERE name = {}", quote(self.table), name))
        logger.debug("Removed migration record %s", name)
