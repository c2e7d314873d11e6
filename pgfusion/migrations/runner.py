"""Migration execution engine.

Applies or reverts migration files on a single driver. Each migration runs in
its own transaction together with the update of the tracking table, and the
whole run holds a PostgreSQL advisory lock so concurrent runners do not
interleave.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Final, Optional, Union

from anyio import CancelScope

from pgfusion.core.fragment import sql
from pgfusion.exceptions import ImproperConfigurationError, MigrationError
from pgfusion.migrations.loader import MigrationFile, discover_migrations
from pgfusion.migrations.tracker import MigrationTracker
from pgfusion.utils.logging import get_logger

if TYPE_CHECKING:
    from pgfusion.driver import AsyncDriverAdapterBase

__all__ = ("MIGRATION_LOCK_ID", "MigrationDirection", "MigrationRunner", "run_migrations")

logger = get_logger("migrations.runner")

MIGRATION_LOCK_ID: Final = 7241865325823964


class MigrationDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    REDO = "redo"

    def __str__(self) -> str:
        return self.value


def _validate_count(count: Optional[int]) -> None:
    if count is not None and (isinstance(count, bool) or not isinstance(count, int) or count < 0):
        msg = f"Migration count must be a non-negative integer or None, got {count!r}"
        raise ImproperConfigurationError(msg)


class MigrationRunner:
    """Applies and reverts the migrations found in one directory."""

    __slots__ = ("migrations_path", "tracker")

    def __init__(
        self, migrations_path: "Union[str, Path]" = "migrations", migrations_table: str = "pgmigrations"
    ) -> None:
        self.migrations_path = Path(migrations_path)
        self.tracker = MigrationTracker(migrations_table)

    def get_migration_files(self) -> "list[MigrationFile]":
        return discover_migrations(self.migrations_path)

    async def upgrade(self, driver: "AsyncDriverAdapterBase", count: Optional[int] = None) -> "list[str]":
        """Apply pending migrations in version order, at most ``count`` of them.

        Returns:
            Names of the applied migrations.
        """
        _validate_count(count)
        migrations = self.get_migration_files()
        async with self._locked(driver):
            applied = await self._applied_in_order(driver, migrations)
            pending = migrations[len(applied) :]
            selected = pending if count is None else pending[:count]
            if not selected:
                logger.info("No migrations to run")
            for migration in selected:
                statements = await migration.get_up_sql()
                async with driver.transaction():
                    for statement in statements:
                        await driver.execute_script(statement)
                    await self.tracker.record_migration(driver, migration.name)
                logger.info("Applied migration %s", migration.name)
        return [migration.name for migration in selected]

    async def downgrade(self, driver: "AsyncDriverAdapterBase", count: Optional[int] = None) -> "list[str]":
        """Revert the most recently applied migrations, newest first, at most ``count`` of them.

        Returns:
            Names of the reverted migrations.
        """
        _validate_count(count)
        migrations = self.get_migration_files()
        by_name = {migration.name: migration for migration in migrations}
        async with self._locked(driver):
            applied = await self._applied_in_order(driver, migrations)
            newest_first = list(reversed(applied))
            selected = newest_first if count is None else newest_first[:count]
            if not selected:
                logger.info("No migrations to revert")
            for name in selected:
                migration = by_name[name]
                statements = await migration.get_down_sql()
                if statements is None:
                    msg = f"Migration {name} has no downgrade section and cannot be reverted"
                    raise MigrationError(msg, migration=name)
                async with driver.transaction():
                    for statement in statements:
                        await driver.execute_script(statement)
                    await self.tracker.remove_migration(driver, name)
                logger.info("Reverted migration %s", name)
        return list(selected)

    async def _applied_in_order(
        self, driver: "AsyncDriverAdapterBase", migrations: "list[MigrationFile]"
    ) -> "list[str]":
        await self.tracker.ensure_tracking_table(driver)
        applied = await self.tracker.get_applied_migrations(driver)

        known = {migration.name for migration in migrations}
        missing = [name for name in applied if name not in known]
        if missing:
            msg = f"Applied migrations are missing from {self.migrations_path}: {', '.join(missing)}"
            raise MigrationError(msg)
        for applied_name, migration in zip(applied, migrations):
            if applied_name != migration.name:
                msg = f"Not run migration {migration.name} precedes already run migration {applied_name}"
                raise MigrationError(msg, migration=migration.name)
        return applied

    @asynccontextmanager
    async def _locked(self, driver: "AsyncDriverAdapterBase") -> "AsyncIterator[None]":
        await driver.execute(sql("SELECT pg_advisory_lock({})", MIGRATION_LOCK_ID))
        try:
            yield
        finally:
            with CancelScope(shield=True):
                await driver.execute(sql("SELECT pg_advisory_unlock({})", MIGRATION_LOCK_ID))


async def run_migrations(
    driver: "AsyncDriverAdapterBase",
    *,
    migrations_table: str = "pgmigrations",
    dir: "Union[str, Path]" = "migrations",  # noqa: A002
    direction: "Union[str, MigrationDirection]" = MigrationDirection.UP,
    count: Optional[int] = None,
) -> "list[str]":
    """Run migrations on ``driver``.

    Args:
        driver: Driver bound to the connection to migrate.
        migrations_table: Tracking table name.
        dir: Directory holding the migration files.
        direction: ``"up"``, ``"down"`` or ``"redo"`` (down then up, both with ``count``).
        count: Maximum number of migrations to run; ``None`` means all of them.

    Raises:
        ImproperConfigurationError: For an unknown direction or an invalid count.

    Returns:
        Names of the migrations applied (``up``/``redo``) or reverted (``down``).
    """
    try:
        direction = MigrationDirection(direction)
    except ValueError as e:
        msg = f"Unknown migration direction {direction!r}; expected one of up, down, redo"
        raise ImproperConfigurationError(msg) from e
    _validate_count(count)

    runner = MigrationRunner(dir, migrations_table)
    logger.info("Running migrations %s from %s (count=%s)", direction, runner.migrations_path, count)
    if direction is MigrationDirection.UP:
        return await runner.upgrade(driver, count)
    if direction is MigrationDirection.DOWN:
        return await runner.downgrade(driver, count)
    await runner.downgrade(driver, count)
    return await runner.upgrade(driver, count)
