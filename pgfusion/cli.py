from typing import TYPE_CHECKING, Any, Optional

import rich_click as click
from rich import get_console

from pgfusion.base import Database
from pgfusion.config import AsyncDatabaseConfig
from pgfusion.utils.module_loader import import_string

if TYPE_CHECKING:
    from click import Group

__all__ = ("add_database_commands", "get_pgfusion_group", "main")


def _resolve_database(target: Any) -> "Database[Any]":
    if isinstance(target, Database):
        return target
    if isinstance(target, AsyncDatabaseConfig):
        return Database(target)
    msg = f"Expected a Database or AsyncDatabaseConfig, got {type(target).__name__}"
    raise click.BadParameter(msg, param_hint="--config")


def get_pgfusion_group() -> "Group":
    """Get the pgfusion CLI group.

    Returns:
        The pgfusion CLI group.
    """

    @click.group(name="pgfusion")
    @click.option(
        "--config",
        help="Dotted path to a Database or AsyncDatabaseConfig (e.g. 'myapp.db.database')",
        required=True,
        type=str,
    )
    @click.pass_context
    def pgfusion_group(ctx: "click.Context", config: str) -> None:
        """pgfusion CLI commands."""
        console = get_console()
        ctx.ensure_object(dict)
        try:
            ctx.obj["database"] = _resolve_database(import_string(config))
        except ImportError as e:
            console.print(f"[red]Error loading config: {e}[/]")
            ctx.exit(1)

    return pgfusion_group


def add_database_commands(database_group: Optional["Group"] = None) -> "Group":
    """Add the ``migrate`` and ``clear`` commands to the database group.

    Args:
        database_group: The group to add the commands to.

    Returns:
        The group with the commands added.
    """
    console = get_console()

    if database_group is None:
        database_group = get_pgfusion_group()

    no_prompt_option = click.option(
        "--no-prompt",
        help="Do not prompt for confirmation before executing the command.",
        type=bool,
        default=False,
        required=False,
        show_default=True,
        is_flag=True,
    )

    @database_group.command(name="migrate", help="Apply, revert or redo migrations.")
    @click.argument("direction", type=click.Choice(["up", "down", "redo"]), default="up")
    @click.option(
        "--count", type=click.IntRange(min=0), default=None, help="Number of migrations to run (default: all)."
    )
    @click.option("--dir", "migrations_dir", type=str, default=None, help="Directory holding the migration files.")
    @click.option("--migrations-table", type=str, default=None, help="Name of the migration tracking table.")
    def migrate(  # pyright: ignore[reportUnusedFunction]
        direction: str, count: Optional[int], migrations_dir: Optional[str], migrations_table: Optional[str]
    ) -> None:
        """Run migrations."""
        from anyio import run

        ctx = click.get_current_context()
        database: Database[Any] = ctx.obj["database"]
        options: dict[str, Any] = {"direction": direction, "count": count}
        if migrations_dir is not None:
            options["dir"] = migrations_dir
        if migrations_table is not None:
            options["migrations_table"] = migrations_table

        console.rule(f"[yellow]Running migrations ({direction})[/]", align="left")

        async def _migrate() -> "list[str]":
            try:
                return await database.migrate(**options)
            finally:
                await database.close()

        names = run(_migrate)
        if not names:
            console.print("[green]Nothing to do.[/]")
        for name in names:
            console.print(f"[green]✓[/] {name}")

    @database_group.command(name="clear", help="Truncate every table of the current schema.")
    @no_prompt_option
    def clear(no_prompt: bool) -> None:  # pyright: ignore[reportUnusedFunction]
        """Truncate all tables."""
        from anyio import run
        from rich.prompt import Confirm

        ctx = click.get_current_context()
        database: Database[Any] = ctx.obj["database"]
        console.rule("[yellow]Truncating all tables[/]", align="left")
        input_confirmed = no_prompt or Confirm.ask(
            "[bold red]Are you sure you want to delete all rows from every table?[/]"
        )
        if not input_confirmed:
            console.rule("[red bold]No tables were truncated.", style="red", align="left")
            return

        async def _clear() -> None:
            try:
                await database.clear()
            finally:
                await database.close()

        run(_clear)
        console.rule("[green bold]All tables truncated", align="left")

    return database_group


def main() -> None:
    """Console script entry point."""
    add_database_commands()(obj={})
