"""Discovery and loading of migration files.

Two file formats are supported, both named ``<version>_<description>``:

- ``.sql`` files whose sections are introduced by ``-- name: migrate-<version>-up``
  and ``-- name: migrate-<version>-down``;
- ``.py`` modules exposing ``up()`` and optionally ``down()``, returning a SQL
  string or a list of SQL strings (plain or ``async`` functions).
"""

import importlib.util
import inspect
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Optional

from pgfusion.exceptions import MigrationError
from pgfusion.utils.logging import get_logger

__all__ = ("MigrationFile", "discover_migrations", "parse_sql_sections")

logger = get_logger("migrations.loader")

QUERY_NAME_PATTERN: Final = re.compile(r"^\s*--\s*name\s*:\s*([\w-]+)\s*$", re.MULTILINE | re.IGNORECASE)
SUPPORTED_SUFFIXES: Final = (".sql", ".py")


def parse_sql_sections(content: str) -> "dict[str, str]":
    """Split SQL file content into named sections keyed by lower-cased name."""
    matches = list(QUERY_NAME_PATTERN.finditer(content))
    sections: dict[str, str] = {}
    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(content)
        name = match.group(1).lower()
        if name in sections:
            msg = f"Duplicate section name {name!r}"
            raise MigrationError(msg)
        sections[name] = content[match.end() : end].strip()
    return sections


def _version_sort_key(version: str) -> "tuple[int, int, str]":
    if version.isdigit():
        return (0, int(version), version)
    return (1, 0, version)


@dataclass(frozen=True)
class MigrationFile:
    """One migration on disk. ``name`` is the file stem recorded in the tracking table."""

    path: Path
    version: str = field(init=False)
    name: str = field(init=False)
    description: str = field(init=False)

    def __post_init__(self) -> None:
        stem = self.path.stem
        version, _, description = stem.partition("_")
        object.__setattr__(self, "name", stem)
        object.__setattr__(self, "version", version)
        object.__setattr__(self, "description", description.replace("_", " "))

    @property
    def sort_key(self) -> "tuple[int, int, str]":
        return _version_sort_key(self.version)

    async def get_up_sql(self) -> "list[str]":
        statements = await self._load("up")
        if not statements:
            msg = f"Migration {self.name} has no upgrade section"
            raise MigrationError(msg, migration=self.name)
        return statements

    async def get_down_sql(self) -> "Optional[list[str]]":
        return await self._load("down")

    async def _load(self, direction: str) -> "Optional[list[str]]":
        if self.path.suffix == ".sql":
            return self._load_sql(direction)
        return await self._load_python(direction)

    def _load_sql(self, direction: str) -> "Optional[list[str]]":
        try:
            content = self.path.read_text(encoding="utf-8")
        except OSError as e:
            msg = f"Could not read migration {self.path}: {e}"
            raise MigrationError(msg, migration=self.name) from e
        section = parse_sql_sections(content).get(f"migrate-{self.version}-{direction}".lower())
        return [section] if section else None

    async def _load_python(self, direction: str) -> "Optional[list[str]]":
        module_name = f"pgfusion_migration_{self.name}"
        spec = importlib.util.spec_from_file_location(module_name, self.path)
        if spec is None or spec.loader is None:
            msg = f"Could not load migration module {self.path}"
            raise MigrationError(msg, migration=self.name)
        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            msg = f"Failed to import migration {self.path}: {e}"
            raise MigrationError(msg, migration=self.name) from e

        func = getattr(module, direction, None)
        if func is None:
            return None
        result: Any = func()
        if inspect.isawaitable(result):
            result = await result
        if result is None:
            return None
        if isinstance(result, str):
            return [result] if result.strip() else None
        return [statement for statement in result if statement.strip()] or None


def discover_migrations(directory: "Path") -> "list[MigrationFile]":
    """List migration files in ``directory`` sorted by version.

    Raises:
        MigrationError: If the directory does not exist or two files share a name.
    """
    if not directory.is_dir():
        msg = f"Migrations directory {directory} does not exist"
        raise MigrationError(msg)

    migrations = [
        MigrationFile(path)
        for path in directory.iterdir()
        if path.is_file() and path.suffix in SUPPORTED_SUFFIXES and not path.name.startswith(("_", "."))
    ]
    seen: dict[str, Path] = {}
    for migration in migrations:
        if migration.name in seen:
            msg = f"Migration name {migration.name!r} is used by both {seen[migration.name]} and {migration.path}"
            raise MigrationError(msg, migration=migration.name)
        seen[migration.name] = migration.path

    migrations.sort(key=lambda migration: (migration.sort_key, migration.name))
    logger.debug("Discovered %d migrations in %s", len(migrations), directory)
    return migrations
