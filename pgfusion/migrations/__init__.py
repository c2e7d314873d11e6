"""pgfusion migration tool.

Applies versioned ``.sql``/``.py`` migration files and records them in a
tracking table, see :func:`run_migrations`.
"""

from pgfusion.migrations.loader import MigrationFile, discover_migrations, parse_sql_sections
from pgfusion.migrations.runner import MIGRATION_LOCK_ID, MigrationDirection, MigrationRunner, run_migrations
from pgfusion.migrations.tracker import MigrationTracker

__all__ = (
    "MIGRATION_LOCK_ID",
    "MigrationDirection",
    "MigrationFile",
    "MigrationRunner",
    "MigrationTracker",
    "discover_migrations",
    "parse_sql_sections",
    "run_migrations",
)
