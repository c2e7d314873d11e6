from typing import Any, Optional

__all__ = (
    "CardinalityError",
    "ImproperConfigurationError",
    "MigrationError",
    "MultipleResultsFoundError",
    "NotFoundError",
    "PgFusionError",
    "SQLBuilderError",
)


class PgFusionError(Exception):
    """Base exception class from which all pgfusion exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``PgFusionError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class ImproperConfigurationError(PgFusionError):
    """Improper Configuration error.

    Raised when configuration values or option combinations cannot be used.
    """


class SQLBuilderError(PgFusionError):
    """Issues Building or Generating SQL statements."""

    def __init__(self, message: Optional[str] = None) -> None:
        if message is None:
            message = "Issues building SQL statement."
        super().__init__(message)


class CardinalityError(PgFusionError):
    """A statement returned a number of rows the caller did not expect.

    ``row_count`` holds the number of rows actually returned.
    """

    def __init__(self, *args: Any, detail: str = "", row_count: Optional[int] = None) -> None:
        super().__init__(*args, detail=detail)
        self.row_count = row_count


class NotFoundError(CardinalityError):
    """No rows were returned where exactly one was required."""

    def __init__(self, *args: Any, detail: str = "") -> None:
        super().__init__(*args, detail=detail, row_count=0)


class MultipleResultsFoundError(CardinalityError):
    """More than one row was returned where at most one was allowed."""


class MigrationError(PgFusionError):
    """Issues loading or applying migrations.

    ``migration`` names the migration involved, when there is a single one.
    """

    def __init__(self, *args: Any, detail: str = "", migration: Optional[str] = None) -> None:
        super().__init__(*args, detail=detail)
        self.migration = migration
