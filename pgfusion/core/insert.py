"""INSERT statement builders with ``ON CONFLICT`` handling."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from pgfusion.core.fragment import Fragment, join, param, quote, raw, sql
from pgfusion.exceptions import MultipleResultsFoundError, NotFoundError, SQLBuilderError

__all__ = (
    "ConflictAction",
    "ConflictPolicy",
    "ConflictTarget",
    "OnConflict",
    "build_insert",
    "build_insert_all",
    "derive_insert_result",
)


class ConflictAction(str, Enum):
    """What to do when an insert collides with an existing row."""

    NONE = "none"
    IGNORE = "ignore"
    UPDATE = "update"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ConflictTarget:
    """Uniqueness target of ``ON CONFLICT``: a column or a named constraint."""

    column: Optional[str] = None
    constraint: Optional[str] = None

    def __post_init__(self) -> None:
        if self.column and self.constraint:
            msg = "A conflict target is either a column or a constraint, not both"
            raise SQLBuilderError(msg)
        if not self.column and not self.constraint:
            msg = "A conflict target needs a column or a constraint"
            raise SQLBuilderError(msg)

    def to_fragment(self) -> Fragment:
        if self.constraint:
            return sql("ON CONSTRAINT {}", quote(self.constraint))
        return sql("({})", quote(self.column or ""))


@dataclass(frozen=True)
class ConflictPolicy:
    """Conflict handling of a single-record insert.

    ``IGNORE`` may omit the target (bare ``ON CONFLICT DO NOTHING``); ``UPDATE``
    requires one. Inserts under ``IGNORE`` may legitimately return no row.
    """

    action: ConflictAction = ConflictAction.NONE
    target: Optional[ConflictTarget] = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "action", ConflictAction(self.action))
        except ValueError as e:
            msg = f"Unknown onConflict action {self.action!r}"
            raise SQLBuilderError(msg) from e
        if self.action is ConflictAction.UPDATE and self.target is None:
            msg = "onConflict action 'update' requires a column or constraint target"
            raise SQLBuilderError(msg)
        if self.action is ConflictAction.NONE and self.target is not None:
            msg = "A conflict target was given without a conflict action"
            raise SQLBuilderError(msg)

    @classmethod
    def none(cls) -> "ConflictPolicy":
        return cls()

    @classmethod
    def ignore(cls, column: Optional[str] = None, constraint: Optional[str] = None) -> "ConflictPolicy":
        target = ConflictTarget(column, constraint) if column or constraint else None
        return cls(ConflictAction.IGNORE, target)

    @classmethod
    def update(cls, column: Optional[str] = None, constraint: Optional[str] = None) -> "ConflictPolicy":
        target = ConflictTarget(column, constraint) if column or constraint else None
        return cls(ConflictAction.UPDATE, target)

    @property
    def allows_missing_row(self) -> bool:
        return self.action is ConflictAction.IGNORE

    @classmethod
    def coerce(cls, value: "OnConflict") -> "ConflictPolicy":
        """Normalize the accepted ``on_conflict`` spellings.

        Accepts ``None``, ``"ignore"``, a policy instance, or a mapping such as
        ``{"action": "update", "column": "name"}``.

        Raises:
            SQLBuilderError: For unknown actions or an ``update`` without target.
        """
        if value is None:
            return cls()
        if isinstance(value, ConflictPolicy):
            return value
        if isinstance(value, str):
            if value == ConflictAction.IGNORE.value:
                return cls.ignore()
            if value == ConflictAction.UPDATE.value:
                msg = "onConflict action 'update' requires a column or constraint target"
                raise SQLBuilderError(msg)
            msg = f"Unknown onConflict action {value!r}"
            raise SQLBuilderError(msg)
        if isinstance(value, Mapping):
            unknown_keys = set(value) - {"action", "column", "constraint"}
            if unknown_keys:
                msg = f"Unknown onConflict options: {sorted(unknown_keys)}"
                raise SQLBuilderError(msg)
            action = value.get("action")
            column, constraint = value.get("column"), value.get("constraint")
            if action == ConflictAction.IGNORE.value:
                return cls.ignore(column, constraint)
            if action == ConflictAction.UPDATE.value:
                return cls.update(column, constraint)
            msg = f"Unknown onConflict action {action!r}"
            raise SQLBuilderError(msg)
        msg = f"Unsupported onConflict value {value!r}"
        raise SQLBuilderError(msg)


OnConflict = Union[None, str, Mapping[str, Any], ConflictPolicy]


def _conflict_clause(columns: Fragment, values: Fragment, policy: ConflictPolicy) -> Optional[Fragment]:
    if policy.action is ConflictAction.NONE:
        return None

    head = raw("ON CONFLICT") if policy.target is None else sql("ON CONFLICT {}", policy.target.to_fragment())
    if policy.action is ConflictAction.IGNORE:
        return sql("{} DO NOTHING", head)
    # The SET list reuses the VALUES fragment, so its parameters are bound a second time.
    return sql("{} DO UPDATE SET ({}) = ({})", head, columns, values)


def build_insert(table: str, record: "Mapping[str, Any]", on_conflict: "OnConflict" = None) -> Fragment:
    """Build ``INSERT ... RETURNING *`` for one record.

    Columns appear in the record's iteration order.

    Args:
        table: Unqualified table name.
        record: Column name to value mapping.
        on_conflict: Conflict handling, see :meth:`ConflictPolicy.coerce`.

    Raises:
        SQLBuilderError: If the record is empty or the conflict options are invalid.

    Returns:
        The INSERT fragment.
    """
    policy = ConflictPolicy.coerce(on_conflict)
    if not record:
        msg = f"Cannot insert an empty record into {table!r}"
        raise SQLBuilderError(msg)

    columns = join([quote(column) for column in record], ",")
    values = join([param(value) for value in record.values()], ",")

    pieces = [sql("INSERT INTO {} ({})", quote(table), columns), sql("VALUES ({})", values)]
    conflict = _conflict_clause(columns, values, policy)
    if conflict is not None:
        pieces.append(conflict)
    pieces.append(raw("RETURNING *"))
    return join(pieces, " ")


def build_insert_all(
    table: str, records: "Iterable[Mapping[str, Any]]", on_conflict: "OnConflict" = None
) -> "list[Fragment]":
    """Build one INSERT per record; each record's own keys decide its columns."""
    policy = ConflictPolicy.coerce(on_conflict)
    return [build_insert(table, record, policy) for record in records]


def derive_insert_result(rows: "Sequence[Any]", on_conflict: "OnConflict" = None) -> "Optional[Any]":
    """Reduce the rows returned by a single-record insert.

    Raises:
        NotFoundError: No row came back and conflicts are not ignored.
        MultipleResultsFoundError: More than one row came back.

    Returns:
        The inserted row, or ``None`` when an ignored conflict skipped the insert.
    """
    policy = ConflictPolicy.coerce(on_conflict)
    if len(rows) > 1:
        msg = "insert returned multiple rows unexpectedly"
        raise MultipleResultsFoundError(msg, row_count=len(rows))
    if rows:
        return rows[0]
    if policy.allows_missing_row:
        return None
    msg = "insert returned no row unexpectedly"
    raise NotFoundError(msg)
