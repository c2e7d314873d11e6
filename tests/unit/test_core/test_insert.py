"""Unit tests for INSERT building and conflict handling."""

from typing import Any

import pytest

from pgfusion.core.compiler import compose
from pgfusion.core.insert import (
    ConflictAction,
    ConflictPolicy,
    ConflictTarget,
    build_insert,
    build_insert_all,
    derive_insert_result,
)
from pgfusion.exceptions import CardinalityError, MultipleResultsFoundError, NotFoundError, SQLBuilderError
from pgfusion.testing import SQLMatching


def test_build_insert_exact_text() -> None:
    statement = compose(build_insert("song", {"name": "Take On Me", "artist": "A-ha", "rating": 5}))
    assert statement.text == 'INSERT INTO "song" ("name","artist","rating") VALUES ($1,$2,$3) RETURNING *'
    assert statement.values == ["Take On Me", "A-ha", 5]


def test_build_insert_per_record_shape() -> None:
    songs = [
        {"name": "Take On Me", "artist": "A-ha", "rating": 5},
        {"name": "Separate Ways", "artist": "Journey"},
    ]
    assert build_insert_all("song", songs) == [
        SQLMatching(
            """
            INSERT INTO "song" ("name","artist","rating")
            VALUES ($1,$2,$3)
            RETURNING *
            """,
            ["Take On Me", "A-ha", 5],
        ),
        SQLMatching(
            """
            INSERT INTO "song" ("name","artist")
            VALUES ($1,$2)
            RETURNING *
            """,
            ["Separate Ways", "Journey"],
        ),
    ]


def test_build_insert_keeps_record_order() -> None:
    statement = compose(build_insert("song", {"rating": 5, "name": "x"}))
    assert statement.text.startswith('INSERT INTO "song" ("rating","name")')
    assert statement.values == [5, "x"]


def test_build_insert_defaults_to_no_conflict_handling() -> None:
    song = {"name": "Take On Me"}
    assert build_insert("song", song) == build_insert("song", song, None)
    assert build_insert("song", song) == build_insert("song", song, ConflictPolicy.none())


@pytest.mark.parametrize(
    ("on_conflict", "clause", "values"),
    [
        ("ignore", "ON CONFLICT DO NOTHING", ["Take On Me", 5]),
        ({"action": "ignore"}, "ON CONFLICT DO NOTHING", ["Take On Me", 5]),
        ({"action": "ignore", "column": "name"}, 'ON CONFLICT ("name") DO NOTHING', ["Take On Me", 5]),
        (
            {"action": "ignore", "constraint": "unique_name"},
            'ON CONFLICT ON CONSTRAINT "unique_name" DO NOTHING',
            ["Take On Me", 5],
        ),
        (
            {"action": "update", "column": "name"},
            'ON CONFLICT ("name") DO UPDATE SET ("name","rating") = ($3,$4)',
            ["Take On Me", 5, "Take On Me", 5],
        ),
        (
            {"action": "update", "constraint": "unique_name"},
            'ON CONFLICT ON CONSTRAINT "unique_name" DO UPDATE SET ("name","rating") = ($3,$4)',
            ["Take On Me", 5, "Take On Me", 5],
        ),
        (
            ConflictPolicy.update(column="name"),
            'ON CONFLICT ("name") DO UPDATE SET ("name","rating") = ($3,$4)',
            ["Take On Me", 5, "Take On Me", 5],
        ),
    ],
    ids=[
        "ignore_shorthand",
        "ignore_mapping",
        "ignore_column",
        "ignore_constraint",
        "update_column",
        "update_constraint",
        "update_policy_instance",
    ],
)
def test_build_insert_conflict_clauses(on_conflict: Any, clause: str, values: "list[Any]") -> None:
    song = {"name": "Take On Me", "rating": 5}
    assert build_insert("song", song, on_conflict) == SQLMatching(
        f'INSERT INTO "song" ("name","rating") VALUES ($1,$2) {clause} RETURNING *', values
    )


def test_ignore_shorthand_equals_ignore_mapping() -> None:
    song = {"name": "Take On Me", "rating": 5}
    assert build_insert("song", song, "ignore") == build_insert("song", song, {"action": "ignore"})


@pytest.mark.parametrize(
    "on_conflict",
    [
        "update",
        {"action": "update"},
        "replace",
        {"action": "merge", "column": "name"},
        {"action": "ignore", "column": "name", "constraint": "unique_name"},
        {"action": "ignore", "columns": ["name"]},
        42,
    ],
    ids=[
        "update_shorthand_without_target",
        "update_without_target",
        "unknown_shorthand",
        "unknown_action",
        "column_and_constraint",
        "unknown_key",
        "unsupported_type",
    ],
)
def test_invalid_conflict_options_are_rejected(on_conflict: Any) -> None:
    with pytest.raises(SQLBuilderError):
        build_insert("song", {"name": "x"}, on_conflict)


def test_empty_record_is_rejected() -> None:
    with pytest.raises(SQLBuilderError, match="empty record"):
        build_insert("song", {})


def test_conflict_policy_validation() -> None:
    with pytest.raises(SQLBuilderError):
        ConflictPolicy(ConflictAction.UPDATE)
    with pytest.raises(SQLBuilderError):
        ConflictPolicy(ConflictAction.NONE, ConflictTarget(column="name"))
    with pytest.raises(SQLBuilderError):
        ConflictTarget()
    assert ConflictPolicy("ignore").action is ConflictAction.IGNORE  # type: ignore[arg-type]
    assert ConflictPolicy.ignore().allows_missing_row
    assert not ConflictPolicy.update(constraint="unique_name").allows_missing_row
    assert not ConflictPolicy.none().allows_missing_row


def test_conflict_policy_coerce_returns_instances_unchanged() -> None:
    policy = ConflictPolicy.ignore(column="name")
    assert ConflictPolicy.coerce(policy) is policy
    assert ConflictPolicy.coerce(None) == ConflictPolicy.none()
    assert ConflictPolicy.coerce({"action": "ignore", "column": "name"}) == policy


def test_derive_insert_result_single_row() -> None:
    row = {"id": 1}
    assert derive_insert_result([row]) is row
    assert derive_insert_result([row], "ignore") is row


def test_derive_insert_result_no_row() -> None:
    assert derive_insert_result([], "ignore") is None
    assert derive_insert_result([], {"action": "ignore", "column": "name"}) is None
    with pytest.raises(NotFoundError, match="insert returned no row unexpectedly"):
        derive_insert_result([])
    with pytest.raises(NotFoundError):
        derive_insert_result([], {"action": "update", "column": "name"})


@pytest.mark.parametrize(
    "on_conflict", [None, "ignore", {"action": "update", "column": "name"}], ids=["none", "ignore", "update"]
)
def test_derive_insert_result_multiple_rows(on_conflict: Any) -> None:
    with pytest.raises(MultipleResultsFoundError, match="insert returned multiple rows unexpectedly") as exc_info:
        derive_insert_result([{"id": 1}, {"id": 2}], on_conflict)
    assert isinstance(exc_info.value, CardinalityError)
    assert exc_info.value.row_count == 2


def test_multiple_rows_error_leaves_row_data_out_of_message() -> None:
    rows = [{"id": 1, "secret": "hunter2"}, {"id": 2, "secret": "swordfish"}]
    with pytest.raises(MultipleResultsFoundError) as exc_info:
        derive_insert_result(rows)
    assert str(exc_info.value) == "insert returned multiple rows unexpectedly"
    assert "hunter2" not in str(exc_info.value)
