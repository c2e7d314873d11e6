"""Unit tests for the whitespace-insensitive statement matchers."""

import pytest

from pgfusion.core.compiler import compose
from pgfusion.core.fragment import sql
from pgfusion.testing import SQLMatching, matches, normalize_sql


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("SELECT 1", "SELECT 1"),
        ("  SELECT\n\t  1  ", "SELECT 1"),
        ("\n\n", ""),
        ("SELECT  *\nFROM   t", "SELECT * FROM t"),
    ],
    ids=["plain", "surrounding_whitespace", "only_whitespace", "inner_runs"],
)
def test_normalize_sql(text: str, expected: str) -> None:
    assert normalize_sql(text) == expected


def test_matches() -> None:
    assert matches("SELECT  $1", [1], "\n  SELECT $1\n", [1])
    assert not matches("SELECT $1", [1], "SELECT $1", [2])
    assert not matches("SELECT $1", [1], "SELECT $2", [1])
    assert matches("SELECT $1", (1,), "SELECT $1", [1])
    assert matches("SELECT $1", [{"a": [1, 2]}], "SELECT $1", [{"a": [1, 2]}])


def test_sql_matching_accepts_fragments_and_statements() -> None:
    fragment = sql('SELECT * FROM "song" WHERE "name" = {}', "Take On Me")
    expected = SQLMatching(
        """
        SELECT *
        FROM "song"
        WHERE "name" = $1
        """,
        ["Take On Me"],
    )
    assert fragment == expected
    assert expected == compose(fragment)
    assert expected == ('SELECT * FROM "song" WHERE "name" = $1', ["Take On Me"])
    assert fragment != SQLMatching('SELECT * FROM "song" WHERE "name" = $1', ["Separate Ways"])


def test_sql_matching_other_types() -> None:
    assert SQLMatching("SELECT 1") != "SELECT 1"
    assert SQLMatching("SELECT 1") != 1
    assert repr(SQLMatching("SELECT\n 1", [2])) == "SQLMatching(text='SELECT 1', values=[2])"
