"""Helpers for asserting on built statements in tests.

Statement text is compared after collapsing whitespace runs to single spaces,
so expected SQL can be written over several indented lines. Values are
compared with plain ``==``.

Usage with any test framework::

    assert build_insert("song", {"name": "x"}) == SQLMatching(
        '''
        INSERT INTO "song" ("name")
        VALUES ($1)
        RETURNING *
        ''',
        ["x"],
    )
"""

import re
from collections.abc import Sequence
from typing import Any

from pgfusion.core.compiler import ComposedStatement, compose
from pgfusion.core.fragment import Fragment

__all__ = ("SQLMatching", "matches", "normalize_sql")

_WHITESPACE = re.compile(r"\s+")


def normalize_sql(text: str) -> str:
    """Collapse whitespace runs to single spaces and trim both ends."""
    return _WHITESPACE.sub(" ", text).strip()


def matches(
    actual_text: str, actual_values: "Sequence[Any]", expected_text: str, expected_values: "Sequence[Any]"
) -> bool:
    """Whether two statements are equal up to whitespace in their text."""
    return normalize_sql(actual_text) == normalize_sql(expected_text) and list(actual_values) == list(expected_values)


class SQLMatching:
    """Compares equal to any statement whose text and values match.

    Accepts a :class:`~pgfusion.core.fragment.Fragment`, a
    :class:`~pgfusion.core.compiler.ComposedStatement` or a ``(text, values)``
    pair on the other side of ``==``.
    """

    __slots__ = ("text", "values")

    def __init__(self, text: str, values: "Sequence[Any]" = ()) -> None:
        self.text = text
        self.values = list(values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Fragment):
            other = compose(other)
        if isinstance(other, ComposedStatement):
            return matches(other.text, other.values, self.text, self.values)
        if isinstance(other, tuple) and len(other) == 2 and isinstance(other[0], str):  # noqa: PLR2004
            return matches(other[0], other[1], self.text, self.values)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"SQLMatching(text={normalize_sql(self.text)!r}, values={self.values!r})"
