"""Flattening of fragment trees into parametrized statements.

Placeholders are numbered by a single left-to-right, depth-first walk of the
fragment tree. The counter advances only at ``Value`` interpolations, so a
nested fragment's parameters continue the numbering of its parent and the
``i``-th placeholder always refers to ``values[i - 1]``.
"""

from collections.abc import Iterator
from typing import Any, Union

from mypy_extensions import mypyc_attr

from pgfusion.core.fragment import Fragment, Raw, Sub, Value

__all__ = ("ComposedStatement", "compose")


@mypyc_attr(allow_interpreted_subclasses=True)
class ComposedStatement:
    """Final statement text and the values bound to its ``$n`` placeholders."""

    __slots__ = ("text", "values")

    def __init__(self, text: str, values: "list[Any]") -> None:
        self.text = text
        self.values = values

    def __iter__(self) -> "Iterator[Any]":
        yield self.text
        yield self.values

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ComposedStatement):
            return NotImplemented
        return self.text == other.text and self.values == other.values

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ComposedStatement(text={self.text!r}, values={self.values!r})"


def _segments(fragment: Fragment) -> "Iterator[Union[str, Value, Sub]]":
    yield fragment.parts[0]
    for interpolation, part in zip(fragment.interpolations, fragment.parts[1:]):
        if isinstance(interpolation, Raw):
            yield interpolation.text
        else:
            yield interpolation
        yield part


def compose(fragment: Fragment) -> ComposedStatement:
    """Flatten ``fragment`` into statement text with ``$1..$n`` and its ordered values.

    Never fails and performs no validation of the SQL text. Composing the same
    tree twice yields identical results; an empty fragment yields ``("", [])``.

    Args:
        fragment: Root of the fragment tree.

    Returns:
        The composed statement.
    """
    chunks: list[str] = []
    values: list[Any] = []
    stack: list[Iterator[Union[str, Value, Sub]]] = [_segments(fragment)]

    while stack:
        for segment in stack[-1]:
            if isinstance(segment, str):
                chunks.append(segment)
            elif isinstance(segment, Value):
                values.append(segment.value)
                chunks.append(f"${len(values)}")
            else:
                stack.append(_segments(segment.fragment))
                break
        else:
            stack.pop()

    return ComposedStatement("".join(chunks), values)
