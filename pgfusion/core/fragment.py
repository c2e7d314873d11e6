"""Composable SQL fragments.

A :class:`Fragment` is an immutable tree of literal SQL text interleaved with
interpolations. Each interpolation is one of:

- :class:`Value` - an opaque value sent to the database as a bound parameter,
- :class:`Raw` - SQL text inlined verbatim,
- :class:`Sub` - a nested fragment spliced in place.

Fragments never touch a connection. They are flattened into a single
``$n``-numbered statement by :func:`pgfusion.core.compiler.compose`.

Usage::

    from pgfusion import sql

    by_artist = sql('SELECT * FROM "song" WHERE "artist" = {}', artist)
    recent = sql('{} AND "released" > {}', by_artist, since)
"""

from collections.abc import Iterable, Mapping, Sequence
from string import Formatter
from typing import TYPE_CHECKING, Any, Optional, Union

from mypy_extensions import mypyc_attr

from pgfusion.exceptions import SQLBuilderError

if TYPE_CHECKING:
    from pgfusion.core.compiler import ComposedStatement

__all__ = (
    "Fragment",
    "Interpolation",
    "Raw",
    "SQLFactory",
    "Sub",
    "Value",
    "and_",
    "join",
    "literal",
    "or_",
    "param",
    "quote",
    "quote_qualified",
    "raw",
    "sql",
    "to_fragment",
)


class Value:
    """An opaque value bound as a statement parameter."""

    __slots__ = ("value",)

    def __init__(self, value: Any) -> None:
        self.value = value

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Value) and self.value == other.value

    def __hash__(self) -> int:
        return hash((Value, self.value))

    def __repr__(self) -> str:
        return f"Value({self.value!r})"


class Raw:
    """SQL text inlined verbatim, never parametrized."""

    __slots__ = ("text",)

    def __init__(self, text: str) -> None:
        self.text = text

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Raw) and self.text == other.text

    def __hash__(self) -> int:
        return hash((Raw, self.text))

    def __repr__(self) -> str:
        return f"Raw({self.text!r})"


class Sub:
    """A nested fragment spliced into its parent."""

    __slots__ = ("fragment",)

    def __init__(self, fragment: "Fragment") -> None:
        self.fragment = fragment

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Sub) and self.fragment == other.fragment

    def __hash__(self) -> int:
        return hash((Sub, self.fragment))

    def __repr__(self) -> str:
        return f"Sub({self.fragment!r})"


Interpolation = Union[Value, Raw, Sub]


@mypyc_attr(allow_interpreted_subclasses=True)
class Fragment:
    """Immutable piece of SQL: ``parts[0] interpolations[0] parts[1] ... parts[n]``."""

    __slots__ = ("_hash", "interpolations", "parts")

    def __init__(self, parts: "Sequence[str]", interpolations: "Sequence[Interpolation]" = ()) -> None:
        """Initialize a fragment.

        Args:
            parts: Literal text pieces, one more than there are interpolations.
            interpolations: ``Value``/``Raw``/``Sub`` items placed between the parts.

        Raises:
            SQLBuilderError: If the lengths do not interleave or an interpolation has an unknown type.
        """
        parts = tuple(parts)
        interpolations = tuple(interpolations)
        if len(parts) != len(interpolations) + 1:
            msg = (
                f"A fragment needs exactly one more text part than interpolations, "
                f"got {len(parts)} parts and {len(interpolations)} interpolations"
            )
            raise SQLBuilderError(msg)
        for interpolation in interpolations:
            if not isinstance(interpolation, (Value, Raw, Sub)):
                msg = f"Unsupported interpolation {interpolation!r}; expected Value, Raw or Sub"
                raise SQLBuilderError(msg)
        self.parts: tuple[str, ...] = parts
        self.interpolations: tuple[Interpolation, ...] = interpolations
        self._hash: Optional[int] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fragment):
            return NotImplemented
        return self.parts == other.parts and self.interpolations == other.interpolations

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash((self.parts, self.interpolations))
        return self._hash

    def __repr__(self) -> str:
        return f"Fragment(parts={self.parts!r}, interpolations={self.interpolations!r})"

    def compose(self) -> "ComposedStatement":
        """Flatten this fragment into statement text and its ordered values."""
        from pgfusion.core.compiler import compose

        return compose(self)

    @property
    def text(self) -> str:
        """Statement text with ``$n`` placeholders."""
        return self.compose().text

    @property
    def values(self) -> "list[Any]":
        """Values aligned with the ``$n`` placeholders of :attr:`text`."""
        return self.compose().values


def _to_interpolation(value: Any) -> Interpolation:
    if isinstance(value, Fragment):
        return Sub(value)
    if isinstance(value, (Value, Raw, Sub)):
        return value
    return Value(value)


def literal(parts: "Sequence[str]", interpolations: "Sequence[Any]" = ()) -> Fragment:
    """Build a fragment from literal text parts and the values placed between them.

    Fragments become :class:`Sub`, ``Value``/``Raw``/``Sub`` instances are kept
    as they are, and any other object becomes a bound :class:`Value`.
    """
    return Fragment(parts, [_to_interpolation(value) for value in interpolations])


def raw(text: str) -> Fragment:
    """Inline ``text`` verbatim. Never pass untrusted input here."""
    return Fragment((text,))


def quote(identifier: str) -> Fragment:
    """Quote an identifier, doubling embedded double quotes."""
    escaped = identifier.replace('"', '""')
    return Fragment((f'"{escaped}"',))


def quote_qualified(schema: str, name: str) -> Fragment:
    """Quote a schema-qualified identifier as ``"schema"."name"``."""
    return join([quote(schema), quote(name)], ".")


def param(value: Any) -> Fragment:
    """A fragment consisting of one bound parameter and nothing else."""
    return Fragment(("", ""), (Value(value),))


def join(fragments: "Iterable[Any]", delimiter: str) -> Fragment:
    """Interleave ``fragments`` with ``delimiter``; plain values are bound as parameters.

    An empty input yields an empty fragment.
    """
    interpolations: list[Interpolation] = []
    for index, fragment in enumerate(fragments):
        if index:
            interpolations.append(Raw(delimiter))
        interpolations.append(_to_interpolation(fragment))
    return Fragment([""] * (len(interpolations) + 1), interpolations)


def and_(clauses: "Iterable[Any]") -> Fragment:
    """Join clauses with ``AND``; no clauses yields ``TRUE``."""
    clauses = list(clauses)
    if not clauses:
        return raw("TRUE")
    return join(clauses, " AND ")


def or_(clauses: "Iterable[Any]") -> Fragment:
    """Join clauses with ``OR``; no clauses yields ``FALSE``."""
    clauses = list(clauses)
    if not clauses:
        return raw("FALSE")
    return join(clauses, " OR ")


def to_fragment(statement: "Union[Fragment, str]") -> Fragment:
    """Accept either a fragment or plain SQL text without parameters."""
    if isinstance(statement, Fragment):
        return statement
    if isinstance(statement, str):
        return raw(statement)
    msg = f"Expected a Fragment or str, got {type(statement).__name__}"
    raise SQLBuilderError(msg)


_formatter = Formatter()


def _parse_template(template: str, args: "Sequence[Any]", kwargs: "Mapping[str, Any]") -> Fragment:
    parts: list[str] = [""]
    values: list[Any] = []
    auto_index = 0
    numbering: Optional[str] = None

    try:
        parsed = list(_formatter.parse(template))
    except ValueError as e:
        msg = f"Malformed SQL template {template!r}: {e}"
        raise SQLBuilderError(msg) from e

    for literal_text, field_name, format_spec, conversion in parsed:
        parts[-1] += literal_text
        if field_name is None:
            continue
        if conversion or format_spec:
            msg = f"SQL template fields take no conversion or format spec: {template!r}"
            raise SQLBuilderError(msg)

        if field_name == "":
            if numbering == "manual":
                msg = "Cannot switch from manual field numbering to automatic field numbering"
                raise SQLBuilderError(msg)
            numbering = "auto"
            index = auto_index
            auto_index += 1
            values.append(_lookup_positional(args, index, template))
        elif field_name.isdigit():
            if numbering == "auto":
                msg = "Cannot switch from automatic field numbering to manual field numbering"
                raise SQLBuilderError(msg)
            numbering = "manual"
            values.append(_lookup_positional(args, int(field_name), template))
        elif field_name.isidentifier():
            if field_name not in kwargs:
                msg = f"Missing value for SQL template field {field_name!r}"
                raise SQLBuilderError(msg)
            values.append(kwargs[field_name])
        else:
            msg = f"Unsupported SQL template field {field_name!r}"
            raise SQLBuilderError(msg)
        parts.append("")

    return literal(parts, values)


def _lookup_positional(args: "Sequence[Any]", index: int, template: str) -> Any:
    if index >= len(args):
        msg = f"SQL template {template!r} references argument {index} but only {len(args)} were given"
        raise SQLBuilderError(msg)
    return args[index]


class SQLFactory:
    """Entry point for building fragments.

    Calling the factory splits a template on ``{}``, ``{0}`` and ``{name}``
    fields (``{{`` and ``}}`` escape literal braces) and places the matching
    arguments between the text pieces::

        sql('SELECT * FROM "song" WHERE "rating" >= {} AND "artist" = {artist}', 4, artist="A-ha")
    """

    __slots__ = ()

    def __call__(self, template: str, /, *args: Any, **kwargs: Any) -> Fragment:
        return _parse_template(template, args, kwargs)

    @staticmethod
    def literal(parts: "Sequence[str]", interpolations: "Sequence[Any]" = ()) -> Fragment:
        return literal(parts, interpolations)

    @staticmethod
    def raw(text: str) -> Fragment:
        return raw(text)

    @staticmethod
    def quote(identifier: str) -> Fragment:
        return quote(identifier)

    @staticmethod
    def quote_qualified(schema: str, name: str) -> Fragment:
        return quote_qualified(schema, name)

    @staticmethod
    def param(value: Any) -> Fragment:
        return param(value)

    @staticmethod
    def join(fragments: "Iterable[Any]", delimiter: str) -> Fragment:
        return join(fragments, delimiter)

    @staticmethod
    def and_(clauses: "Iterable[Any]") -> Fragment:
        return and_(clauses)

    @staticmethod
    def or_(clauses: "Iterable[Any]") -> Fragment:
        return or_(clauses)


sql = SQLFactory()
