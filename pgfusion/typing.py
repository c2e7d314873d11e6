"""Shared type aliases."""

from typing import TYPE_CHECKING, Any, TypeVar, Union

from typing_extensions import TypeAlias

if TYPE_CHECKING:
    from pgfusion.core.fragment import Fragment

__all__ = ("ConnectionT", "DictRow", "PoolT", "SqlRecord", "Statement", "T")

DictRow: TypeAlias = dict[str, Any]
"""A row as returned by the driver: column name to value."""

SqlRecord: TypeAlias = dict[str, Any]
"""A record to insert: column name to value, in column order."""

Statement: TypeAlias = Union["Fragment", str]
"""Anything the driver can execute; plain strings carry no parameters."""

ConnectionT = TypeVar("ConnectionT")
PoolT = TypeVar("PoolT")
T = TypeVar("T")
