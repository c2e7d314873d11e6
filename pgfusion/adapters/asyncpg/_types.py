"""Type aliases for the asyncpg adapter."""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Union

from asyncpg import Connection
from asyncpg.pool import Pool, PoolConnectionProxy
from typing_extensions import Literal, TypeAlias

if TYPE_CHECKING:
    from asyncpg import Record


if TYPE_CHECKING:
    AsyncpgConnection: TypeAlias = Union[Connection[Record], PoolConnectionProxy[Record]]
    AsyncpgPool: TypeAlias = Pool[Record]
else:
    AsyncpgConnection = Union[Connection, PoolConnectionProxy]
    AsyncpgPool = Pool

ConnectionHook: TypeAlias = Callable[[AsyncpgConnection], Awaitable[None]]
"""Coroutine run on a pooled connection, like the pool ``init`` and ``setup`` hooks."""

CodecFormat: TypeAlias = Literal["text", "binary", "tuple"]


__all__ = ("AsyncpgConnection", "AsyncpgPool", "CodecFormat", "ConnectionHook")
