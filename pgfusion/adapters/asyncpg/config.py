"""asyncpg pool configuration, including the JSON and custom type codecs set up on each connection."""

from collections.abc import Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Optional, TypedDict, Union

from asyncpg import Record
from asyncpg import create_pool as asyncpg_create_pool
from typing_extensions import NotRequired

from pgfusion.adapters.asyncpg._types import AsyncpgConnection, AsyncpgPool, CodecFormat, ConnectionHook
from pgfusion.adapters.asyncpg.driver import AsyncpgDriver
from pgfusion.config import AsyncDatabaseConfig
from pgfusion.utils.logging import get_logger
from pgfusion.utils.serializers import from_json, to_json

if TYPE_CHECKING:
    from asyncio.events import AbstractEventLoop
    from collections.abc import AsyncGenerator, Callable


__all__ = ("AsyncpgConfig", "AsyncpgConnectionConfig", "AsyncpgPoolConfig", "TypeCodec")

logger = get_logger("adapters.asyncpg")


class AsyncpgConnectionConfig(TypedDict, total=False):
    """TypedDict for AsyncPG connection parameters."""

    dsn: NotRequired[str]
    host: NotRequired[str]
    port: NotRequired[int]
    user: NotRequired[str]
    password: NotRequired[str]
    database: NotRequired[str]
    ssl: NotRequired[Any]
    passfile: NotRequired[str]
    direct_tls: NotRequired[bool]
    connect_timeout: NotRequired[float]
    command_timeout: NotRequired[float]
    statement_cache_size: NotRequired[int]
    max_cached_statement_lifetime: NotRequired[int]
    max_cacheable_statement_size: NotRequired[int]
    server_settings: NotRequired[dict[str, str]]


class AsyncpgPoolConfig(AsyncpgConnectionConfig, total=False):
    """TypedDict for AsyncPG pool parameters, inheriting connection parameters."""

    min_size: NotRequired[int]
    max_size: NotRequired[int]
    max_queries: NotRequired[int]
    max_inactive_connection_lifetime: NotRequired[float]
    setup: NotRequired["ConnectionHook"]
    init: NotRequired["ConnectionHook"]
    loop: NotRequired["AbstractEventLoop"]
    connection_class: NotRequired[type["AsyncpgConnection"]]
    record_class: NotRequired[type[Record]]
    extra: NotRequired[dict[str, Any]]


@dataclass(frozen=True)
class TypeCodec:
    """A custom encoder/decoder registered on every pooled connection.

    Example, decoding ``int8`` values as strings::

        TypeCodec("int8", encoder=str, decoder=str)
    """

    typename: str
    encoder: "Callable[[Any], Any]"
    decoder: "Callable[[Any], Any]"
    schema: str = "pg_catalog"
    format: CodecFormat = "text"


class AsyncpgConfig(AsyncDatabaseConfig[AsyncpgConnection, AsyncpgPool, AsyncpgDriver]):
    """Pool settings for asyncpg plus the codecs installed on every new connection.

    Usage::

        config = AsyncpgConfig(
            pool_config={"dsn": "postgresql://localhost/app", "max_size": 5},
            type_codecs=[TypeCodec("int8", encoder=str, decoder=int)],
        )
    """

    driver_type: "ClassVar[type[AsyncpgDriver]]" = AsyncpgDriver
    connection_type: "ClassVar[type[Any]]" = AsyncpgConnection  # type: ignore[assignment]

    def __init__(
        self,
        *,
        pool_config: "Optional[Union[AsyncpgPoolConfig, dict[str, Any]]]" = None,
        pool_instance: "Optional[AsyncpgPool]" = None,
        migration_config: "Optional[dict[str, Any]]" = None,
        json_serializer: "Optional[Callable[[Any], str]]" = None,
        json_deserializer: "Optional[Callable[[str], Any]]" = None,
        type_codecs: "Optional[Sequence[TypeCodec]]" = None,
    ) -> None:
        """Initialize AsyncPG configuration.

        Args:
            pool_config: Pool configuration parameters (TypedDict or dict)
            pool_instance: Existing pool instance to use
            migration_config: Migration configuration (``migrations_table``, ``dir``)
            json_serializer: JSON serialization function for ``json``/``jsonb`` values
            json_deserializer: JSON deserialization function for ``json``/``jsonb`` values
            type_codecs: Additional codecs registered on each new connection
        """
        self.json_serializer = json_serializer or to_json
        self.json_deserializer = json_deserializer or from_json
        self.type_codecs: tuple[TypeCodec, ...] = tuple(type_codecs or ())
        super().__init__(
            pool_config=dict(pool_config) if pool_config else None,
            pool_instance=pool_instance,
            migration_config=migration_config,
        )

    def _get_pool_config_dict(self) -> "dict[str, Any]":
        """Get pool configuration as plain dict for external library.

        Returns:
            Dictionary with pool parameters, filtering out None values.
        """
        config: dict[str, Any] = dict(self.pool_config)
        extras = config.pop("extra", {})
        config.update(extras)
        config = {k: v for k, v in config.items() if v is not None}
        config["init"] = self._wrap_init(config.get("init"))
        return config

    def _wrap_init(self, user_init: "Optional[ConnectionHook]") -> "ConnectionHook":
        async def init(connection: "AsyncpgConnection") -> None:
            await self.register_codecs(connection)
            if user_init is not None:
                await user_init(connection)

        return init

    async def register_codecs(self, connection: "AsyncpgConnection") -> None:
        """Register the JSON codecs and the configured ``type_codecs`` on ``connection``."""
        for typename in ("json", "jsonb"):
            await connection.set_type_codec(
                typename, encoder=self.json_serializer, decoder=self.json_deserializer, schema="pg_catalog"
            )
        for codec in self.type_codecs:
            await connection.set_type_codec(
                codec.typename,
                encoder=codec.encoder,
                decoder=codec.decoder,
                schema=codec.schema,
                format=codec.format,
            )

    async def _create_pool(self) -> "AsyncpgPool":
        """Create the actual async connection pool."""
        return await asyncpg_create_pool(**self._get_pool_config_dict())

    async def _close_pool(self) -> None:
        """Close the actual async connection pool."""
        if self.pool_instance:
            await self.pool_instance.close()

    @asynccontextmanager
    async def provide_connection(self, *args: Any, **kwargs: Any) -> "AsyncGenerator[AsyncpgConnection, None]":
        """Provide an async connection context manager.

        Yields:
            An AsyncPG connection instance, released back to the pool on exit.
        """
        pool = await self.provide_pool()
        connection = await pool.acquire()
        try:
            yield connection
        finally:
            await pool.release(connection)

    @asynccontextmanager
    async def provide_session(self, *args: Any, **kwargs: Any) -> "AsyncGenerator[AsyncpgDriver, None]":
        """Provide an async driver session context manager.

        Yields:
            An AsyncpgDriver instance.
        """
        async with self.provide_connection(*args, **kwargs) as connection:
            yield self.driver_type(connection=connection)
