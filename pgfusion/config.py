from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Generic, Optional, TypeVar

from pgfusion.utils.logging import get_logger

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager

    from pgfusion.driver import AsyncDriverAdapterBase


__all__ = ("DEFAULT_MIGRATION_CONFIG", "AsyncConfigT", "AsyncDatabaseConfig", "DriverT")

ConnectionT = TypeVar("ConnectionT")
PoolT = TypeVar("PoolT")
DriverT = TypeVar("DriverT", bound="AsyncDriverAdapterBase")
AsyncConfigT = TypeVar("AsyncConfigT", bound="AsyncDatabaseConfig[Any, Any, Any]")

logger = get_logger("config")

DEFAULT_MIGRATION_CONFIG: "dict[str, Any]" = {"migrations_table": "pgmigrations", "dir": "migrations"}


class AsyncDatabaseConfig(ABC, Generic[ConnectionT, PoolT, DriverT]):
    """Generic async database configuration owning a connection pool."""

    __slots__ = ("migration_config", "pool_config", "pool_instance")

    driver_type: "ClassVar[type[Any]]"
    connection_type: "ClassVar[type[Any]]"
    is_async: "ClassVar[bool]" = True
    supports_connection_pooling: "ClassVar[bool]" = True

    def __init__(
        self,
        *,
        pool_config: "Optional[dict[str, Any]]" = None,
        pool_instance: "Optional[PoolT]" = None,
        migration_config: "Optional[dict[str, Any]]" = None,
    ) -> None:
        self.pool_instance = pool_instance
        self.pool_config: dict[str, Any] = dict(pool_config) if pool_config else {}
        self.migration_config: dict[str, Any] = {**DEFAULT_MIGRATION_CONFIG, **(migration_config or {})}

    def __hash__(self) -> int:
        return id(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return False
        return self.pool_config == other.pool_config and self.migration_config == other.migration_config

    def __repr__(self) -> str:
        return f"{type(self).__name__}(pool_config={self.pool_config!r}, migration_config={self.migration_config!r})"

    async def create_pool(self) -> PoolT:
        """Create the pool once and reuse it afterwards.

        Returns:
            The created pool.
        """
        if self.pool_instance is not None:
            return self.pool_instance
        self.pool_instance = await self._create_pool()
        logger.debug("Created %s pool", type(self).__name__)
        return self.pool_instance

    async def close_pool(self) -> None:
        """Close the pool, if one was created."""
        if self.pool_instance is None:
            return
        await self._close_pool()
        self.pool_instance = None
        logger.debug("Closed %s pool", type(self).__name__)

    async def provide_pool(self, *args: Any, **kwargs: Any) -> PoolT:
        """Provide pool instance."""
        return await self.create_pool()

    @abstractmethod
    def provide_connection(self, *args: Any, **kwargs: Any) -> "AbstractAsyncContextManager[ConnectionT]":
        """Acquire a pooled connection for the duration of the context."""

    @abstractmethod
    def provide_session(self, *args: Any, **kwargs: Any) -> "AbstractAsyncContextManager[DriverT]":
        """Acquire a pooled connection wrapped in a driver for the duration of the context."""

    @abstractmethod
    async def _create_pool(self) -> PoolT:
        """Actual async pool creation implementation."""

    @abstractmethod
    async def _close_pool(self) -> None:
        """Actual async pool destruction implementation."""
