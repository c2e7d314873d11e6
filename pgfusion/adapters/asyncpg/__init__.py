"""AsyncPG adapter for pgfusion."""

from pgfusion.adapters.asyncpg._types import AsyncpgConnection
from pgfusion.adapters.asyncpg.config import AsyncpgConfig, AsyncpgConnectionConfig, AsyncpgPoolConfig, TypeCodec
from pgfusion.adapters.asyncpg.driver import AsyncpgDriver

__all__ = (
    "AsyncpgConfig",
    "AsyncpgConnection",
    "AsyncpgConnectionConfig",
    "AsyncpgDriver",
    "AsyncpgPoolConfig",
    "TypeCodec",
)
