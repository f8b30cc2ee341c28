"""asyncpg connection pool shared by PostgreSQL-backed stores."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import asyncpg

from chronicle.config.models.storage import PostgresConfig
from chronicle.db.errors import ConnectionError
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)


def resolve_dsn() -> str:
    """Read the database DSN from the environment.

    CHRONICLE_DATABASE_URL is preferred, then DATABASE_URL, then a DSN
    assembled from the POSTGRES_* variables.
    """
    for name in ("CHRONICLE_DATABASE_URL", "DATABASE_URL"):
        dsn = os.environ.get(name)
        if dsn:
            return dsn

    env = os.environ.get
    return (
        f"postgresql://{env('POSTGRES_USER', 'chronicle')}:{env('POSTGRES_PASSWORD', 'chronicle')}"
        f"@{env('POSTGRES_HOST', 'localhost')}:{env('POSTGRES_PORT', '5432')}"
        f"/{env('POSTGRES_DB', 'chronicle')}"
    )


class PostgresPool:
    """Lazily created asyncpg pool.

    The pool opens on connect() or on the first acquire(). Driver and
    network failures surface as chronicle.db.errors.ConnectionError.

    Usage:
        pool = PostgresPool(config=settings.storage.postgres)
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT count(*) FROM audit_records")
        await pool.close()
    """

    def __init__(self, dsn: str | None = None, config: PostgresConfig | None = None) -> None:
        self._dsn = dsn or resolve_dsn()
        self._config = config or PostgresConfig()
        self._pool: asyncpg.Pool | None = None

    @property
    def config(self) -> PostgresConfig:
        return self._config

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        if self._pool is not None:
            return

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self._dsn,
                min_size=self._config.min_pool_size,
                max_size=self._config.max_pool_size,
                max_inactive_connection_lifetime=self._config.max_inactive_connection_lifetime,
                command_timeout=self._config.command_timeout,
            )
        except (asyncpg.PostgresError, OSError) as e:
            logger.error("postgres_pool_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to PostgreSQL: {e}", cause=e) from e

        logger.info(
            "postgres_pool_connected",
            min_size=self._config.min_pool_size,
            max_size=self._config.max_pool_size,
        )

    async def close(self) -> None:
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        await pool.close()
        logger.info("postgres_pool_closed")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Yield a pooled connection, opening the pool on first use."""
        await self.connect()
        assert self._pool is not None

        try:
            async with self._pool.acquire() as connection:
                yield connection
        except (asyncpg.PostgresConnectionError, OSError) as e:
            logger.error("postgres_connection_error", error=str(e))
            raise ConnectionError(f"PostgreSQL connection lost: {e}", cause=e) from e

    async def health_check(self) -> bool:
        """Return True when the pool is open and answers a trivial query."""
        if self._pool is None:
            return False

        try:
            async with self._pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
        except (asyncpg.PostgresError, OSError) as e:
            logger.warning("postgres_health_check_failed", error=str(e))
            return False
        return True
