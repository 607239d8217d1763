"""PostgreSQL connection pool management.

Supabase connection modes:
  - Session Pooler  (port 5432) : persistent servers, supports prepared statements
  - Transaction Pooler (port 6543) : serverless/edge, no prepared statement support
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

import asyncpg

logger = logging.getLogger(__name__)


@dataclass
class PoolConfig:
    """Database pool configuration."""

    min_size: int = 1
    max_size: int = 4
    timeout: float = 5.0
    command_timeout: float = 15.0
    max_inactive_connection_lifetime: float = 30.0
    max_retries: int = 3
    retry_delay: float = 3.0
    ssl: str | None = "require"


class DatabaseManager:
    """Owns the asyncpg pool used by the birthday repository.

    Detects Transaction vs Session Pooler from the port, retries the initial
    connection with exponential backoff and verifies the pool with a trivial
    query before handing it out.
    """

    def __init__(self, database_url: str, config: PoolConfig | None = None):
        self.database_url = database_url
        self.config = config or PoolConfig()
        self._pool: asyncpg.Pool | None = None
        self._pooler_mode: str = "transaction" if ":6543" in database_url else "session"

    def _pool_kwargs(self) -> dict[str, Any]:
        """Build asyncpg.create_pool kwargs for the detected pooler mode.

        Transaction pooling (PgBouncer) cannot keep prepared statements or idle
        connections, so those are switched off in that mode.
        """
        cfg = self.config
        kwargs: dict[str, Any] = {
            "dsn": self.database_url,
            "min_size": cfg.min_size,
            "max_size": cfg.max_size,
            "timeout": cfg.timeout,
            "command_timeout": cfg.command_timeout,
            "ssl": cfg.ssl,
            "statement_cache_size": 100,
            "max_inactive_connection_lifetime": cfg.max_inactive_connection_lifetime,
        }
        if self._pooler_mode == "transaction":
            kwargs.update(min_size=0, statement_cache_size=0, max_inactive_connection_lifetime=0)
        return kwargs

    @property
    def safe_target(self) -> str:
        """Host and port of the database, without credentials (for logs)."""
        parsed = urlparse(self.database_url)
        return f"{parsed.hostname or 'unknown'}:{parsed.port or 5432}"

    async def connect(self) -> None:
        """Initialize database connection pool with retry."""
        if self._pool is not None:
            logger.warning("Database pool already initialized")
            return

        pool_kwargs = self._pool_kwargs()
        logger.info(f"Connecting to {self.safe_target} with {self._pooler_mode} pooler mode")

        cfg = self.config
        for attempt in range(1, cfg.max_retries + 1):
            try:
                self._pool = await asyncpg.create_pool(**pool_kwargs)
                async with self._pool.acquire() as conn:
                    await conn.fetchval("SELECT 1")
                logger.info(
                    f"Database pool ready (mode={self._pooler_mode}, "
                    f"size={pool_kwargs['min_size']}-{cfg.max_size})"
                )
                return
            except (OSError, asyncio.TimeoutError, asyncpg.PostgresError) as e:
                if self._pool is not None:
                    await self._pool.close()
                    self._pool = None
                if attempt >= cfg.max_retries:
                    logger.exception(
                        f"Database connection failed after {cfg.max_retries} attempts: "
                        f"{type(e).__name__}: {e or repr(e)}"
                    )
                    raise
                delay = cfg.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"Database connection attempt {attempt}/{cfg.max_retries} failed: "
                    f"{type(e).__name__}: {e or repr(e)}, retrying in {delay}s..."
                )
                await asyncio.sleep(delay)

    async def disconnect(self) -> None:
        """Close database connection pool."""
        if self._pool is None:
            return

        pool, self._pool = self._pool, None
        try:
            await pool.close()
            logger.info("Database pool closed")
        except Exception as e:
            logger.exception(f"Error closing database pool: {e}")

    @property
    def pool(self) -> asyncpg.Pool:
        """Get the database connection pool. Raises if not initialized."""
        if self._pool is None:
            raise RuntimeError("Database pool not initialized. Call connect() first.")
        return self._pool
