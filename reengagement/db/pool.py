"""
Async connection pool for the Supabase user store.

The conninfo is SUPABASE_DB_URL, which carries the service-role credentials
needed to read and update every user profile.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from reengagement.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

APPLICATION_NAME = "reengagement-notifications"
CLOSE_TIMEOUT_SECONDS = 30.0
SESSION_SETTINGS = ("SET timezone = 'UTC'", "SET statement_timeout = '30s'")


class DatabasePoolManager:
    """Opens, hands out and closes one AsyncConnectionPool per process."""

    def __init__(self):
        self.pool: AsyncConnectionPool | None = None
        self._initialized = False
        self._closed = False

    @property
    def initialized(self) -> bool:
        return self._initialized and not self._closed

    async def initialize(self, conninfo: str, pool_config: dict[str, Any]) -> None:
        """
        Open the pool and prove one connection works.

        Raises:
            RuntimeError: If the pool was closed before or cannot reach the store
        """
        if self._initialized:
            logger.warning("Database pool already initialized")
            return
        if self._closed:
            raise RuntimeError("Cannot reinitialize closed pool")

        logger.info("Opening database pool", **pool_config)
        self.pool = AsyncConnectionPool(
            conninfo=conninfo,
            open=False,
            check=AsyncConnectionPool.check_connection,
            configure=self._configure_connection,
            **pool_config,
        )

        try:
            await self.pool.open()
            await self.pool.wait()
            self._initialized = True
            await self._select_one()
        except Exception as e:
            logger.error("Database pool failed to open", error=str(e))
            self._initialized = False
            await self.pool.close()
            self.pool = None
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

        logger.info("Database pool ready")

    async def _configure_connection(self, conn: psycopg.AsyncConnection) -> None:
        # Every statement this service runs is a single read or update
        conn.row_factory = dict_row
        await conn.set_autocommit(True)
        await conn.execute(
            sql.SQL("SET application_name = {}").format(sql.Literal(APPLICATION_NAME))
        )
        for statement in SESSION_SETTINGS:
            await conn.execute(statement)

    async def _select_one(self) -> None:
        async with self.connection() as conn:
            cursor = await conn.execute("SELECT 1 AS ok")
            row = await cursor.fetchone()
        if not row or row.get("ok") != 1:
            raise RuntimeError(f"Unexpected connection test result: {row!r}")

    async def close(self) -> None:
        if not self.initialized:
            return

        logger.info("Closing database pool")
        try:
            await asyncio.wait_for(self.pool.close(), timeout=CLOSE_TIMEOUT_SECONDS)
        except TimeoutError:
            logger.warning("Database pool close timed out")
        finally:
            self._initialized = False
            self._closed = True

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        if not self.initialized:
            raise RuntimeError("Database pool not initialized")

        async with self.pool.connection() as conn:
            yield conn

    async def health_check(self) -> dict[str, Any]:
        """
        Readiness view of the pool.

        Returns:
            dict: healthy flag plus either pool size/latency figures or an error
        """
        if not self.initialized:
            return {"healthy": False, "error": "Pool not initialized"}

        started = time.perf_counter()
        try:
            await self._select_one()
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {"healthy": False, "error": f"{type(e).__name__}: {e}"}

        stats = self.pool.get_stats()
        health = {
            "healthy": True,
            "connection_time_ms": round((time.perf_counter() - started) * 1000, 2),
            "pool_size": stats.get("pool_size", 0),
            "pool_available": stats.get("pool_available", 0),
        }
        waiting = stats.get("requests_waiting", 0)
        if waiting:
            health["warnings"] = [f"Requests waiting for connections: {waiting}"]
        return health


db_pool = DatabasePoolManager()


async def db_health_check() -> dict[str, Any]:
    return await db_pool.health_check()
