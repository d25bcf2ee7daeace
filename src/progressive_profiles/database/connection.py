"""
PostgreSQL connection pooling for the profile store.

A thin lifecycle wrapper over an asyncpg pool. The store issues single
statements through the fetch helpers and takes a whole connection inside
``transaction()`` when a merge has to lock the subject row.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, List, Optional

import asyncpg

from ..config import DatabaseConfig


logger = logging.getLogger(__name__)


class DatabaseConnectionError(Exception):
    """Raised when the database cannot be reached or the pool is not usable."""
    pass


class DatabasePool:
    """
    Owns the asyncpg pool backing ``PostgresProfileStore``.

    The caller builds one per process and hands it to the store; nothing here
    keeps module level state.
    """

    def __init__(self, config: DatabaseConfig):
        if not config.url:
            raise DatabaseConnectionError("DATABASE_URL is not configured")
        self.config = config
        self._pool: Optional[asyncpg.Pool] = None
        self._closed = False

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None and not self._closed

    async def initialize(self) -> None:
        """Open the pool. Calling it twice is harmless."""
        if self._pool is not None:
            return

        size = (self.config.pool_min_size, self.config.pool_max_size)
        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.config.url,
                min_size=size[0],
                max_size=size[1],
                command_timeout=60,
                server_settings={"jit": "off"},
            )
        except Exception as e:
            logger.error(f"Could not open profile store pool: {e}")
            raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e
        logger.info(f"Profile store pool ready ({size[0]}-{size[1]} connections)")

    async def close(self) -> None:
        if self._pool is None or self._closed:
            return
        await self._pool.close()
        self._closed = True
        logger.info("Profile store pool closed")

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise DatabaseConnectionError("Database pool not initialized")
        if self._closed:
            raise DatabaseConnectionError("Database pool is closed")
        return self._pool

    @asynccontextmanager
    async def acquire_connection(self):
        """
        Borrow a connection for the duration of the block.

            async with pool.acquire_connection() as conn:
                row = await conn.fetchrow("SELECT * FROM profiles WHERE id = $1", profile_id)
        """
        pool = self._require_pool()
        conn = await pool.acquire()
        try:
            yield conn
        finally:
            try:
                await pool.release(conn)
            except Exception as e:
                logger.warning(f"Connection release failed: {e}")

    @asynccontextmanager
    async def transaction(self):
        """Borrow a connection and keep the block inside one transaction."""
        async with self.acquire_connection() as conn:
            async with conn.transaction():
                yield conn

    async def _run(self, method: str, sql: str, args: tuple) -> Any:
        async with self.acquire_connection() as conn:
            try:
                return await getattr(conn, method)(sql, *args)
            except asyncpg.PostgresError as e:
                logger.error(f"Profile store {method} failed: {e}")
                logger.debug(f"Statement: {sql}")
                raise

    async def execute_query(self, query: str, *args) -> List[asyncpg.Record]:
        return await self._run("fetch", query, args)

    async def execute_query_one(self, query: str, *args) -> Optional[asyncpg.Record]:
        return await self._run("fetchrow", query, args)

    async def execute_command(self, command: str, *args) -> str:
        """Run a statement that returns no rows; yields asyncpg's status tag."""
        return await self._run("execute", command, args)

    async def health_check(self) -> bool:
        """True when a trivial round trip succeeds."""
        try:
            value = await self._run("fetchval", "SELECT 1", ())
        except Exception as e:
            logger.error(f"Profile store health check failed: {e}")
            return False
        return value == 1
