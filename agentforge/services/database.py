"""Database service with connection pooling.

The service is constructed explicitly and handed to whoever needs it (the
FastAPI lifespan keeps one on ``app.state.db``; CLI commands open their own).
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import asyncpg
from loguru import logger

from agentforge.settings import PostgresSettings, settings

SCHEMA_PATH = Path(__file__).parent.parent / "sql" / "install.sql"


class DatabaseService:
    """PostgreSQL database service."""

    def __init__(
        self,
        connection_string: str | None = None,
        postgres_settings: PostgresSettings | None = None,
    ):
        self.settings = postgres_settings or settings.postgres
        self.connection_string = connection_string or self.settings.connection_string
        self.pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """Create connection pool."""
        if self.pool is None:
            self.pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=self.settings.min_pool_size,
                max_size=self.settings.max_pool_size,
            )
            logger.info("Database pool opened")

    async def disconnect(self) -> None:
        """Close connection pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Database pool closed")

    async def __aenter__(self) -> "DatabaseService":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    def _require_pool(self) -> asyncpg.Pool:
        if self.pool is None:
            raise RuntimeError("DatabaseService is not connected; call connect() first")
        return self.pool

    async def execute(self, query: str, *args) -> str:
        """Execute a query."""
        async with self._require_pool().acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args) -> list[dict]:
        """Fetch rows as dicts."""
        async with self._require_pool().acquire() as conn:
            rows = await conn.fetch(query, *args)
            return [dict(row) for row in rows]

    async def fetchrow(self, query: str, *args) -> dict | None:
        """Fetch single row as dict."""
        async with self._require_pool().acquire() as conn:
            row = await conn.fetchrow(query, *args)
            return dict(row) if row else None

    async def fetchval(self, query: str, *args) -> Any:
        """Fetch single value."""
        async with self._require_pool().acquire() as conn:
            return await conn.fetchval(query, *args)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a connection and run the block inside one transaction."""
        async with self._require_pool().acquire() as conn:
            async with conn.transaction():
                yield conn

    async def install_schema(self) -> None:
        """Run the install.sql script."""
        sql = SCHEMA_PATH.read_text()
        async with self._require_pool().acquire() as conn:
            await conn.execute(sql)
