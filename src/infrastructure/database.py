"""PostgreSQL access for Metal Vault.

A single asyncpg pool per process, created lazily from settings.
Repositories use the execute/fetch helpers; multi-statement writes
that must commit together go through transaction().
"""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

import asyncpg
from asyncpg import Pool

from src.infrastructure.config import get_settings
from src.infrastructure.logging import get_logger

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

_pool: Pool | None = None
_pool_lock = asyncio.Lock()


async def get_pool() -> Pool:
    """Get or create the connection pool."""
    global _pool

    if _pool is not None:
        return _pool

    async with _pool_lock:
        if _pool is not None:
            return _pool

        settings = get_settings()
        _pool = await asyncpg.create_pool(
            str(settings.database_url),
            min_size=1,
            max_size=settings.database_pool_size,
            command_timeout=30,
        )
        logger.info(f"Database pool opened (max_size={settings.database_pool_size})")
        return _pool


async def close_pool() -> None:
    """Close the connection pool if open."""
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


@asynccontextmanager
async def get_connection() -> AsyncGenerator[asyncpg.Connection, None]:
    """Borrow a pooled connection."""
    pool = await get_pool()
    async with pool.acquire() as conn:
        yield conn


@asynccontextmanager
async def transaction() -> AsyncGenerator[asyncpg.Connection, None]:
    """Connection with an open transaction.

    Commits on normal exit, rolls back if the block raises.
    """
    async with get_connection() as conn:
        async with conn.transaction():
            yield conn


async def execute(query: str, *args) -> str:
    """Execute a query and return the status tag (e.g. 'UPDATE 1')."""
    async with get_connection() as conn:
        return await conn.execute(query, *args)


async def fetch(query: str, *args) -> list[asyncpg.Record]:
    async with get_connection() as conn:
        return await conn.fetch(query, *args)


async def fetchrow(query: str, *args) -> asyncpg.Record | None:
    async with get_connection() as conn:
        return await conn.fetchrow(query, *args)


async def fetchval(query: str, *args):
    async with get_connection() as conn:
        return await conn.fetchval(query, *args)


async def apply_migrations(directory: Path = MIGRATIONS_DIR) -> list[str]:
    """Apply pending *.sql migrations in name order.

    Each file runs in its own transaction and is recorded in
    schema_migrations so reruns skip it.

    Returns:
        Versions applied by this call.
    """
    migration_files = sorted(directory.glob("*.sql"))
    applied_now: list[str] = []

    async with get_connection() as conn:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version VARCHAR(100) PRIMARY KEY,
                applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
            """
        )
        rows = await conn.fetch("SELECT version FROM schema_migrations")
        done = {row["version"] for row in rows}

        for path in migration_files:
            version = path.stem
            if version in done:
                logger.info(f"Skipping migration {version} (already applied)")
                continue

            async with conn.transaction():
                await conn.execute(path.read_text())
                await conn.execute(
                    "INSERT INTO schema_migrations (version) VALUES ($1)", version
                )
            logger.info(f"Applied migration {version}")
            applied_now.append(version)

    return applied_now
