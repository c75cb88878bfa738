"""
Async Postgres connection management for semgraph.

Uses psycopg3 async interface with connection pooling and pgvector
registration on every new connection.

Usage:
    async with get_async_connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute("SELECT * FROM sg_node_embeddings LIMIT 10")
            rows = await cur.fetchall()
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional, AsyncGenerator, Any

from semgraph.config import config

logger = logging.getLogger(__name__)

# Global async pool
_async_pool: Optional[Any] = None
_pool_lock: Optional[asyncio.Lock] = None


SCHEMA_SQL = """
CREATE EXTENSION IF NOT EXISTS vector;

CREATE TABLE IF NOT EXISTS sg_node_embeddings (
    doc_id TEXT NOT NULL,
    node_id TEXT NOT NULL,
    text_hash TEXT NOT NULL,
    vector vector NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    PRIMARY KEY (doc_id, node_id, text_hash)
);
"""


async def _configure_connection(conn) -> None:
    """Configure a new connection (register pgvector)."""
    from pgvector.psycopg import register_vector_async

    await register_vector_async(conn)


async def get_async_pool():
    """
    Get or create the async connection pool.

    Guarded by an asyncio.Lock created on first use.
    """
    global _async_pool, _pool_lock

    if _async_pool is not None:
        return _async_pool

    if _pool_lock is None:
        _pool_lock = asyncio.Lock()

    async with _pool_lock:
        # Double-check after acquiring lock
        if _async_pool is not None:
            return _async_pool

        from psycopg.rows import dict_row
        from psycopg_pool import AsyncConnectionPool

        pool = AsyncConnectionPool(
            config.POSTGRES_DSN,
            min_size=config.PG_POOL_MIN,
            max_size=config.PG_POOL_MAX,
            kwargs={"row_factory": dict_row},
            configure=_configure_connection,
            open=False,  # Don't open immediately
        )
        try:
            await pool.open()
        except Exception as e:
            logger.error(f"Failed to create async pool: {e}")
            raise

        _async_pool = pool
        logger.info(
            f"Async Postgres pool created (min={config.PG_POOL_MIN}, max={config.PG_POOL_MAX})"
        )

    return _async_pool


@asynccontextmanager
async def get_async_connection() -> AsyncGenerator:
    """
    Get an async database connection from the pool.

    Usage:
        async with get_async_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1")
    """
    pool = await get_async_pool()

    async with pool.connection() as conn:
        yield conn


async def ensure_schema() -> None:
    """Create the embedding cache table if it does not exist."""
    async with get_async_connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(SCHEMA_SQL)
        await conn.commit()
    logger.info("SG embedding schema ensured")


async def close_async_pool() -> None:
    """Close the global pool (app shutdown)."""
    global _async_pool

    if _async_pool is not None:
        await _async_pool.close()
        _async_pool = None
        logger.info("Async Postgres pool closed")
