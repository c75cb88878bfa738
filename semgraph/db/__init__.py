"""
Database connection management for semgraph.

Async Postgres (psycopg3 + pgvector) backing the embedding cache and
document persistence when SG_STORAGE=postgres:
    from semgraph.db import get_async_connection
"""

from .postgres_async import (
    get_async_pool,
    get_async_connection,
    ensure_schema,
    close_async_pool,
)

__all__ = [
    "get_async_pool",
    "get_async_connection",
    "ensure_schema",
    "close_async_pool",
]
