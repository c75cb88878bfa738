"""
Node embedding cache for semgraph.

Content-addressed by (document, node, sha256(text)).
"""

from .store import (
    EmbeddingCache,
    EmbeddingCacheError,
    InMemoryEmbeddingBackend,
    PostgresEmbeddingBackend,
    hash_text,
)

__all__ = [
    "EmbeddingCache",
    "EmbeddingCacheError",
    "InMemoryEmbeddingBackend",
    "PostgresEmbeddingBackend",
    "hash_text",
]
