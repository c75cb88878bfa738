"""
Content-addressed node embedding cache for semgraph.

Rows are keyed by (doc_id, node_id, text_hash). A node is a hit only when a
stored row carries the sha256 of its current text, so an edited node is a
miss even though its id is unchanged. A new hash adds a row; superseded rows
are retained.

Usage:
    cache = EmbeddingCache(InMemoryEmbeddingBackend(), service)
    vectors = await cache.ensure_embeddings("doc-1", graph.nodes)
"""

import hashlib
import logging
import threading
from dataclasses import dataclass
from typing import Optional

import numpy as np

from semgraph.config import config
from semgraph.llm.service import AIService
from semgraph.models import SemanticNode

logger = logging.getLogger(__name__)


class EmbeddingCacheError(RuntimeError):
    """Embedding collaborator returned unusable output or storage failed."""


def hash_text(text: str) -> str:
    """SHA256 hex digest of a node's text."""
    return hashlib.sha256((text or "").encode("utf-8")).hexdigest()


@dataclass
class EmbeddingRow:
    """One cached vector."""

    doc_id: str
    node_id: str
    text_hash: str
    vector: list[float]

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.doc_id, self.node_id, self.text_hash)


@dataclass
class CacheStats:
    """Hit/miss counts for one ensure_embeddings call."""

    hits: int = 0
    misses: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 1.0


# =============================================================================
# Storage Backends
# =============================================================================


class EmbeddingBackend:
    """Storage interface for cached embedding rows."""

    async def fetch_rows(self, doc_id: str, node_ids: list[str]) -> list[EmbeddingRow]:
        raise NotImplementedError

    async def upsert_rows(self, rows: list[EmbeddingRow]) -> None:
        raise NotImplementedError


class InMemoryEmbeddingBackend(EmbeddingBackend):
    """Process-local backend. Shared across jobs; last write wins per key."""

    def __init__(self):
        self._rows: dict[tuple[str, str, str], EmbeddingRow] = {}
        self._lock = threading.Lock()

    async def fetch_rows(self, doc_id: str, node_ids: list[str]) -> list[EmbeddingRow]:
        wanted = set(node_ids)
        with self._lock:
            return [
                r for (d, n, _), r in self._rows.items()
                if d == doc_id and n in wanted
            ]

    async def upsert_rows(self, rows: list[EmbeddingRow]) -> None:
        with self._lock:
            for row in rows:
                self._rows[row.key] = row

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)


class PostgresEmbeddingBackend(EmbeddingBackend):
    """pgvector-backed rows in sg_node_embeddings."""

    async def fetch_rows(self, doc_id: str, node_ids: list[str]) -> list[EmbeddingRow]:
        from semgraph.db.postgres_async import get_async_connection

        if not node_ids:
            return []

        async with get_async_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    SELECT node_id, text_hash, vector
                    FROM sg_node_embeddings
                    WHERE doc_id = %s AND node_id = ANY(%s)
                    """,
                    (doc_id, list(node_ids)),
                )
                rows = await cur.fetchall()

        return [
            EmbeddingRow(
                doc_id=doc_id,
                node_id=row["node_id"],
                text_hash=row["text_hash"],
                vector=np.asarray(row["vector"], dtype=np.float32).tolist(),
            )
            for row in rows
            if row.get("vector") is not None
        ]

    async def upsert_rows(self, rows: list[EmbeddingRow]) -> None:
        from semgraph.db.postgres_async import get_async_connection

        if not rows:
            return

        params = [
            (r.doc_id, r.node_id, r.text_hash, np.asarray(r.vector, dtype=np.float32))
            for r in rows
        ]
        async with get_async_connection() as conn:
            async with conn.cursor() as cur:
                await cur.executemany(
                    """
                    INSERT INTO sg_node_embeddings (doc_id, node_id, text_hash, vector)
                    VALUES (%s, %s, %s, %s)
                    ON CONFLICT (doc_id, node_id, text_hash)
                    DO UPDATE SET vector = EXCLUDED.vector
                    """,
                    params,
                )
            await conn.commit()


# =============================================================================
# Cache
# =============================================================================


class EmbeddingCache:
    """
    Fill missing or stale node embeddings, reuse everything else.

    Usage:
        cache = EmbeddingCache(backend, service)
        vectors, stats = await cache.ensure_embeddings_with_stats(doc_id, nodes)
        print(stats.hit_rate)
    """

    def __init__(
        self,
        backend: EmbeddingBackend,
        service: AIService,
        fetch_batch_size: Optional[int] = None,
    ):
        """
        Initialize cache.

        Args:
            backend: Row storage
            service: Embedding collaborator
            fetch_batch_size: Max node ids per lookup query (defaults to config)
        """
        self.backend = backend
        self.service = service
        self.fetch_batch_size = fetch_batch_size or config.EMBEDDING_FETCH_BATCH

    async def _fetch_existing(self, doc_id: str, node_ids: list[str]) -> list[EmbeddingRow]:
        out = []
        for i in range(0, len(node_ids), self.fetch_batch_size):
            batch = node_ids[i:i + self.fetch_batch_size]
            try:
                out.extend(await self.backend.fetch_rows(doc_id, batch))
            except Exception as e:
                raise EmbeddingCacheError(f"Failed to load SG embeddings: {e}") from e
        return out

    async def ensure_embeddings(
        self,
        doc_id: str,
        nodes: list[SemanticNode],
        model: Optional[str] = None,
    ) -> list[list[float]]:
        """Return one vector per node, in input order."""
        vectors, _ = await self.ensure_embeddings_with_stats(doc_id, nodes, model=model)
        return vectors

    async def ensure_embeddings_with_stats(
        self,
        doc_id: str,
        nodes: list[SemanticNode],
        model: Optional[str] = None,
    ) -> tuple[list[list[float]], CacheStats]:
        """
        Return one vector per node, in input order, plus this call's hit/miss counts.

        Misses (never seen, or text changed) are embedded with exactly one
        collaborator call and upserted; hits come from the backend.

        Args:
            doc_id: Document the nodes belong to
            nodes: Nodes to embed
            model: Optional embedding model override

        Returns:
            (vectors aligned with `nodes`, CacheStats)
        """
        if not nodes:
            return [], CacheStats()

        wanted = [(n.id, hash_text(n.text)) for n in nodes]
        node_ids = list(dict.fromkeys(node_id for node_id, _ in wanted))

        existing = await self._fetch_existing(doc_id, node_ids)
        vectors_by_key: dict[tuple[str, str], list[float]] = {
            (r.node_id, r.text_hash): r.vector for r in existing
        }

        missing: dict[tuple[str, str], str] = {}
        hits = 0
        for node, key in zip(nodes, wanted):
            if key in vectors_by_key:
                hits += 1
            elif key not in missing:
                missing[key] = node.text

        if missing:
            texts = list(missing.values())
            vectors = await self.service.embed_texts(texts, model=model)
            if len(vectors) != len(texts):
                raise EmbeddingCacheError(
                    f"Embedding service returned {len(vectors)} vectors for {len(texts)} texts"
                )

            rows = [
                EmbeddingRow(doc_id=doc_id, node_id=node_id, text_hash=text_hash, vector=list(vec))
                for (node_id, text_hash), vec in zip(missing.keys(), vectors)
            ]
            try:
                await self.backend.upsert_rows(rows)
            except Exception as e:
                raise EmbeddingCacheError(f"Failed to store SG embeddings: {e}") from e

            for row in rows:
                vectors_by_key[(row.node_id, row.text_hash)] = row.vector

        stats = CacheStats(hits=hits, misses=len(nodes) - hits)
        logger.info(
            f"Embeddings for {doc_id}: {stats.hits} cached, "
            f"{len(missing)} computed"
        )

        return [vectors_by_key[key] for key in wanted], stats
