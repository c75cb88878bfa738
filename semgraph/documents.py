"""
Document collaborator for semgraph.

The document store owns the persisted SemanticGraph; the pipeline only
hands it a finished graph. Storage format is opaque to the pipeline: a
persist call either succeeds or raises.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from semgraph.models import SemanticGraph, utc_now_iso

logger = logging.getLogger(__name__)


class DocumentNotFoundError(LookupError):
    """Persist target does not exist."""


@dataclass
class PersistRecord:
    """What the in-memory store keeps per document."""

    graph: dict
    actor_id: str
    reason: str
    persisted_at: str


class DocumentStore:
    """Interface of the document collaborator used by the pipeline."""

    async def persist_semantic_graph(
        self,
        document_id: str,
        graph: SemanticGraph,
        actor_id: str,
        reason: str,
    ) -> None:
        raise NotImplementedError


class InMemoryDocumentStore(DocumentStore):
    """
    Process-local document store.

    Concurrent persists for one document are not serialized: the last
    completed write wins.
    """

    def __init__(self, known_documents: Optional[list[str]] = None):
        """
        Args:
            known_documents: When given, persisting any other id raises
                DocumentNotFoundError. When None, every id is accepted.
        """
        self._known = set(known_documents) if known_documents is not None else None
        self._records: dict[str, PersistRecord] = {}
        self._lock = threading.Lock()

    async def persist_semantic_graph(
        self,
        document_id: str,
        graph: SemanticGraph,
        actor_id: str,
        reason: str,
    ) -> None:
        if self._known is not None and document_id not in self._known:
            raise DocumentNotFoundError(f"Document not found: {document_id}")

        record = PersistRecord(
            graph=graph.to_dict(),
            actor_id=actor_id,
            reason=reason,
            persisted_at=utc_now_iso(),
        )
        with self._lock:
            self._records[document_id] = record
        logger.info(
            f"Persisted SG for {document_id}: {len(graph.nodes)} nodes, "
            f"{len(graph.edges)} edges ({reason})"
        )

    def get(self, document_id: str) -> Optional[PersistRecord]:
        with self._lock:
            return self._records.get(document_id)


class PostgresDocumentStore(DocumentStore):
    """Writes the graph into the documents table's semantic_graph column."""

    async def persist_semantic_graph(
        self,
        document_id: str,
        graph: SemanticGraph,
        actor_id: str,
        reason: str,
    ) -> None:
        from psycopg.types.json import Jsonb

        from semgraph.db.postgres_async import get_async_connection

        async with get_async_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    UPDATE documents
                    SET semantic_graph = %s,
                        last_edited_by = %s,
                        last_edit_reason = %s,
                        updated_at = now()
                    WHERE id = %s
                    """,
                    (Jsonb(graph.to_dict()), actor_id, reason, document_id),
                )
                updated = cur.rowcount
            await conn.commit()

        if updated == 0:
            raise DocumentNotFoundError(f"Document not found: {document_id}")

        logger.info(
            f"Persisted SG for {document_id}: {len(graph.nodes)} nodes, "
            f"{len(graph.edges)} edges ({reason})"
        )
