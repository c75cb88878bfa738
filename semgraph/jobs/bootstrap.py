"""
SG bootstrap job orchestrator for semgraph.

Orchestrates: chunking → per-chunk extraction → canonicalization →
embedding cache → persistence, as one background asyncio task per job.
Progress is pollable through the JobStore; nothing is pushed to clients.

Within a job, chunks are processed sequentially. Distinct jobs run
concurrently and share only the JobStore and the embedding backend.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from semgraph.config import config
from semgraph.documents import DocumentStore
from semgraph.embeddings.store import EmbeddingCache
from semgraph.ingest.canonicalizer import GraphCanonicalizer
from semgraph.ingest.chunk_extractor import ChunkGraphExtractor
from semgraph.ingest.chunking import chunk_blocks
from semgraph.jobs.job_store import BootstrapJob, BootstrapStage, JobHandle, JobStore
from semgraph.llm.service import AIService
from semgraph.models import Block, SemanticEdge, SemanticGraph, SemanticNode

logger = logging.getLogger(__name__)

PERSIST_REASON = "SG bootstrap"


@dataclass
class BootstrapSettings:
    """Chunking parameters for a bootstrap run."""

    target_tokens: int = field(default_factory=lambda: config.CHUNK_TARGET_TOKENS)
    overlap_tokens: int = field(default_factory=lambda: config.CHUNK_OVERLAP_TOKENS)
    block_overhead: int = field(default_factory=lambda: config.BLOCK_OVERHEAD_TOKENS)


class BootstrapOrchestrator:
    """
    Start and track SG bootstrap jobs.

    Usage:
        orchestrator = BootstrapOrchestrator(service, cache, documents)
        job_id = orchestrator.start_bootstrap_job("doc-1", blocks)
        status = orchestrator.get_job_status(job_id)
    """

    def __init__(
        self,
        service: AIService,
        embedding_cache: EmbeddingCache,
        documents: DocumentStore,
        job_store: Optional[JobStore] = None,
        settings: Optional[BootstrapSettings] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            service: Extraction collaborator
            embedding_cache: Node embedding cache
            documents: Document collaborator that stores the final graph
            job_store: Job registry (a fresh one if None)
            settings: Chunking parameters (config defaults if None)
        """
        self.service = service
        self.embedding_cache = embedding_cache
        self.documents = documents
        self.job_store = job_store or JobStore()
        self.settings = settings or BootstrapSettings()
        self.extractor = ChunkGraphExtractor(service)
        self.canonicalizer = GraphCanonicalizer(service)
        self._tasks: dict[str, asyncio.Task] = {}

    def start_bootstrap_job(
        self,
        document_id: str,
        blocks: list[Block],
        actor_id: Optional[str] = None,
        model: Optional[str] = None,
    ) -> str:
        """
        Register a job and launch its background task. Returns immediately.

        Must be called from a running event loop.

        Args:
            document_id: Document being bootstrapped
            blocks: Ordered content blocks (not mutated)
            actor_id: Actor recorded on persistence (defaults to SG_ACTOR_ID)
            model: Optional extraction model override

        Returns:
            The new job id
        """
        blocks = list(blocks)
        handle = self.job_store.create(document_id, total_blocks=len(blocks))

        task = asyncio.get_running_loop().create_task(
            self._run(handle, document_id, blocks, actor_id or config.ACTOR_ID, model),
            name=f"sg-bootstrap-{handle.job_id}",
        )
        self._tasks[handle.job_id] = task
        task.add_done_callback(lambda _t, job_id=handle.job_id: self._tasks.pop(job_id, None))

        return handle.job_id

    def get_job_status(self, job_id: str) -> Optional[BootstrapJob]:
        """Current snapshot of a job, or None if unknown. Never blocks."""
        return self.job_store.get(job_id)

    async def wait_for_job(self, job_id: str) -> Optional[BootstrapJob]:
        """Wait for a job's background task to finish and return its final status."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return self.job_store.get(job_id)

    @property
    def running_jobs(self) -> list[str]:
        return list(self._tasks)

    async def build_graph(
        self,
        blocks: list[Block],
        model: Optional[str] = None,
        chunk_id: str = "build:c0",
    ) -> SemanticGraph:
        """
        Synchronous single-chunk build for a bounded block slice.

        Extracts and canonicalizes without chunking, caching or persisting.
        """
        mini = await self.extractor.extract_mini_graph(chunk_id, blocks, model=model)
        return await self.canonicalizer.canonicalize(mini.nodes, mini.edges, model=model)

    async def _run(
        self,
        handle: JobHandle,
        document_id: str,
        blocks: list[Block],
        actor_id: str,
        model: Optional[str],
    ) -> None:
        """Background pipeline for one job. Records failures; never raises."""
        job_id = handle.job_id
        try:
            # Stage 1: per-chunk extraction
            chunks = chunk_blocks(
                blocks,
                target_tokens=self.settings.target_tokens,
                overlap_tokens=self.settings.overlap_tokens,
                block_overhead=self.settings.block_overhead,
                chunk_prefix=f"{document_id}:c",
            )
            logger.info(f"Job {job_id}: {len(blocks)} blocks -> {len(chunks)} chunks")

            mini_nodes: list[SemanticNode] = []
            mini_edges: list[SemanticEdge] = []
            for chunk in chunks:
                mini = await self.extractor.extract_mini_graph(chunk.chunk_id, chunk.blocks, model=model)
                mini_nodes.extend(mini.nodes)
                mini_edges.extend(mini.edges)
                handle.progress(
                    done_blocks=chunk.end,
                    node_count=len(mini_nodes),
                    edge_count=len(mini_edges),
                )
                logger.info(
                    f"Job {job_id}: chunk {chunk.chunk_id} [{chunk.start},{chunk.end}) "
                    f"-> {len(mini.nodes)} nodes, {len(mini.edges)} edges"
                )

            # Stage 2: global canonicalization
            handle.advance(BootstrapStage.EDGES)
            graph = await self.canonicalizer.canonicalize(mini_nodes, mini_edges, model=model)
            handle.progress(node_count=len(graph.nodes), edge_count=len(graph.edges))

            # Stage 3: embeddings + persistence
            handle.advance(BootstrapStage.PERSIST)
            _, stats = await self.embedding_cache.ensure_embeddings_with_stats(document_id, graph.nodes)
            logger.info(f"Job {job_id}: embedding cache hit rate {stats.hit_rate:.0%}")
            await self.documents.persist_semantic_graph(
                document_id, graph, actor_id=actor_id, reason=PERSIST_REASON
            )

            handle.progress(done_blocks=len(blocks))
            handle.advance(BootstrapStage.DONE)
            logger.info(
                f"Job {job_id} done: {len(graph.nodes)} nodes, {len(graph.edges)} edges"
            )

        except Exception as e:
            message = str(e) or f"SG bootstrap failed ({type(e).__name__})"
            logger.error(f"Job {job_id} failed: {message}")
            handle.fail(message)


def build_orchestrator(
    service: Optional[AIService] = None,
    storage: Optional[str] = None,
) -> BootstrapOrchestrator:
    """
    Wire an orchestrator from configuration.

    Args:
        service: Collaborator (SG_PROVIDER default if None)
        storage: "memory" or "postgres" (SG_STORAGE default if None)
    """
    from semgraph.documents import InMemoryDocumentStore, PostgresDocumentStore
    from semgraph.embeddings.store import InMemoryEmbeddingBackend, PostgresEmbeddingBackend
    from semgraph.llm.service import get_ai_service

    service = service or get_ai_service()
    storage = (storage or config.STORAGE).lower()

    if storage == "postgres":
        backend = PostgresEmbeddingBackend()
        documents = PostgresDocumentStore()
    elif storage == "memory":
        backend = InMemoryEmbeddingBackend()
        documents = InMemoryDocumentStore()
    else:
        raise ValueError(f"Unknown SG storage: {storage}")

    logger.info(f"Bootstrap orchestrator using {storage} storage")
    return BootstrapOrchestrator(
        service=service,
        embedding_cache=EmbeddingCache(backend, service),
        documents=documents,
    )
