"""
In-memory bootstrap job registry for semgraph.

Records live in a lock-guarded dict owned by a JobStore instance (no
module-level state). Readers get immutable snapshots. The only way to
change a record is through the JobHandle returned by JobStore.create(),
which the orchestrator hands to the job's own background task.

Stage order: nodes -> edges -> persist -> done. error is reachable from any
non-terminal stage; done and error are terminal.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from semgraph.models import utc_now_iso

logger = logging.getLogger(__name__)


class BootstrapStage(str, Enum):
    """Stage of a bootstrap job."""

    NODES = "nodes"
    EDGES = "edges"
    PERSIST = "persist"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (BootstrapStage.DONE, BootstrapStage.ERROR)

    @property
    def rank(self) -> int:
        return _STAGE_RANK[self]


_STAGE_RANK = {
    BootstrapStage.NODES: 0,
    BootstrapStage.EDGES: 1,
    BootstrapStage.PERSIST: 2,
    BootstrapStage.DONE: 3,
    BootstrapStage.ERROR: 3,
}


class InvalidTransitionError(RuntimeError):
    """A job update would regress its stage or leave a terminal stage."""


@dataclass(frozen=True)
class BootstrapJob:
    """Snapshot of one bootstrap job."""

    job_id: str
    document_id: str
    stage: BootstrapStage
    done_blocks: int
    total_blocks: int
    started_at: str
    updated_at: str
    node_count: Optional[int] = None
    edge_count: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        """camelCase wire shape; unset optional fields are omitted."""
        out = {
            "jobId": self.job_id,
            "documentId": self.document_id,
            "stage": self.stage.value,
            "doneBlocks": self.done_blocks,
            "totalBlocks": self.total_blocks,
            "startedAt": self.started_at,
            "updatedAt": self.updated_at,
        }
        if self.node_count is not None:
            out["nodeCount"] = self.node_count
        if self.edge_count is not None:
            out["edgeCount"] = self.edge_count
        if self.error is not None:
            out["error"] = self.error
        return out


class JobHandle:
    """
    Write access to a single job record.

    Usage:
        handle = store.create("doc-1", total_blocks=12)
        handle.progress(done_blocks=5, node_count=8, edge_count=3)
        handle.advance(BootstrapStage.EDGES)
    """

    def __init__(self, store: "JobStore", job_id: str):
        self._store = store
        self.job_id = job_id

    @property
    def snapshot(self) -> BootstrapJob:
        job = self._store.get(self.job_id)
        if job is None:
            raise KeyError(f"Unknown bootstrap job: {self.job_id}")
        return job

    def advance(self, stage: BootstrapStage) -> BootstrapJob:
        """Move to a later stage. Same-stage calls only refresh updatedAt."""

        def apply(job: BootstrapJob) -> BootstrapJob:
            if job.stage.is_terminal:
                raise InvalidTransitionError(
                    f"Job {job.job_id} is {job.stage.value}; cannot move to {stage.value}"
                )
            if stage.rank < job.stage.rank:
                raise InvalidTransitionError(
                    f"Job {job.job_id} cannot regress from {job.stage.value} to {stage.value}"
                )
            return replace(job, stage=stage)

        return self._store._update(self.job_id, apply)

    def progress(
        self,
        done_blocks: Optional[int] = None,
        node_count: Optional[int] = None,
        edge_count: Optional[int] = None,
    ) -> BootstrapJob:
        """Update counters. done_blocks never decreases and never exceeds total."""

        def apply(job: BootstrapJob) -> BootstrapJob:
            if job.stage.is_terminal:
                raise InvalidTransitionError(f"Job {job.job_id} is {job.stage.value}")
            changes = {}
            if done_blocks is not None:
                changes["done_blocks"] = max(job.done_blocks, min(job.total_blocks, done_blocks))
            if node_count is not None:
                changes["node_count"] = node_count
            if edge_count is not None:
                changes["edge_count"] = edge_count
            return replace(job, **changes)

        return self._store._update(self.job_id, apply)

    def fail(self, message: str) -> BootstrapJob:
        """Mark the job as errored. No-op on an already terminal job."""

        def apply(job: BootstrapJob) -> BootstrapJob:
            if job.stage.is_terminal:
                return job
            return replace(job, stage=BootstrapStage.ERROR, error=message)

        return self._store._update(self.job_id, apply)


class JobStore:
    """
    Registry of bootstrap jobs.

    Safe for concurrent insert/read/update; a record is only ever written
    through its own JobHandle. Records are kept until the process exits.
    """

    def __init__(self):
        self._jobs: dict[str, BootstrapJob] = {}
        self._lock = threading.Lock()

    def create(self, document_id: str, total_blocks: int) -> JobHandle:
        """Register a new job in stage `nodes` and return its handle."""
        now = utc_now_iso()
        job = BootstrapJob(
            job_id=str(uuid.uuid4()),
            document_id=document_id,
            stage=BootstrapStage.NODES,
            done_blocks=0,
            total_blocks=total_blocks,
            started_at=now,
            updated_at=now,
        )
        with self._lock:
            self._jobs[job.job_id] = job
        logger.info(f"Created bootstrap job {job.job_id} for {document_id} ({total_blocks} blocks)")
        return JobHandle(self, job.job_id)

    def get(self, job_id: str) -> Optional[BootstrapJob]:
        """Pure read; None when the job is unknown."""
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self, document_id: Optional[str] = None) -> list[BootstrapJob]:
        """All jobs, newest first, optionally for one document."""
        with self._lock:
            jobs = list(self._jobs.values())
        if document_id is not None:
            jobs = [j for j in jobs if j.document_id == document_id]
        jobs.sort(key=lambda j: j.started_at, reverse=True)
        return jobs

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def _update(self, job_id: str, apply) -> BootstrapJob:
        with self._lock:
            current = self._jobs[job_id]
            updated = replace(apply(current), updated_at=utc_now_iso())
            self._jobs[job_id] = updated
            return updated
