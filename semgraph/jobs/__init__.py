"""
Background bootstrap jobs for semgraph.

Provides:
- JobStore registry with monotonic, pollable job records
- BootstrapOrchestrator running the SG pipeline per job
"""

from .job_store import BootstrapJob, BootstrapStage, JobHandle, JobStore
from .bootstrap import BootstrapOrchestrator, BootstrapSettings, build_orchestrator

__all__ = [
    "BootstrapJob",
    "BootstrapStage",
    "JobHandle",
    "JobStore",
    "BootstrapOrchestrator",
    "BootstrapSettings",
    "build_orchestrator",
]
