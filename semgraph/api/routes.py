"""
SG (Semantic Graph) API routes.

Bootstrap jobs are started with POST and polled with GET; there is no push
channel. The ad-hoc embedding and build endpoints share the orchestrator's
collaborator.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from semgraph.api.models import BootstrapRequest, BuildRequest, EmbeddingsRequest
from semgraph.ingest.schemas import SchemaValidationError
from semgraph.jobs.bootstrap import BootstrapOrchestrator
from semgraph.llm.service import CollaboratorError

logger = logging.getLogger(__name__)

router = APIRouter()


def get_orchestrator(request: Request) -> BootstrapOrchestrator:
    return request.app.state.orchestrator


@router.post("/bootstrap", status_code=status.HTTP_202_ACCEPTED, summary="Start SG bootstrap job")
async def start_bootstrap(
    body: BootstrapRequest,
    x_actor_id: Optional[str] = Header(None),
    orchestrator: BootstrapOrchestrator = Depends(get_orchestrator),
):
    job_id = orchestrator.start_bootstrap_job(
        body.document_id,
        [b.to_block() for b in body.blocks],
        actor_id=x_actor_id,
        model=body.model,
    )
    return {"jobId": job_id}


@router.get("/bootstrap/{job_id}", summary="Get SG bootstrap job status")
async def get_bootstrap_status(
    job_id: str,
    orchestrator: BootstrapOrchestrator = Depends(get_orchestrator),
):
    job = orchestrator.get_job_status(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="job not found")
    return job.to_dict()


@router.post("/embeddings", summary="Compute embeddings for a batch of texts")
async def compute_embeddings(
    body: EmbeddingsRequest,
    orchestrator: BootstrapOrchestrator = Depends(get_orchestrator),
):
    if not body.texts:
        raise HTTPException(status_code=400, detail="texts is required")
    try:
        vectors = await orchestrator.service.embed_texts(body.texts, model=body.model)
    except CollaboratorError as e:
        logger.error(f"Embedding request failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return {"vectors": vectors}


@router.post("/build", summary="Build a SemanticGraph for a bounded block slice")
async def build_graph(
    body: BuildRequest,
    orchestrator: BootstrapOrchestrator = Depends(get_orchestrator),
):
    if not body.blocks:
        raise HTTPException(status_code=400, detail="blocks is required")
    try:
        graph = await orchestrator.build_graph([b.to_block() for b in body.blocks], model=body.model)
    except CollaboratorError as e:
        # An unconfigured collaborator is a no-op signal, not a server error
        if "API_KEY" in str(e):
            logger.warning(f"SG build skipped: {e}")
            return {"sg": None}
        logger.error(f"SG build failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    except SchemaValidationError as e:
        logger.error(f"SG build failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    return {"sg": graph.to_dict()}
