"""
FastAPI app for the semgraph bootstrap service.

Run with:
    uvicorn --factory semgraph.api.main:create_app
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from semgraph import __version__
from semgraph.api import routes
from semgraph.config import config
from semgraph.jobs.bootstrap import BootstrapOrchestrator, build_orchestrator

logger = logging.getLogger(__name__)


def create_app(orchestrator: Optional[BootstrapOrchestrator] = None) -> FastAPI:
    """
    Build the API app.

    Args:
        orchestrator: Pre-wired orchestrator (tests); built from config if None
    """
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    use_postgres = orchestrator is None and config.STORAGE == "postgres"

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting semgraph API...")
        for problem in config.validate():
            logger.warning(f"Config: {problem}")
        if use_postgres:
            from semgraph.db.postgres_async import ensure_schema

            await ensure_schema()
        yield
        if use_postgres:
            from semgraph.db.postgres_async import close_async_pool

            await close_async_pool()
        logger.info("semgraph API stopped")

    app = FastAPI(title="semgraph", version=__version__, lifespan=lifespan)
    app.state.orchestrator = orchestrator or build_orchestrator()
    app.include_router(routes.router, prefix="/api/v1/sg", tags=["SG"])

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    return app

