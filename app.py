"""
Lattice FastAPI Application

A REST API server for the Lattice sync engine.
Provides endpoints for triggering syncs and searching the knowledge graph.
"""

import asyncio
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from lattice.config import Config
from lattice.core.factory import SyncServiceFactory
from lattice.models import SearchHit, SyncOptions, SyncResult
from lattice.services.sync_service import SyncService
from lattice.utils.exceptions import ConfigurationError
from lattice.utils.logger import get_logger, setup_logging

# Global service instance
service: SyncService | None = None
# Syncs are single-writer
sync_lock = asyncio.Lock()
app_config: Config | None = None
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service_initialized: bool
    graph_backend: str | None = None
    hash_index: str | None = None
    embedder: str | None = None
    docs_path: str | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    global service, app_config

    config = Config.from_env_or_yaml(os.getenv("LATTICE_CONFIG", "config.yaml"))
    app_config = config

    setup_logging(
        level=config.logging.level,
        log_to_file=config.logging.log_to_file,
        log_dir=config.logging.log_dir,
        file_rotation=config.logging.file_rotation,
        file_retention=config.logging.file_retention,
        compression=config.logging.compression,
        serialize=config.logging.serialize,
    )

    logger.info("Starting Lattice server")
    logger.info(
        f"Configuration: Docs={config.docs.path}, Graph={config.graph_backend}, "
        f"Embedder={config.embedder.provider}/{config.embedder.model}, LLM={config.llm.provider}/{config.llm.model}"
    )

    with_extractor = config.llm.provider == "ollama" or bool(config.llm.api_key)
    service = await SyncServiceFactory.create(config, with_extractor=with_extractor)
    logger.info("Lattice sync service initialized")

    yield

    logger.info("Shutting down Lattice server")
    await service.close()
    service = None
    logger.info("Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title="Lattice API",
    description="Incremental markdown to knowledge graph sync",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    if not service or not app_config:
        return HealthResponse(status="initializing", service_initialized=False)

    return HealthResponse(
        status="healthy",
        service_initialized=True,
        graph_backend=app_config.graph_backend,
        hash_index=app_config.sync.hash_index,
        embedder=f"{app_config.embedder.model} ({app_config.embedder.provider})",
        docs_path=app_config.docs.path,
    )


@app.post("/sync", response_model=SyncResult)
async def run_sync(options: SyncOptions | None = None):
    """
    Run one incremental sync pass over the docs tree.

    Document-level failures are reported in the result's errors list rather
    than as an HTTP error. Requests are serialized.
    """
    if not service:
        raise HTTPException(status_code=503, detail="Service not initialized")

    options = options or SyncOptions()
    if options.ai_extraction and service.extractor is None:
        raise HTTPException(status_code=400, detail="AI extraction is not configured")

    async with sync_lock:
        return await service.sync(options)


@app.get("/search", response_model=list[SearchHit])
async def search(
    q: str = Query(..., min_length=1, description="Search text"),
    k: int = Query(default=10, ge=1, le=100, description="Max results"),
):
    """Semantic search over documents and entities."""
    if not service:
        raise HTTPException(status_code=503, detail="Service not initialized")

    try:
        return await service.search(q, k)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Error searching: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e
