"""
tiermem FastAPI Application

A REST API server for the tiermem memory lifecycle engine.
Provides endpoints for owners, ingestion, memory tiers, context assembly
and manual triggers of the background workflows.
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from tiermem.config import Config
from tiermem.models import CoreCategory, IngestionResult, InputType
from tiermem.services.memory_engine import MemoryEngine
from tiermem.utils.exceptions import NotFoundError, ValidationError
from tiermem.utils.logger import get_logger, setup_logging

# Global engine instance
engine: MemoryEngine | None = None
logger = get_logger(__name__)


# Pydantic models for API
class CreateOwnerRequest(BaseModel):
    """Request model for registering (or looking up) an owner."""

    external_id: str = Field(..., description="ID in the external auth system")
    name: str | None = None
    email: str | None = None


class IngestRequest(BaseModel):
    """Request model for ingesting raw input."""

    owner_id: str
    content: str = Field(..., description="Raw text to remember")
    thread_id: str | None = None
    input_type: InputType = InputType.MESSAGE


class ContextRequest(BaseModel):
    """Request model for assembling a context block."""

    owner_id: str
    thread_id: str | None = None
    query: str | None = Field(default=None, description="Text to rank long-term memories by")
    query_embedding: list[float] | None = Field(
        default=None, description="Precomputed query vector; takes precedence over query"
    )


class ReflectRequest(BaseModel):
    """Request model for a manual reflection run."""

    owner_id: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    engine_initialized: bool
    similarity_backend: str | None = None
    embedding_model: str | None = None


def _require_engine() -> MemoryEngine:
    if not engine:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine


def _http_error(e: Exception, action: str) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=e.message)
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail=e.message)
    logger.error(f"Error {action}", extra={"error": str(e), "error_type": type(e).__name__})
    return HTTPException(status_code=500, detail=str(e))


def _dump(records: list[BaseModel]) -> list[dict[str, Any]]:
    return [record.model_dump(mode="json", exclude={"embedding"}) for record in records]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    global engine

    # Load configuration from environment or use defaults
    config = Config.from_env()

    # Initialize logging with config
    setup_logging(
        level=config.logging.level,
        log_to_file=config.logging.log_to_file,
        log_dir=config.logging.log_dir,
        file_rotation=config.logging.file_rotation,
        file_retention=config.logging.file_retention,
        compression=config.logging.compression,
        serialize=config.logging.serialize,
    )

    logger.info("Starting tiermem server")

    engine = MemoryEngine.from_config(config)
    await engine.initialize()

    engine.start_scheduler(periodic=config.scheduler.enabled)
    await engine.resume_pending()

    logger.info("tiermem engine initialized")

    yield

    # Cleanup
    logger.info("Shutting down tiermem server")
    await engine.close()
    logger.info("Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title="tiermem API",
    description="Tiered memory lifecycle engine for conversational agents",
    version="1.0.0",
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


# Health check endpoint
@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    if not engine:
        return HealthResponse(status="initializing", engine_initialized=False)
    return HealthResponse(
        status="healthy",
        engine_initialized=True,
        similarity_backend=engine.config.similarity.backend,
        embedding_model=f"{engine.config.embedder.provider}/{engine.config.embedder.model}",
    )


# Owner endpoints
@app.post("/owners")
async def create_owner(request: CreateOwnerRequest):
    """Register an owner by external id, or return the existing one."""
    memory_engine = _require_engine()
    try:
        owner = await memory_engine.get_or_create_owner(
            request.external_id, name=request.name, email=request.email
        )
        return owner.model_dump(mode="json")
    except Exception as e:
        raise _http_error(e, "creating owner") from e


@app.post("/ingest", response_model=IngestionResult)
async def ingest(request: IngestRequest):
    """
    Ingest raw input.

    Input passing the attention gate is queued for background extraction;
    low-scoring input is stored as discarded; repeated input inside the
    duplicate window returns the earlier record.
    """
    memory_engine = _require_engine()
    try:
        return await memory_engine.ingest(
            request.content, request.owner_id, request.thread_id, request.input_type
        )
    except Exception as e:
        raise _http_error(e, "ingesting input") from e


# Memory tier endpoints
@app.get("/owners/{owner_id}/sensory")
async def list_sensory(owner_id: str):
    """Newest sensory records for an owner, including discarded ones."""
    memory_engine = _require_engine()
    try:
        return _dump(await memory_engine.list_recent_sensory(owner_id))
    except Exception as e:
        raise _http_error(e, "listing sensory records") from e


@app.get("/owners/{owner_id}/short-term")
async def list_short_term(owner_id: str):
    """Unexpired short-term memories, most important first."""
    memory_engine = _require_engine()
    try:
        return _dump(await memory_engine.list_short_term(owner_id))
    except Exception as e:
        raise _http_error(e, "listing short-term memories") from e


@app.get("/owners/{owner_id}/threads/{thread_id}/short-term")
async def list_thread_short_term(owner_id: str, thread_id: str):
    """Newest short-term memories of one owner in a conversation thread."""
    memory_engine = _require_engine()
    try:
        return _dump(await memory_engine.short_term_by_thread(owner_id, thread_id))
    except Exception as e:
        raise _http_error(e, "listing thread memories") from e


@app.get("/owners/{owner_id}/long-term")
async def list_long_term(owner_id: str):
    """Newest active long-term memories."""
    memory_engine = _require_engine()
    try:
        return _dump(await memory_engine.list_long_term(owner_id))
    except Exception as e:
        raise _http_error(e, "listing long-term memories") from e


@app.get("/owners/{owner_id}/core")
async def list_core(owner_id: str, category: CoreCategory | None = None):
    """Active core memories, optionally filtered by category."""
    memory_engine = _require_engine()
    try:
        return _dump(await memory_engine.list_core(owner_id, category))
    except Exception as e:
        raise _http_error(e, "listing core memories") from e


@app.delete("/owners/{owner_id}/core/{core_id}")
async def remove_core(owner_id: str, core_id: str):
    """Deactivate a core memory. Other owners' memories are reported as not found."""
    memory_engine = _require_engine()
    try:
        memory = await memory_engine.remove_core(owner_id, core_id)
        return {"id": memory.id, "removed": True}
    except Exception as e:
        raise _http_error(e, "removing core memory") from e


@app.get("/owners/{owner_id}/edges/{entity_name}")
async def get_edges(owner_id: str, entity_name: str):
    """Active fact-graph edges touching an entity."""
    memory_engine = _require_engine()
    try:
        connected = await memory_engine.get_connected(owner_id, entity_name)
        return {
            "outgoing": _dump(connected.outgoing),
            "incoming": _dump(connected.incoming),
        }
    except Exception as e:
        raise _http_error(e, "getting edges") from e


@app.get("/owners/{owner_id}/stats")
async def get_stats(owner_id: str):
    """Active long-term counts by type, plus the core memory count."""
    memory_engine = _require_engine()
    try:
        stats = await memory_engine.get_statistics(owner_id)
        return stats.model_dump()
    except Exception as e:
        raise _http_error(e, "getting stats") from e


# Retrieval endpoint
@app.post("/context")
async def assemble_context(request: ContextRequest):
    """
    Assemble a token-budgeted context block.

    With a query embedding or query text, long-term memories are ranked by
    similarity to it; without either, the newest long-term memories are used.
    """
    memory_engine = _require_engine()
    try:
        context = await memory_engine.assemble_context(
            request.owner_id, request.thread_id, request.query, request.query_embedding
        )
        return {
            "context": context.model_dump(mode="json"),
            "formatted": memory_engine.format_context(context),
        }
    except Exception as e:
        raise _http_error(e, "assembling context") from e


# Admin endpoints
@app.post("/admin/consolidate")
async def run_consolidation():
    """Run one consolidation pass now."""
    memory_engine = _require_engine()
    try:
        entry = await memory_engine.run_consolidation()
        return {"completed": entry is not None, "log": entry.model_dump(mode="json") if entry else None}
    except Exception as e:
        raise _http_error(e, "running consolidation") from e


@app.post("/admin/reflect")
async def run_reflection(request: ReflectRequest):
    """Run reflection for one owner, or every recently active owner."""
    memory_engine = _require_engine()
    try:
        runs = await memory_engine.run_reflection(request.owner_id)
        return {
            "completed": runs is not None,
            "runs": [run.model_dump() for run in runs or []],
        }
    except Exception as e:
        raise _http_error(e, "running reflection") from e


@app.post("/admin/prune")
async def run_pruning():
    """Run one pruning pass now."""
    memory_engine = _require_engine()
    try:
        entry = await memory_engine.run_pruning()
        return {"completed": entry is not None, "log": entry.model_dump(mode="json") if entry else None}
    except Exception as e:
        raise _http_error(e, "running pruning") from e


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "tiermem API",
        "version": "1.0.0",
        "description": "Tiered memory lifecycle engine for conversational agents",
        "docs": "/docs",
        "health": "/health",
    }
