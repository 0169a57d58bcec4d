"""
contextindex FastAPI Application

A REST API server for the contextindex engine.
Provides endpoints for indexing messages and files, gathering context,
and searching across local and connected sources.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from contextindex.config import Config
from contextindex.models import (
    ContentMatch,
    ContentType,
    ConversationSummary,
    FileIndexingResult,
    IndexingResult,
    Message,
    RelevantContext,
    SearchFilters,
    UnifiedSearchResponse,
)
from contextindex.services.context_engine import ContextEngine
from contextindex.services.retrieval import format_context_for_ai
from contextindex.utils.exceptions import PersistenceError, ValidationError
from contextindex.utils.logger import get_logger, setup_logging_from_config

# Global engine instance
engine: ContextEngine | None = None
logger = get_logger(__name__)


# Pydantic models for API
class IndexMessageResponse(BaseModel):
    """Response model for a queued or completed message index."""

    message_id: str
    status: str  # "queued" or "indexed"
    result: IndexingResult | None = None


class BatchIndexRequest(BaseModel):
    """Request model for indexing many messages."""

    messages: list[Message] = Field(..., min_length=1, max_length=500)


class IndexFileRequest(BaseModel):
    """Request model for indexing a file's extracted text."""

    file_id: str = Field(..., min_length=1)
    user_id: str
    filename: str
    content: str
    file_type: str = "text/plain"
    project_id: str | None = None


class ContextRequest(BaseModel):
    """Request model for gathering context."""

    text: str = Field(..., description="Incoming request text")
    user_id: str = Field(..., min_length=1)
    project_id: str | None = None


class ContextResponse(BaseModel):
    """Gathered context and its prompt rendering."""

    context: RelevantContext
    formatted: str


class SemanticSearchRequest(BaseModel):
    """Request model for direct semantic search."""

    query: str
    user_id: str
    project_id: str | None = None
    content_types: list[ContentType] | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: int = Field(default=20, ge=1, le=100)
    threshold: float = Field(default=0.7, ge=0.0, le=1.0)


class SemanticSearchResponse(BaseModel):
    """Semantic search results."""

    success: bool = True
    query: str
    results: list[ContentMatch]
    count: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    engine_initialized: bool
    worker_running: bool
    pending_messages: int
    embedding_model: str
    vector_store: str


def _require_engine() -> ContextEngine:
    if not engine:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine


def _consume_result(future: asyncio.Future) -> None:
    # Queued callers never await the future; the worker has already logged failures
    if not future.cancelled():
        future.exception()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    global engine

    # Load configuration from environment or use defaults
    config = Config.from_env()

    # Initialize logging with config
    setup_logging_from_config(config.logging)

    logger.info("Starting contextindex server")
    logger.info(
        f"Configuration: Embedder={config.embedder.provider}/{config.embedder.model}, "
        f"Qdrant={config.qdrant.url}/{config.qdrant.collection_name}"
    )

    engine = await ContextEngine.from_config(config)
    await engine.initialize()
    logger.info("contextindex engine initialized")

    yield

    # Cleanup
    logger.info("Shutting down contextindex server")
    await engine.close()
    engine = None
    logger.info("Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title="contextindex API",
    description="Indexing, context retrieval and unified search for conversational content",
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


# Health check endpoint
@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    if not engine:
        return HealthResponse(
            status="initializing",
            engine_initialized=False,
            worker_running=False,
            pending_messages=0,
            embedding_model="",
            vector_store="",
        )
    return HealthResponse(
        status="healthy",
        engine_initialized=True,
        worker_running=engine.worker.running,
        pending_messages=engine.worker.pending,
        embedding_model=f"{engine.config.embedder.provider}/{engine.config.embedder.model}",
        vector_store=f"Qdrant ({engine.config.qdrant.url})",
    )


# Indexing endpoints
@app.post("/messages/index", response_model=IndexMessageResponse)
async def index_message(message: Message, wait: bool = Query(default=False)):
    """
    Index a message.

    By default the message is queued for the background worker and the
    call returns immediately. With wait=true the message is indexed inline
    and the IndexingResult is returned.
    """
    current = _require_engine()

    if not message.content.strip():
        raise HTTPException(status_code=400, detail="Message content cannot be empty")

    try:
        if wait:
            result = await current.coordinator.index_message(message)
            return IndexMessageResponse(message_id=message.id, status="indexed", result=result)

        if not current.worker.running:
            raise HTTPException(status_code=503, detail="Indexing worker not running")

        future = await current.worker.submit(message)
        future.add_done_callback(_consume_result)
        return IndexMessageResponse(message_id=message.id, status="queued")
    except HTTPException:
        raise
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    except Exception as e:
        logger.bind(message_id=message.id).error(f"Error indexing message: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.post("/messages/index/batch", response_model=list[IndexingResult])
async def index_messages_batch(request: BatchIndexRequest):
    """
    Index many messages with bounded concurrency.

    Returns one result per message in request order.
    """
    current = _require_engine()

    try:
        return await current.coordinator.batch_index_messages(request.messages)
    except Exception as e:
        logger.error(f"Error batch indexing messages: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.post("/files/index", response_model=FileIndexingResult)
async def index_file(request: IndexFileRequest):
    """Chunk, embed and store a file's extracted text."""
    current = _require_engine()

    try:
        return await current.coordinator.index_file(
            file_id=request.file_id,
            user_id=request.user_id,
            filename=request.filename,
            content=request.content,
            file_type=request.file_type,
            project_id=request.project_id,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    except Exception as e:
        logger.bind(file_id=request.file_id).error(f"Error indexing file: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e


# Retrieval endpoints
@app.post("/context", response_model=ContextResponse)
async def gather_context(request: ContextRequest):
    """
    Gather prior content relevant to a new request.

    Returns the structured context plus a rendering suitable for a
    system prompt. Backend failures degrade to an empty context.
    """
    current = _require_engine()

    context = await current.retrieval.gather_relevant_context(
        request.text, request.user_id, request.project_id
    )
    return ContextResponse(context=context, formatted=format_context_for_ai(context))


@app.get("/search/unified", response_model=UnifiedSearchResponse)
async def unified_search(
    q: str = Query(..., description="Search query"),
    user_id: str = Query(..., min_length=1),
    project_id: str | None = Query(default=None, description="Restrict local results to a project"),
    sources: str | None = Query(default=None, description="Comma-separated source names"),
    limit: int = Query(default=10, ge=1, le=100, description="Max results per source"),
    min_similarity: float | None = Query(default=None, ge=0.0, le=1.0),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
):
    """
    Search local content and connected sources (Gmail, Drive).

    Sources without a valid access token are skipped and reported with
    a zero count in the breakdown.
    """
    current = _require_engine()

    source_names = [s.strip() for s in sources.split(",") if s.strip()] if sources else None
    filters = SearchFilters(
        limit=limit,
        min_similarity=min_similarity,
        start_date=start_date,
        end_date=end_date,
        project_id=project_id,
    )

    try:
        return await current.search.search(q, user_id, sources=source_names, filters=filters)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    except Exception as e:
        logger.bind(user_id=user_id).error(f"Error in unified search: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.post("/search/semantic", response_model=SemanticSearchResponse)
async def semantic_search(request: SemanticSearchRequest):
    """Search indexed content by similarity with optional type and date filters."""
    current = _require_engine()

    try:
        results = await current.retrieval.semantic_search(
            request.query,
            request.user_id,
            project_id=request.project_id,
            content_types=request.content_types,
            start_date=request.start_date,
            end_date=request.end_date,
            limit=request.limit,
            threshold=request.threshold,
        )
        return SemanticSearchResponse(query=request.query, results=results, count=len(results))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    except Exception as e:
        logger.bind(user_id=request.user_id).error(f"Error in semantic search: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e


# Statistics endpoints
@app.get("/cache/stats")
async def cache_stats() -> dict[str, Any]:
    """Embedding cache counters, hit rate and estimated savings."""
    current = _require_engine()

    stats = current.embedding_service.cache_stats()
    if stats is None:
        return {"enabled": False}
    return {
        "enabled": True,
        **stats.model_dump(),
        "total_requests": stats.total_requests,
        "hit_rate": round(stats.hit_rate, 2),
        "cost_saved": stats.cost_saved,
    }


@app.get("/conversations/{conversation_id}/summary", response_model=ConversationSummary)
async def get_conversation_summary(conversation_id: str):
    """Rolling summary of what the user has said in a conversation."""
    current = _require_engine()

    try:
        summary = await current.get_conversation_summary(conversation_id)
    except PersistenceError as e:
        logger.bind(conversation_id=conversation_id).error(f"Error reading summary: {e}")
        raise HTTPException(status_code=500, detail=e.message) from e

    if summary is None:
        raise HTTPException(status_code=404, detail=f"No summary for {conversation_id}")
    return summary


@app.get("/stats")
async def get_statistics(user_id: str | None = Query(default=None)) -> dict[str, Any]:
    """Content counts per corpus, indexing counters and cache stats."""
    current = _require_engine()

    try:
        return await current.get_statistics(user_id)
    except Exception as e:
        logger.error(f"Error getting statistics: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e
