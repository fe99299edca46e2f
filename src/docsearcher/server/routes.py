"""API route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..engine import MemoryEngine
from ..errors import SearchFailure
from ..search import search_memory
from .config import ServerConfig
from .models import HealthResponse, ProviderHealthResponse, SearchResponse

logger = logging.getLogger("docsearcher.server")

router = APIRouter(tags=["search"])


def get_engine(request: Request) -> MemoryEngine:
    """The engine composed during app startup."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return engine


def get_server_config(request: Request) -> ServerConfig:
    return request.app.state.config.server


@router.get("/search", response_model=SearchResponse)
async def search(
    query: str = Query(..., min_length=1, description="Free-text search query"),
    chat_id: str = Query(..., alias="chatId", min_length=1, description="Chat scope"),
    memory_name: Optional[str] = Query(default=None, alias="memoryName", description="Memory scope"),
    index: Optional[str] = Query(default=None, description="Index name (server default if omitted)"),
    limit: int = Query(default=-1, ge=-1, description="Max citations, -1 for no bound"),
    engine: MemoryEngine = Depends(get_engine),
    server: ServerConfig = Depends(get_server_config),
) -> SearchResponse:
    """Search memory scoped to a chat and, optionally, a named memory."""
    try:
        result = await search_memory(
            engine,
            index_name=index or server.index_name,
            query=query,
            relevance_threshold=server.relevance_threshold,
            chat_id=chat_id,
            memory_name=memory_name,
            result_count=limit,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except SearchFailure as e:
        logger.exception("Search failed")
        raise HTTPException(status_code=502, detail=str(e))

    return SearchResponse.from_result(result)


@router.get("/health", response_model=HealthResponse)
async def health(engine: MemoryEngine = Depends(get_engine)) -> HealthResponse:
    """Health check endpoint."""
    checks = await engine.health_check()
    providers = {
        name: ProviderHealthResponse(
            status=h.status.value,
            latency_ms=h.latency_ms,
            message=h.message,
        )
        for name, h in checks.items()
    }
    healthy = all(h.status == "healthy" for h in providers.values())
    return HealthResponse(status="ok" if healthy else "degraded", providers=providers)
