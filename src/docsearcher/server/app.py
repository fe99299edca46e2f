"""FastAPI application for the document-searcher service."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from .. import __version__
from ..composer import compose_engine
from ..engine import MemoryEngine
from .config import DocumentSearcherConfig
from .routes import router

logger = logging.getLogger("docsearcher.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Compose the engine once before serving, stop it on shutdown.

    A ``ConfigurationError`` here aborts startup.
    """
    config: DocumentSearcherConfig = app.state.config

    engine: Optional[MemoryEngine] = app.state.engine
    if engine is None:
        engine = compose_engine(config.memory)
    await engine.start()
    app.state.engine = engine

    logger.info(
        f"Serving searches on index '{config.server.index_name}' "
        f"(relevance threshold: {config.server.relevance_threshold})"
    )

    yield

    logger.info("Shutting down document-searcher service")
    await engine.stop()
    app.state.engine = None


def create_app(
    config: Optional[DocumentSearcherConfig] = None,
    engine: Optional[MemoryEngine] = None,
) -> FastAPI:
    """Create FastAPI application.

    Args:
        config: Service configuration. If None, loads from environment.
        engine: Pre-composed engine; composed from ``config`` at startup if None.

    Returns:
        Configured FastAPI application.
    """
    if config is None:
        config = DocumentSearcherConfig.from_env()

    app = FastAPI(
        title="Document Searcher",
        description="Tag-scoped semantic search over document memory",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.engine = engine

    app.include_router(router)

    @app.get("/")
    async def root():
        return {
            "service": "document-searcher",
            "version": __version__,
            "docs": "/docs",
        }

    return app


def run_server(
    config: Optional[DocumentSearcherConfig] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
    log_level: str = "info",
):
    """Run the HTTP server.

    Args:
        config: Service configuration. If None, loads from environment.
        host: Override host from config.
        port: Override port from config.
        log_level: Logging level.
    """
    if config is None:
        config = DocumentSearcherConfig.from_env()

    app = create_app(config)

    uvicorn.run(
        app,
        host=host or config.server.host,
        port=port or config.server.port,
        log_level=log_level,
    )
