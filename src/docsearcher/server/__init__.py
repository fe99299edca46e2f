"""HTTP server for document-searcher."""

from .app import create_app, run_server
from .config import DocumentSearcherConfig, ServerConfig

__all__ = ["create_app", "run_server", "DocumentSearcherConfig", "ServerConfig"]
