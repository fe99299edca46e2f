"""Document searcher: tag-scoped semantic search over a document memory.

Storage, embedding and text-generation backends are selected at runtime
from configuration:

    from docsearcher import MemoryConfig, compose_engine, search_memory

    engine = compose_engine(MemoryConfig.from_file("appsettings.yaml"))
    async with engine:
        result = await search_memory(
            engine,
            index_name="docs",
            query="quarterly budget",
            relevance_threshold=0.5,
            chat_id="42",
        )
"""

__version__ = "0.1.0"

from .config import MemoryConfig, normalize_config_tree
from .composer import ServiceComposer, compose_engine
from .engine import MemoryEngine
from .errors import ConfigurationError, DocumentSearcherError, SearchFailure
from .filters import MemoryFilter, MemoryTags, build_search_filter
from .interfaces import Citation, MemoryAnswer, Partition, SearchResult
from .registry import BackendRegistry, BackendRole, default_registry
from .search import search_memory

__all__ = [
    "MemoryConfig",
    "normalize_config_tree",
    "ServiceComposer",
    "compose_engine",
    "MemoryEngine",
    "ConfigurationError",
    "DocumentSearcherError",
    "SearchFailure",
    "MemoryFilter",
    "MemoryTags",
    "build_search_filter",
    "Citation",
    "MemoryAnswer",
    "Partition",
    "SearchResult",
    "BackendRegistry",
    "BackendRole",
    "default_registry",
    "search_memory",
]
