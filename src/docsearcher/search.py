"""Chat-scoped search over a composed memory engine.

``search_memory`` shapes the request (index, query, tag filter, relevance
threshold, result bound), runs it against the engine and reshapes the
response: citations below the threshold are dropped, the rest are ranked
by descending relevance (ties keep backend order) and truncated.

No retries happen here. ``SearchFailure`` propagates to the caller, and
cancelling the awaiting task raises ``asyncio.CancelledError``, which is
never reported as a search failure.
"""

import logging
from typing import Optional

from .engine import MemoryEngine
from .filters import build_search_filter
from .interfaces import SearchResult

logger = logging.getLogger(__name__)

# No upper bound on returned citations
UNLIMITED = -1


async def search_memory(
    engine: MemoryEngine,
    index_name: str,
    query: str,
    relevance_threshold: float,
    chat_id: str,
    memory_name: Optional[str] = None,
    result_count: int = UNLIMITED,
) -> SearchResult:
    """Search memory scoped to a chat and, optionally, a named memory.

    Args:
        engine: Composed and started engine
        index_name: Index to search
        query: Free-text query
        relevance_threshold: Inclusive minimum relevance, 0.0-1.0
        chat_id: Chat scope (required)
        memory_name: Memory scope, ignored when blank
        result_count: Max citations, -1 for no bound

    Returns:
        SearchResult with citations ranked by descending relevance

    Raises:
        ValueError: On an out-of-range threshold or result count, or a blank chat id
        SearchFailure: If a backend faults
    """
    if not (0.0 <= relevance_threshold <= 1.0):
        raise ValueError(f"relevance_threshold must be between 0 and 1, got {relevance_threshold}")
    if result_count < UNLIMITED:
        raise ValueError(f"result_count must be -1 or non-negative, got {result_count}")

    search_filter = build_search_filter(chat_id, memory_name)

    result = await engine.search(
        query,
        index=index_name,
        filters=[search_filter],
        min_relevance=relevance_threshold,
        limit=result_count,
    )

    citations = [c for c in result.results if c.relevance >= relevance_threshold]
    # sorted() is stable: equal scores keep backend order
    citations = sorted(citations, key=lambda c: c.relevance, reverse=True)
    if result_count != UNLIMITED:
        citations = citations[:result_count]

    logger.debug(f"Search on '{index_name}' with {search_filter!r} returned {len(citations)} citations")
    return SearchResult(query=result.query, results=citations)
