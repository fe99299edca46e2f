"""Typed error taxonomy for document-searcher.

Configuration problems are raised at startup and are fatal; search failures
are raised per request. Cancellation is not an error here: it surfaces as
``asyncio.CancelledError`` and is never converted into ``SearchFailure``.
"""

__all__ = [
    "DocumentSearcherError",
    "ConfigurationError",
    "SearchFailure",
]


class DocumentSearcherError(Exception):
    """Base class for all document-searcher errors."""
    pass


class ConfigurationError(DocumentSearcherError):
    """Required configuration is absent, null, or structurally invalid."""
    pass


class SearchFailure(DocumentSearcherError):
    """A storage or embedding backend faulted while executing a query."""
    pass
