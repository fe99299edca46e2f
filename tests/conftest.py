"""Pytest fixtures for document-searcher tests."""

import asyncio
from typing import Optional

import pytest

from docsearcher.composer import ServiceComposer, compose_engine
from docsearcher.config import MemoryConfig
from docsearcher.filters import MemoryFilter
from docsearcher.interfaces import MemoryRecord, TAG_DOCUMENT_ID, PAYLOAD_TEXT
from docsearcher.providers.base import ProviderHealth, ProviderStatus, StorageProvider


class FakeStorage(StorageProvider[None]):
    """Storage that returns canned (document, score) matches.

    Scores are returned as given, without applying ``min_relevance`` or
    ``limit``, so tests can check the shaping done above the backend.
    """

    def __init__(self, scores: Optional[list[tuple[str, float]]] = None, error: Optional[Exception] = None):
        super().__init__(None)
        self.scores = scores or []
        self.error = error
        self.calls: list[dict] = []
        self.entered = asyncio.Event()
        self.release: Optional[asyncio.Event] = None

    async def initialize(self) -> None:
        self._initialized = True

    async def shutdown(self) -> None:
        self._initialized = False

    async def health_check(self) -> ProviderHealth:
        return ProviderHealth(status=ProviderStatus.HEALTHY)

    async def create_index(self, index: str, vector_size: int) -> None:
        pass

    async def upsert(self, index: str, record: MemoryRecord) -> str:
        return record.id

    async def get_similar_records(
        self,
        index: str,
        query_embedding: list[float],
        filters: Optional[list[MemoryFilter]] = None,
        min_relevance: float = 0.0,
        limit: int = -1,
    ) -> list[tuple[MemoryRecord, float]]:
        self.calls.append({
            "index": index,
            "filters": filters,
            "min_relevance": min_relevance,
            "limit": limit,
        })
        self.entered.set()
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return [
            (
                MemoryRecord(
                    id=f"{doc}/0",
                    tags={TAG_DOCUMENT_ID: [doc]},
                    payload={PAYLOAD_TEXT: f"text of {doc}"},
                ),
                score,
            )
            for doc, score in self.scores
        ]

    async def delete(self, index: str, record_id: str) -> bool:
        return False


@pytest.fixture
def memory_config():
    """Mock backends over the volatile in-memory store."""
    return MemoryConfig.for_testing()


@pytest.fixture
async def engine(memory_config):
    """Started engine composed from the testing configuration."""
    engine = compose_engine(memory_config)
    await engine.start()
    yield engine
    await engine.stop()


@pytest.fixture
def fake_storage():
    return FakeStorage(scores=[("doc-a", 0.9), ("doc-b", 0.6), ("doc-c", 0.3)])


@pytest.fixture
async def fake_engine(fake_storage):
    """Started engine whose storage is ``fake_storage``."""
    config = MemoryConfig.for_testing()
    config.retrieval.memory_db_type = "Fake"
    engine = ServiceComposer(config).with_custom_storage(fake_storage).compose()
    await engine.start()
    yield engine
    await engine.stop()
