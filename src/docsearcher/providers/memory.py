"""Volatile in-memory vector store."""

from typing import Optional

from .base import StorageProvider, ProviderHealth, ProviderStatus
from ..config.providers import SimpleVectorDbConfig
from ..filters import MemoryFilter
from ..interfaces import MemoryRecord
from ..utils import cosine_similarity


class InMemoryStorageProvider(StorageProvider[SimpleVectorDbConfig]):
    """In-memory storage for testing and development.

    Data is lost when the process exits.
    """

    def __init__(self, config: Optional[SimpleVectorDbConfig] = None):
        super().__init__(config or SimpleVectorDbConfig())
        self._indexes: dict[str, dict[str, MemoryRecord]] = {}

    async def initialize(self) -> None:
        self._initialized = True

    async def shutdown(self) -> None:
        self._indexes.clear()
        self._initialized = False

    async def health_check(self) -> ProviderHealth:
        total = sum(len(records) for records in self._indexes.values())
        return ProviderHealth(
            status=ProviderStatus.HEALTHY,
            latency_ms=0.1,
            message=f"In-memory store with {len(self._indexes)} indexes, {total} records"
        )

    async def create_index(self, index: str, vector_size: int) -> None:
        self._indexes.setdefault(self._normalize_index(index), {})

    async def upsert(self, index: str, record: MemoryRecord) -> str:
        expected = self.config.embedding_dimensions
        if expected and record.vector is not None and len(record.vector) != expected:
            raise ValueError(
                f"Invalid embedding dimension: expected {expected}, got {len(record.vector)}"
            )
        self._indexes.setdefault(self._normalize_index(index), {})[record.id] = record
        return record.id

    async def get_similar_records(
        self,
        index: str,
        query_embedding: list[float],
        filters: Optional[list[MemoryFilter]] = None,
        min_relevance: float = 0.0,
        limit: int = -1,
    ) -> list[tuple[MemoryRecord, float]]:
        records = self._indexes.get(self._normalize_index(index), {})

        results = []
        for record in records.values():
            if record.vector is None:
                continue
            if filters and not any(f.matches(record.tags) for f in filters):
                continue

            sim = cosine_similarity(query_embedding, record.vector)
            if sim >= min_relevance:
                results.append((record, sim))

        results.sort(key=lambda x: x[1], reverse=True)
        if limit >= 0:
            results = results[:limit]
        return results

    async def delete(self, index: str, record_id: str) -> bool:
        records = self._indexes.get(self._normalize_index(index), {})
        return records.pop(record_id, None) is not None

    def count(self, index: str) -> int:
        return len(self._indexes.get(self._normalize_index(index), {}))

    @staticmethod
    def _normalize_index(index: str) -> str:
        return (index or "default").strip().lower()
