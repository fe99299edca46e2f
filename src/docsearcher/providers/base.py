"""Abstract base classes for the three pluggable backend roles.

These define the contracts that backend implementations must satisfy:
storage/vector stores, embedding generators and text generators.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, TypeVar, Generic
from enum import Enum

from ..filters import MemoryFilter
from ..interfaces import MemoryRecord
from ..utils import cosine_similarity


# Type variable for backend-specific configuration
TConfig = TypeVar('TConfig')


class ProviderStatus(Enum):
    """Backend health status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"
    INITIALIZING = "initializing"


@dataclass
class ProviderHealth:
    """Health check result for a backend."""
    status: ProviderStatus
    latency_ms: Optional[float] = None
    message: Optional[str] = None
    last_check: datetime = None

    def __post_init__(self):
        if self.last_check is None:
            self.last_check = datetime.now(timezone.utc)


class Provider(ABC, Generic[TConfig]):
    """Base class for all backends.

    Provides common functionality:
    - Configuration management
    - Health checking
    - Lifecycle management (init/shutdown)
    """

    def __init__(self, config: TConfig):
        self.config = config
        self._initialized = False

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the backend. Called once before first use."""
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """Gracefully shutdown the backend."""
        pass

    @abstractmethod
    async def health_check(self) -> ProviderHealth:
        """Check backend health and connectivity."""
        pass

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def __aenter__(self):
        if not self._initialized:
            await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.shutdown()


class EmbeddingProvider(Provider[TConfig]):
    """Abstract embedding generator.

    Responsible for converting text to vector embeddings.
    """

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Return the embedding dimension size."""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model identifier."""
        pass

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        pass

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts efficiently."""
        pass

    def similarity(self, a: list[float], b: list[float]) -> float:
        """Cosine similarity between two embeddings."""
        return cosine_similarity(a, b)


class TextGenerationProvider(Provider[TConfig]):
    """Abstract text generator.

    Used to answer questions from retrieved facts.
    """

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model identifier."""
        pass

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        max_tokens: int = 300,
        temperature: float = 0.0,
        top_p: float = 0.0,
    ) -> str:
        """Generate a completion for the prompt."""
        pass


class StorageProvider(Provider[TConfig]):
    """Abstract storage/vector backend.

    Responsible for persisting partitions and answering vector queries.
    Implementations own their indexing and distance math.
    """

    @abstractmethod
    async def create_index(self, index: str, vector_size: int) -> None:
        """Create the index if it does not exist."""
        pass

    @abstractmethod
    async def upsert(self, index: str, record: MemoryRecord) -> str:
        """Insert or replace a record, returning its id."""
        pass

    @abstractmethod
    async def get_similar_records(
        self,
        index: str,
        query_embedding: list[float],
        filters: Optional[list[MemoryFilter]] = None,
        min_relevance: float = 0.0,
        limit: int = -1,
    ) -> list[tuple[MemoryRecord, float]]:
        """Return (record, relevance) pairs, highest relevance first.

        Args:
            index: Index name
            query_embedding: Vector to search for
            filters: Records must match at least one filter (each an AND of tags)
            min_relevance: Inclusive lower bound on relevance
            limit: Max records, -1 for no bound
        """
        pass

    @abstractmethod
    async def delete(self, index: str, record_id: str) -> bool:
        """Delete a record."""
        pass
