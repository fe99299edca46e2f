"""Mock backends for testing and offline development."""

import asyncio

from .base import (
    EmbeddingProvider,
    TextGenerationProvider,
    ProviderHealth,
    ProviderStatus,
)
from ..config.providers import MockConfig
from ..utils import hash_to_embedding


class MockEmbeddingProvider(EmbeddingProvider[MockConfig]):
    """Mock embedding generator using deterministic hashing."""

    def __init__(self, config: MockConfig):
        super().__init__(config)

    @property
    def dimensions(self) -> int:
        return self.config.dimensions

    @property
    def model_name(self) -> str:
        return "mock-embedding"

    async def initialize(self) -> None:
        self._initialized = True

    async def shutdown(self) -> None:
        self._initialized = False

    async def health_check(self) -> ProviderHealth:
        return ProviderHealth(
            status=ProviderStatus.HEALTHY,
            latency_ms=0.1,
            message="Mock provider always healthy"
        )

    async def embed(self, text: str) -> list[float]:
        if self.config.latency_ms:
            await asyncio.sleep(self.config.latency_ms / 1000)
        return hash_to_embedding(text, self.dimensions)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed(t) for t in texts]


class MockTextGenerationProvider(TextGenerationProvider[MockConfig]):
    """Mock text generator that records prompts and returns a fixed answer."""

    def __init__(self, config: MockConfig):
        super().__init__(config)
        self.prompts: list[str] = []

    @property
    def model_name(self) -> str:
        return "mock-text"

    async def initialize(self) -> None:
        self._initialized = True

    async def shutdown(self) -> None:
        self._initialized = False

    async def health_check(self) -> ProviderHealth:
        return ProviderHealth(
            status=ProviderStatus.HEALTHY,
            latency_ms=0.1,
            message="Mock provider always healthy"
        )

    async def generate(
        self,
        prompt: str,
        max_tokens: int = 300,
        temperature: float = 0.0,
        top_p: float = 0.0,
    ) -> str:
        self.prompts.append(prompt)
        answer = self.config.answer or "This is a mock answer."
        return " ".join(answer.split()[:max_tokens])
