"""Named backend factories for the three pluggable roles.

A selector string from configuration (e.g. ``Retrieval.MemoryDbType``) is
resolved case-insensitively to a factory. Several selectors may alias the
same factory. An unknown selector resolves to ``None``: the caller is
expected to supply a custom backend for that role instead.

The default table is built once at import and not mutated afterwards.
Tests and embedders that need other backends build their own registry.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .config import (
    MemoryConfig,
    AzureOpenAIConfig,
    AzureAISearchConfig,
    SimpleVectorDbConfig,
    MockConfig,
)
from .providers.base import Provider
from .providers.azure_openai import AzureOpenAIEmbeddingProvider, AzureOpenAITextGenerationProvider
from .providers.azure_ai_search import AzureAISearchStorageProvider
from .providers.memory import InMemoryStorageProvider
from .providers.mock import MockEmbeddingProvider, MockTextGenerationProvider

logger = logging.getLogger(__name__)

BackendFactory = Callable[[MemoryConfig], Provider]


class BackendRole(Enum):
    """Pluggable backend roles."""
    STORAGE = "storage"
    EMBEDDING_GENERATOR = "embedding_generator"
    TEXT_GENERATOR = "text_generator"


@dataclass(frozen=True)
class BackendDescriptor:
    """A factory registered under a selector for one role."""
    role: BackendRole
    selector_key: str
    build: BackendFactory


class BackendRegistry:
    """Lookup table from (role, selector) to backend factory."""

    def __init__(self):
        self._descriptors: dict[tuple[BackendRole, str], BackendDescriptor] = {}

    def register(
        self,
        role: BackendRole,
        selector_key: str,
        factory: BackendFactory,
        *aliases: str,
    ) -> None:
        """Register ``factory`` under ``selector_key`` and any aliases.

        Raises:
            ValueError: If a selector is blank or already taken for the role
        """
        for key in (selector_key, *aliases):
            if not key or not key.strip():
                raise ValueError("Selector key cannot be empty")
            normalized = self._normalize(key)
            if (role, normalized) in self._descriptors:
                raise ValueError(f"Selector '{key}' already registered for role {role.value}")
            self._descriptors[(role, normalized)] = BackendDescriptor(role, key, factory)

    def resolve(self, role: BackendRole, selector: Optional[str]) -> Optional[BackendFactory]:
        """Return the factory for ``selector``, or None if unregistered."""
        if not selector:
            return None
        descriptor = self._descriptors.get((role, self._normalize(selector)))
        return descriptor.build if descriptor else None

    def selectors(self, role: BackendRole) -> list[str]:
        """Registered selector names for a role, as written at registration."""
        return sorted(d.selector_key for (r, _), d in self._descriptors.items() if r is role)

    def __contains__(self, item: tuple[BackendRole, str]) -> bool:
        role, selector = item
        return self.resolve(role, selector) is not None

    @staticmethod
    def _normalize(selector: str) -> str:
        return selector.strip().casefold()


# =============================================================================
# Built-in factories
# =============================================================================

def _azure_ai_search(config: MemoryConfig) -> Provider:
    return AzureAISearchStorageProvider(config.get_service_config("AzureAISearch", AzureAISearchConfig))


def _simple_vector_db(config: MemoryConfig) -> Provider:
    return InMemoryStorageProvider(config.get_service_config("SimpleVectorDb", SimpleVectorDbConfig))


def _azure_openai_embedding(config: MemoryConfig) -> Provider:
    return AzureOpenAIEmbeddingProvider(config.get_service_config("AzureOpenAIEmbedding", AzureOpenAIConfig))


def _azure_openai_text(config: MemoryConfig) -> Provider:
    return AzureOpenAITextGenerationProvider(config.get_service_config("AzureOpenAIText", AzureOpenAIConfig))


def _mock_embedding(config: MemoryConfig) -> Provider:
    return MockEmbeddingProvider(config.get_service_config("Mock", MockConfig))


def _mock_text(config: MemoryConfig) -> Provider:
    return MockTextGenerationProvider(config.get_service_config("Mock", MockConfig))


def _build_default_registry() -> BackendRegistry:
    registry = BackendRegistry()
    registry.register(BackendRole.STORAGE, "AzureAISearch", _azure_ai_search)
    registry.register(BackendRole.STORAGE, "SimpleVectorDb", _simple_vector_db, "Memory")
    registry.register(
        BackendRole.EMBEDDING_GENERATOR, "AzureOpenAIEmbedding", _azure_openai_embedding, "AzureOpenAI"
    )
    registry.register(BackendRole.EMBEDDING_GENERATOR, "Mock", _mock_embedding)
    registry.register(BackendRole.TEXT_GENERATOR, "AzureOpenAIText", _azure_openai_text, "AzureOpenAI")
    registry.register(BackendRole.TEXT_GENERATOR, "Mock", _mock_text)
    return registry


_DEFAULT_REGISTRY = _build_default_registry()


def default_registry() -> BackendRegistry:
    """The process-wide table of built-in backends."""
    return _DEFAULT_REGISTRY
