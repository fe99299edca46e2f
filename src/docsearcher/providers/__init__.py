"""Backend interfaces and implementations.

Backends are swappable implementations of three roles: storage/vector
store, embedding generator and text generator. Each role has an abstract
base and concrete implementations selected by name at composition time.
"""

from .base import (
    EmbeddingProvider,
    StorageProvider,
    TextGenerationProvider,
    ProviderHealth,
    ProviderStatus,
)
from .azure_openai import AzureOpenAIEmbeddingProvider, AzureOpenAITextGenerationProvider
from .azure_ai_search import AzureAISearchStorageProvider
from .memory import InMemoryStorageProvider
from .mock import MockEmbeddingProvider, MockTextGenerationProvider

__all__ = [
    # Base interfaces
    "EmbeddingProvider",
    "StorageProvider",
    "TextGenerationProvider",
    "ProviderHealth",
    "ProviderStatus",
    # Embedding generators
    "AzureOpenAIEmbeddingProvider",
    "MockEmbeddingProvider",
    # Text generators
    "AzureOpenAITextGenerationProvider",
    "MockTextGenerationProvider",
    # Storage
    "AzureAISearchStorageProvider",
    "InMemoryStorageProvider",
]
