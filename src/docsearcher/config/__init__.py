"""Configuration for document-searcher.

Strongly-typed configuration objects loaded from:
- YAML/JSON settings files
- Environment variables
- Plain dictionaries (appsettings-style PascalCase keys)

String leaves are trimmed by ``normalize_config_tree`` before composition.
"""

from .system import MemoryConfig, DataIngestionConfig, RetrievalConfig, CONFIG_ROOT
from .providers import (
    AzureOpenAIConfig,
    AzureAISearchConfig,
    SimpleVectorDbConfig,
    MockConfig,
    SearchClientConfig,
)
from .normalize import normalize_config_tree, classify, NodeKind

__all__ = [
    "MemoryConfig",
    "DataIngestionConfig",
    "RetrievalConfig",
    "CONFIG_ROOT",
    "AzureOpenAIConfig",
    "AzureAISearchConfig",
    "SimpleVectorDbConfig",
    "MockConfig",
    "SearchClientConfig",
    "normalize_config_tree",
    "classify",
    "NodeKind",
]
