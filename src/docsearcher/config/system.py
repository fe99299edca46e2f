"""Memory configuration root."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, TypeVar

import yaml

from ..errors import ConfigurationError
from .providers import SearchClientConfig, build_section, coerce_value, parse_bool, snake_case

T = TypeVar("T")

# Settings root node name
CONFIG_ROOT = "KernelMemory"

DEFAULT_PARTITION_SIZE = 1000


def _get(data: dict[str, Any], key: str, default: Any = None) -> Any:
    """Read a PascalCase key, falling back to its snake_case spelling."""
    if key in data:
        return data[key]
    return data.get(snake_case(key), default)


def _section(data: Any, name: str) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid {name} section: expected a mapping, got {type(data).__name__}")
    return data


@dataclass
class DataIngestionConfig:
    """Ingestion settings.

    Attributes:
        embedding_generation_enabled: Whether imported partitions are embedded
        embedding_generator_types: Selectors of the ingestion embedding generators
        partition_size: Max characters per stored partition
    """
    embedding_generation_enabled: bool = True
    embedding_generator_types: list[str] = field(default_factory=list)
    partition_size: int = DEFAULT_PARTITION_SIZE

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "DataIngestionConfig":
        data = _section(data, "DataIngestion")
        types = _get(data, "EmbeddingGeneratorTypes") or []
        if isinstance(types, str):
            types = [types]
        elif not isinstance(types, list):
            raise ConfigurationError(
                f"Invalid value for 'EmbeddingGeneratorTypes': expected a list, got {types!r}"
            )
        enabled = _get(data, "EmbeddingGenerationEnabled")
        partition_size = _get(data, "PartitionSize")
        return cls(
            embedding_generation_enabled=True if enabled is None else parse_bool("EmbeddingGenerationEnabled", enabled),
            embedding_generator_types=[coerce_value("EmbeddingGeneratorTypes", t, str) for t in types],
            partition_size=(
                DEFAULT_PARTITION_SIZE if partition_size is None
                else coerce_value("PartitionSize", partition_size, int)
            ),
        )

    @property
    def effective_partition_size(self) -> int:
        """Partition size, falling back to the default when not positive."""
        if self.partition_size > 0:
            return self.partition_size
        return DEFAULT_PARTITION_SIZE


@dataclass
class RetrievalConfig:
    """Retrieval settings.

    Attributes:
        embedding_generator_type: Selector of the query embedding generator
        memory_db_type: Selector of the storage/vector backend
        search_client: Search and answer tuning
    """
    embedding_generator_type: str = ""
    memory_db_type: str = ""
    search_client: SearchClientConfig = field(default_factory=SearchClientConfig)

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "RetrievalConfig":
        data = _section(data, "Retrieval")
        return cls(
            embedding_generator_type=coerce_value(
                "EmbeddingGeneratorType", _get(data, "EmbeddingGeneratorType") or "", str
            ),
            memory_db_type=coerce_value("MemoryDbType", _get(data, "MemoryDbType") or "", str),
            search_client=build_section(SearchClientConfig, _get(data, "SearchClient")),
        )


@dataclass
class MemoryConfig:
    """Complete memory configuration.

    Holds the three backend selectors and the named per-backend sections.
    Owned by ``ServiceComposer`` during composition and treated as
    read-only afterwards.

    Attributes:
        text_generator_type: Selector of the text generator
        data_ingestion: Ingestion settings
        retrieval: Retrieval settings
        services: Per-backend sections keyed by selector, e.g. "AzureAISearch"
    """
    text_generator_type: str = ""
    data_ingestion: DataIngestionConfig = field(default_factory=DataIngestionConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    services: dict[str, dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MemoryConfig":
        """Create configuration from an appsettings-style dictionary.

        The dictionary may be the memory section itself or a whole settings
        tree with a ``KernelMemory`` root node.

        Raises:
            ConfigurationError: If ``data`` is None or not a mapping
        """
        if data is None:
            raise ConfigurationError("The given memory configuration is NULL")
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Unable to load memory settings: expected a mapping, got {type(data).__name__}"
            )
        if CONFIG_ROOT in data:
            root = data[CONFIG_ROOT]
            if not isinstance(root, dict):
                raise ConfigurationError(
                    f"Unable to load memory settings from the given configuration. "
                    f"The '{CONFIG_ROOT}' root node should map to the memory configuration"
                )
            data = root

        services = _section(_get(data, "Services"), "Services")
        return cls(
            text_generator_type=coerce_value("TextGeneratorType", _get(data, "TextGeneratorType") or "", str),
            data_ingestion=DataIngestionConfig.from_dict(_get(data, "DataIngestion")),
            retrieval=RetrievalConfig.from_dict(_get(data, "Retrieval")),
            services={
                name: dict(_section(section, f"Services.{name}"))
                for name, section in services.items()
            },
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "MemoryConfig":
        """Load configuration from a YAML (or JSON) file.

        Raises:
            ConfigurationError: If the file does not exist or is empty
        """
        path = Path(path).expanduser()
        if not path.exists():
            raise ConfigurationError(f"Settings file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        if not data:
            raise ConfigurationError(f"Settings file is empty: {path}")
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, prefix: str = "DOCSEARCHER") -> "MemoryConfig":
        """Load configuration from the settings file and environment.

        Environment variables:
            {prefix}_CONFIG: Settings file path (default ~/.docsearcher/appsettings.yaml)
            {prefix}_TEXT_GENERATOR_TYPE: Overrides TextGeneratorType
            {prefix}_EMBEDDING_GENERATOR_TYPE: Overrides Retrieval.EmbeddingGeneratorType
            {prefix}_MEMORY_DB_TYPE: Overrides Retrieval.MemoryDbType
        """
        def get(key: str) -> Optional[str]:
            return os.environ.get(f"{prefix}_{key}")

        path = Path(get("CONFIG") or "~/.docsearcher/appsettings.yaml").expanduser()
        config = cls.from_file(path) if path.exists() else cls()

        if get("TEXT_GENERATOR_TYPE") is not None:
            config.text_generator_type = get("TEXT_GENERATOR_TYPE")
        if get("EMBEDDING_GENERATOR_TYPE") is not None:
            config.retrieval.embedding_generator_type = get("EMBEDDING_GENERATOR_TYPE")
        if get("MEMORY_DB_TYPE") is not None:
            config.retrieval.memory_db_type = get("MEMORY_DB_TYPE")
        return config

    @classmethod
    def for_testing(cls) -> "MemoryConfig":
        """Create a configuration backed by mock and in-memory backends."""
        return cls(
            text_generator_type="Mock",
            data_ingestion=DataIngestionConfig(
                embedding_generation_enabled=True,
                embedding_generator_types=["Mock"],
            ),
            retrieval=RetrievalConfig(
                embedding_generator_type="Mock",
                memory_db_type="SimpleVectorDb",
            ),
        )

    def validate(self) -> list[str]:
        """Check the minimum requirements and return every violation.

        All checks run; none short-circuits the others.
        """
        errors = []

        if not self.text_generator_type:
            errors.append("Text generation (TextGeneratorType) is not configured")

        if self.data_ingestion.embedding_generation_enabled:
            if len(self.data_ingestion.embedding_generator_types) == 0:
                errors.append(
                    "Data ingestion embedding generation "
                    "(DataIngestion.EmbeddingGeneratorTypes) is not configured"
                )

        if not self.retrieval.embedding_generator_type:
            errors.append(
                "Retrieval embedding generation "
                "(Retrieval.EmbeddingGeneratorType) is not configured"
            )

        return errors

    def tuning_warnings(self) -> list[str]:
        """Out-of-range tuning values.

        These never fail composition: the affected values fall back to
        their defaults where they are used.
        """
        warnings = []
        if self.data_ingestion.partition_size <= 0:
            warnings.append(
                f"DataIngestion.PartitionSize must be positive, got {self.data_ingestion.partition_size}"
            )
        warnings.extend(self.retrieval.search_client.validate())
        return warnings

    def get_service_config(self, service_name: str, cls: type[T]) -> T:
        """Build the named backend section, matching the name case-insensitively."""
        section = self.services.get(service_name)
        if section is None:
            wanted = service_name.lower()
            for name, value in self.services.items():
                if name.lower() == wanted:
                    section = value
                    break
        return build_section(cls, section)
