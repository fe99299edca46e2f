"""Service composition: configuration in, ready-to-query engine out.

``ServiceComposer`` normalizes and validates the configuration up front,
then resolves one backend per role through a ``BackendRegistry``:

1. Normalize the configuration tree (trim string leaves)
2. Register the ``MemoryConfig`` on the engine being built
3. Attach the search-client tuning
4. Resolve storage (``Retrieval.MemoryDbType``), the retrieval embedding
   generator (``Retrieval.EmbeddingGeneratorType``) and the text generator
   (``TextGeneratorType``)

An unregistered selector builds nothing for its role. A backend supplied
through ``with_custom_*`` fills the role instead; storage falls back to the
volatile in-memory store. Composition runs once, before serving traffic.
"""

import logging
from typing import Any, Optional, Union

from .config import MemoryConfig, SimpleVectorDbConfig, normalize_config_tree
from .engine import MemoryEngine
from .errors import ConfigurationError
from .providers.base import EmbeddingProvider, StorageProvider, TextGenerationProvider
from .providers.memory import InMemoryStorageProvider
from .registry import BackendRegistry, BackendRole, default_registry

logger = logging.getLogger(__name__)


class ServiceComposer:
    """Builds a ``MemoryEngine`` from configuration.

    Usage:
        composer = ServiceComposer(MemoryConfig.from_file("appsettings.yaml"))
        engine = composer.compose()
    """

    def __init__(
        self,
        config: Union[MemoryConfig, dict[str, Any], None],
        registry: Optional[BackendRegistry] = None,
    ):
        """Normalize and validate configuration.

        Args:
            config: Memory configuration, or an appsettings-style mapping
            registry: Backend table (built-in backends if None)

        Raises:
            ConfigurationError: If the configuration is missing or fails
                any of the minimum requirements
        """
        if config is None:
            raise ConfigurationError("The given memory configuration is NULL")
        if not isinstance(config, MemoryConfig):
            config = MemoryConfig.from_dict(config)

        self._config = normalize_config_tree(config)
        self._registry = registry or default_registry()
        self._custom: dict[BackendRole, Any] = {}
        self._composed = False

        errors = self._config.validate()
        if errors:
            raise ConfigurationError(f"Invalid memory configuration: {'; '.join(errors)}")

        for warning in self._config.tuning_warnings():
            logger.warning(f"{warning}; using the default")

    @property
    def config(self) -> MemoryConfig:
        return self._config

    def with_custom_storage(self, provider: StorageProvider) -> "ServiceComposer":
        """Use ``provider`` for storage when ``MemoryDbType`` is unregistered."""
        self._custom[BackendRole.STORAGE] = provider
        return self

    def with_custom_embedding_generator(self, provider: EmbeddingProvider) -> "ServiceComposer":
        """Use ``provider`` when ``Retrieval.EmbeddingGeneratorType`` is unregistered."""
        self._custom[BackendRole.EMBEDDING_GENERATOR] = provider
        return self

    def with_custom_text_generator(self, provider: TextGenerationProvider) -> "ServiceComposer":
        """Use ``provider`` when ``TextGeneratorType`` is unregistered."""
        self._custom[BackendRole.TEXT_GENERATOR] = provider
        return self

    def compose(self) -> MemoryEngine:
        """Build the engine. May be called only once.

        Raises:
            ConfigurationError: On a second call
        """
        if self._composed:
            raise ConfigurationError("Memory services have already been composed")

        config = self._config
        search_client = config.retrieval.search_client.sanitized()

        storage = self._build(BackendRole.STORAGE, config.retrieval.memory_db_type)
        if storage is None:
            logger.info("No storage backend configured, using volatile in-memory store")
            storage = InMemoryStorageProvider(SimpleVectorDbConfig())

        embedding = self._build(BackendRole.EMBEDDING_GENERATOR, config.retrieval.embedding_generator_type)
        text_generator = self._build(BackendRole.TEXT_GENERATOR, config.text_generator_type)

        self._composed = True
        return MemoryEngine(
            config=config,
            search_client=search_client,
            storage=storage,
            embedding=embedding,
            text_generator=text_generator,
        )

    def _build(self, role: BackendRole, selector: str) -> Optional[Any]:
        factory = self._registry.resolve(role, selector)
        if factory is not None:
            logger.debug(f"Resolved {role.value} backend '{selector}'")
            return factory(self._config)

        custom = self._custom.get(role)
        if custom is None and selector:
            logger.warning(
                f"No built-in {role.value} backend for '{selector}'; "
                "a custom implementation is expected"
            )
        return custom


def compose_engine(
    config: Union[MemoryConfig, dict[str, Any], None],
    registry: Optional[BackendRegistry] = None,
) -> MemoryEngine:
    """Validate ``config`` and build a ``MemoryEngine`` in one step."""
    return ServiceComposer(config, registry=registry).compose()
