"""Server configuration."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from ..config import MemoryConfig
from ..config.providers import build_section

DEFAULT_SETTINGS_PATH = "~/.docsearcher/appsettings.yaml"


@dataclass
class ServerConfig:
    """HTTP server configuration.

    Attributes:
        host: Bind address
        port: Bind port
        index_name: Index searched by the /search endpoint
        relevance_threshold: Minimum relevance for /search results
    """
    host: str = "127.0.0.1"
    port: int = 18800
    index_name: str = "default"
    relevance_threshold: float = 0.5

    def __post_init__(self):
        if not (0.0 <= self.relevance_threshold <= 1.0):
            raise ValueError("relevance_threshold must be between 0 and 1")
        if not self.index_name or not self.index_name.strip():
            raise ValueError("index_name cannot be empty")


@dataclass
class DocumentSearcherConfig:
    """Full service configuration: server settings plus the memory tree."""
    server: ServerConfig = field(default_factory=ServerConfig)
    memory: MemoryConfig = field(default_factory=MemoryConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "DocumentSearcherConfig":
        """Load configuration from a YAML settings file.

        A missing file yields defaults, which fail composition until the
        memory selectors are configured.
        """
        path = Path(path).expanduser()
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DocumentSearcherConfig":
        """Create configuration from a dictionary.

        Server settings live under ``Server``; everything else is the
        memory configuration (optionally under a ``KernelMemory`` root).
        """
        server_data = data.get("Server") or data.get("server") or {}
        memory_data = {k: v for k, v in data.items() if k not in ("Server", "server")}

        return cls(
            server=build_section(ServerConfig, server_data),
            memory=MemoryConfig.from_dict(memory_data),
        )

    @classmethod
    def from_env(cls) -> "DocumentSearcherConfig":
        """Create configuration from the file named by DOCSEARCHER_CONFIG."""
        config_path = os.environ.get("DOCSEARCHER_CONFIG", DEFAULT_SETTINGS_PATH)
        return cls.from_file(config_path)


def load_config(path: Optional[str] = None) -> DocumentSearcherConfig:
    """Load from ``path`` if given, else from the environment."""
    if path:
        return DocumentSearcherConfig.from_file(path)
    return DocumentSearcherConfig.from_env()
