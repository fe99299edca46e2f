"""Backend-specific configuration classes.

Each backend reads its settings from a named section under ``Services``,
keyed by the selector string (e.g. ``Services.AzureAISearch``).
"""

from dataclasses import dataclass, fields, replace
from typing import Any, Optional, Union, get_args, get_origin, get_type_hints

from ..errors import ConfigurationError

_TRUE_STRINGS = {"true", "yes", "on", "1"}
_FALSE_STRINGS = {"false", "no", "off", "0"}


@dataclass
class AzureOpenAIConfig:
    """Configuration for Azure OpenAI embedding and text generation.

    Attributes:
        endpoint: Resource endpoint, e.g. "https://contoso.openai.azure.com/"
        deployment: Model deployment name
        api_key: API key
        api_version: REST API version
        dimensions: Embedding dimensions requested from the deployment. None
            sends no "dimensions" parameter (required for ada-002, which
            rejects it) and assumes 1536-wide vectors
        max_token_total: Context window of the deployment
        max_retries: Max retry attempts on 429/5xx
        timeout_seconds: Request timeout
        backoff_base: Exponential backoff base
        backoff_max: Maximum backoff delay
    """
    endpoint: str = ""
    deployment: str = ""
    api_key: Optional[str] = None
    api_version: str = "2024-02-01"
    dimensions: Optional[int] = None
    max_token_total: int = 8191
    max_retries: int = 3
    timeout_seconds: float = 30.0
    backoff_base: float = 2.0
    backoff_max: float = 60.0


@dataclass
class AzureAISearchConfig:
    """Configuration for Azure AI Search vector storage.

    Attributes:
        endpoint: Search service endpoint, e.g. "https://contoso.search.windows.net"
        api_key: Admin or query key
        api_version: REST API version
        timeout_seconds: Request timeout
    """
    endpoint: str = ""
    api_key: Optional[str] = None
    api_version: str = "2023-11-01"
    timeout_seconds: float = 30.0


@dataclass
class SimpleVectorDbConfig:
    """Configuration for the volatile in-memory vector store."""
    embedding_dimensions: Optional[int] = None


@dataclass
class MockConfig:
    """Configuration for deterministic mock backends."""
    dimensions: int = 64
    latency_ms: float = 0.0
    answer: str = ""


@dataclass
class SearchClientConfig:
    """Tuning for search and answer generation.

    Attributes:
        max_matches_count: Max facts fed to the text generator by ``ask``
        answer_tokens: Max tokens in a generated answer
        empty_answer: Answer returned when no fact matched
        fact_template: Template for one fact in the prompt
        temperature: Sampling temperature for answers
        top_p: Nucleus sampling for answers
        max_ask_prompt_size: Max prompt characters (-1 = unbounded)
    """
    max_matches_count: int = 100
    answer_tokens: int = 300
    empty_answer: str = "INFO NOT FOUND"
    fact_template: str = "==== [File:{source};Relevance:{relevance}]:\n{content}"
    temperature: float = 0.0
    top_p: float = 0.0
    max_ask_prompt_size: int = -1

    def validate(self) -> list[str]:
        """Out-of-range tuning values. These are warnings, not composition errors."""
        errors = []
        if self.max_matches_count <= 0:
            errors.append(f"Retrieval.SearchClient.MaxMatchesCount must be positive, got {self.max_matches_count}")
        if self.answer_tokens <= 0:
            errors.append(f"Retrieval.SearchClient.AnswerTokens must be positive, got {self.answer_tokens}")
        if not (0.0 <= self.temperature <= 2.0):
            errors.append(f"Retrieval.SearchClient.Temperature must be between 0 and 2, got {self.temperature}")
        return errors

    def sanitized(self) -> "SearchClientConfig":
        """Copy with every out-of-range value replaced by its default."""
        defaults = SearchClientConfig()
        changes = {}
        if self.max_matches_count <= 0:
            changes["max_matches_count"] = defaults.max_matches_count
        if self.answer_tokens <= 0:
            changes["answer_tokens"] = defaults.answer_tokens
        if not (0.0 <= self.temperature <= 2.0):
            changes["temperature"] = defaults.temperature
        return replace(self, **changes) if changes else self


def parse_bool(key: str, value: Any) -> bool:
    """Read a boolean setting; "false", "no", "off" and "0" are False.

    Raises:
        ConfigurationError: If the value is not a recognizable boolean
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ConfigurationError(f"Invalid value for '{key}': expected a boolean, got {value!r}")


def coerce_value(key: str, value: Any, target: Any) -> Any:
    """Convert a settings value to the annotated field type.

    Settings files and environment variables deliver numbers and booleans
    as strings ("10", "false"); ``Optional[X]`` accepts None.

    Raises:
        ConfigurationError: If the value cannot be converted
    """
    if get_origin(target) is Union:
        args = [a for a in get_args(target) if a is not type(None)]
        if value is None:
            return None
        target = args[0] if len(args) == 1 else Any

    if target is Any or value is None:
        return value
    if target is bool:
        return parse_bool(key, value)
    if target in (int, float):
        if isinstance(value, bool):
            raise ConfigurationError(f"Invalid value for '{key}': expected a number, got {value!r}")
        try:
            number = float(value) if target is float else int(str(value).strip())
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid value for '{key}': expected {target.__name__}, got {value!r}"
            ) from e
        return number
    if target is str:
        if isinstance(value, (dict, list)):
            raise ConfigurationError(f"Invalid value for '{key}': expected a string, got {value!r}")
        return str(value)
    return value


def build_section(cls: type, data: Optional[dict[str, Any]]) -> Any:
    """Create a config dataclass from a section of the settings tree.

    Keys may be PascalCase ("ApiKey") or snake_case ("api_key"); unknown
    keys are ignored. Values are converted to the field types.

    Raises:
        ConfigurationError: If the section is not a mapping or a value
            cannot be converted
    """
    if not data:
        return cls()
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Invalid {cls.__name__} section: expected a mapping, got {type(data).__name__}"
        )

    hints = get_type_hints(cls)
    lookup = {snake_case(k): (k, v) for k, v in data.items()}
    kwargs = {}
    for f in fields(cls):
        if f.name not in lookup:
            continue
        key, value = lookup[f.name]
        # A null value keeps the field default
        if value is None:
            continue
        kwargs[f.name] = coerce_value(key, value, hints.get(f.name, Any))
    return cls(**kwargs)


def snake_case(key: str) -> str:
    """Convert "ApiKey" / "APIKey" / "api_key" to "api_key"."""
    if "_" in key or key.islower():
        return key.lower()
    out = []
    for i, ch in enumerate(key):
        if ch.isupper() and i > 0:
            prev_lower = key[i - 1].islower()
            next_lower = i + 1 < len(key) and key[i + 1].islower()
            if prev_lower or (next_lower and key[i - 1].isupper()):
                out.append("_")
        out.append(ch.lower())
    return "".join(out)
