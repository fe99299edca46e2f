"""Azure OpenAI embedding and text generation backends."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from .base import EmbeddingProvider, TextGenerationProvider, ProviderHealth, ProviderStatus
from ..config.providers import AzureOpenAIConfig
from ..utils import normalize_embedding

logger = logging.getLogger(__name__)

# Vector width of ada-002, assumed when no dimensions are requested
DEFAULT_DIMENSIONS = 1536


class _AzureOpenAIClient:
    """Shared HTTP plumbing for Azure OpenAI deployments.

    Retries 429 and 5xx responses with exponential backoff. Retrying lives
    here, in the backend, and nowhere above it.
    """

    def __init__(
        self,
        config: AzureOpenAIConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def open(self) -> None:
        """Create the async HTTP client.

        Raises:
            ValueError: If endpoint, deployment or API key is not configured
        """
        if not self.config.endpoint:
            raise ValueError("Azure OpenAI endpoint required")
        if not self.config.deployment:
            raise ValueError("Azure OpenAI deployment name required")
        if not self.config.api_key:
            raise ValueError("Azure OpenAI API key required")

        client = None
        try:
            client = httpx.AsyncClient(
                base_url=self.config.endpoint.rstrip("/"),
                timeout=httpx.Timeout(self.config.timeout_seconds),
                headers={
                    "api-key": self.config.api_key,
                    "Content-Type": "application/json",
                },
                transport=self._transport,
            )
            self._client = client
        except Exception:
            # Ensure cleanup on partial initialization failure
            if client:
                await client.aclose()
            raise

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def is_open(self) -> bool:
        return self._client is not None

    async def post(self, operation: str, payload: dict[str, Any]) -> dict[str, Any]:
        if not self._client:
            raise RuntimeError("Provider not initialized")

        url = f"/openai/deployments/{self.config.deployment}/{operation}"
        params = {"api-version": self.config.api_version}

        last_error = None
        for attempt in range(self.config.max_retries):
            try:
                response = await self._client.post(url, params=params, json=payload)

                if response.status_code == 200:
                    return response.json()

                elif response.status_code == 429:
                    retry_after = float(response.headers.get("Retry-After", self._backoff(attempt)))
                    logger.warning(f"Azure OpenAI throttled, retrying in {retry_after}s")
                    last_error = RuntimeError("Azure OpenAI rate limit exceeded")
                    await asyncio.sleep(retry_after)
                    continue

                elif response.status_code >= 500:
                    last_error = RuntimeError(f"Azure OpenAI server error ({response.status_code})")
                    await asyncio.sleep(self._backoff(attempt))
                    continue

                else:
                    error = response.json().get("error", {}).get("message", response.text)
                    raise RuntimeError(f"Azure OpenAI API error ({response.status_code}): {error}")

            except (httpx.TimeoutException, httpx.RequestError) as e:
                last_error = e
                await asyncio.sleep(self._backoff(attempt))

        raise RuntimeError(f"Azure OpenAI API failed after {self.config.max_retries} retries: {last_error}")

    def _backoff(self, attempt: int) -> float:
        if self.config.backoff_base <= 0:
            return 0.0
        return min(self.config.backoff_base ** attempt, self.config.backoff_max)


class AzureOpenAIEmbeddingProvider(EmbeddingProvider[AzureOpenAIConfig]):
    """Azure OpenAI embedding deployment."""

    def __init__(
        self,
        config: AzureOpenAIConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config)
        self._api = _AzureOpenAIClient(config, transport=transport)

    @property
    def dimensions(self) -> int:
        return self.config.dimensions or DEFAULT_DIMENSIONS

    @property
    def model_name(self) -> str:
        return self.config.deployment

    async def initialize(self) -> None:
        await self._api.open()
        self._initialized = True

    async def shutdown(self) -> None:
        await self._api.close()
        self._initialized = False

    async def health_check(self) -> ProviderHealth:
        if not self._api.is_open:
            return ProviderHealth(
                status=ProviderStatus.UNAVAILABLE,
                message="Client not initialized"
            )

        try:
            start = datetime.now(timezone.utc)
            await self.embed("health check")
            latency = (datetime.now(timezone.utc) - start).total_seconds() * 1000
            return ProviderHealth(
                status=ProviderStatus.HEALTHY,
                latency_ms=latency
            )
        except Exception as e:
            return ProviderHealth(
                status=ProviderStatus.UNAVAILABLE,
                message=str(e)
            )

    async def embed(self, text: str) -> list[float]:
        results = await self.embed_batch([text])
        return results[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        payload: dict[str, Any] = {"input": [self._clean_text(t) for t in texts]}
        if self.config.dimensions:
            payload["dimensions"] = self.config.dimensions
        data = await self._api.post("embeddings", payload)
        embeddings = sorted(data["data"], key=lambda x: x["index"])
        return [normalize_embedding(e["embedding"]) for e in embeddings]

    def _clean_text(self, text: str) -> str:
        cleaned = " ".join(text.split())
        max_bytes = self.config.max_token_total * 4
        encoded = cleaned.encode('utf-8')
        if len(encoded) > max_bytes:
            cleaned = encoded[:max_bytes].decode('utf-8', errors='ignore')
        return cleaned


class AzureOpenAITextGenerationProvider(TextGenerationProvider[AzureOpenAIConfig]):
    """Azure OpenAI chat completion deployment used for answers."""

    def __init__(
        self,
        config: AzureOpenAIConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config)
        self._api = _AzureOpenAIClient(config, transport=transport)

    @property
    def model_name(self) -> str:
        return self.config.deployment

    async def initialize(self) -> None:
        await self._api.open()
        self._initialized = True

    async def shutdown(self) -> None:
        await self._api.close()
        self._initialized = False

    async def health_check(self) -> ProviderHealth:
        if not self._api.is_open:
            return ProviderHealth(
                status=ProviderStatus.UNAVAILABLE,
                message="Client not initialized"
            )
        return ProviderHealth(status=ProviderStatus.HEALTHY)

    async def generate(
        self,
        prompt: str,
        max_tokens: int = 300,
        temperature: float = 0.0,
        top_p: float = 0.0,
    ) -> str:
        payload = {
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": temperature,
            "top_p": top_p,
        }
        data = await self._api.post("chat/completions", payload)
        choices = data.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("message", {}).get("content") or "").strip()
