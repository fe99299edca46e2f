"""Azure AI Search vector storage backend.

Records are stored as documents with four fields: ``id``, ``embedding``,
``tags`` (a string collection of "name:value" entries) and ``payload`` (a
JSON string). Tag filters become OData ``tags/any(...)`` clauses.
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from .base import StorageProvider, ProviderHealth, ProviderStatus
from ..config.providers import AzureAISearchConfig
from ..filters import MemoryFilter
from ..interfaces import MemoryRecord

logger = logging.getLogger(__name__)

# Upper bound on "k" when the caller asks for unlimited results
MAX_K = 1000

_INVALID_INDEX_CHARS = re.compile(r"[^a-z0-9-]")


def normalize_index_name(index: str) -> str:
    """Azure index names are lowercase letters, digits and dashes."""
    name = _INVALID_INDEX_CHARS.sub("-", (index or "default").strip().lower())
    name = name.strip("-")
    return name or "default"


def score_to_relevance(score: float) -> float:
    """Convert an Azure cosine @search.score back to cosine similarity.

    Azure reports 1 / (1 + (1 - cos)) for cosine vector fields.
    """
    if score <= 0:
        return 0.0
    return max(0.0, min(1.0, 2.0 - 1.0 / score))


def _escape(value: str) -> str:
    return value.replace("'", "''")


def build_odata_filter(filters: Optional[list[MemoryFilter]]) -> Optional[str]:
    """Render filters as OData: OR across filters, AND within one filter."""
    clauses = []
    for f in filters or []:
        if f.is_empty():
            continue
        parts = [f"tags/any(s: s eq '{_escape(f'{name}:{value}')}')" for name, value in f.pairs]
        clauses.append("(" + " and ".join(parts) + ")")
    if not clauses:
        return None
    return " or ".join(clauses)


def _tags_to_field(tags: dict[str, list[str]]) -> list[str]:
    return [f"{name}:{value}" for name, values in tags.items() for value in values]


def _field_to_tags(values: list[str]) -> dict[str, list[str]]:
    tags: dict[str, list[str]] = {}
    for entry in values or []:
        name, _, value = entry.partition(":")
        tags.setdefault(name, []).append(value)
    return tags


class AzureAISearchStorageProvider(StorageProvider[AzureAISearchConfig]):
    """Azure AI Search backed vector store."""

    def __init__(
        self,
        config: AzureAISearchConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        """Create the async HTTP client.

        Raises:
            ValueError: If endpoint or API key is not configured
        """
        if not self.config.endpoint:
            raise ValueError("Azure AI Search endpoint required")
        if not self.config.api_key:
            raise ValueError("Azure AI Search API key required")

        self._client = httpx.AsyncClient(
            base_url=self.config.endpoint.rstrip("/"),
            timeout=httpx.Timeout(self.config.timeout_seconds),
            headers={
                "api-key": self.config.api_key,
                "Content-Type": "application/json",
            },
            transport=self._transport,
        )
        self._initialized = True

    async def shutdown(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
        self._initialized = False

    async def health_check(self) -> ProviderHealth:
        if not self._client:
            return ProviderHealth(
                status=ProviderStatus.UNAVAILABLE,
                message="Client not initialized"
            )
        try:
            start = datetime.now(timezone.utc)
            response = await self._client.get("/indexes", params=self._params())
            latency = (datetime.now(timezone.utc) - start).total_seconds() * 1000
            if response.status_code != 200:
                return ProviderHealth(
                    status=ProviderStatus.DEGRADED,
                    latency_ms=latency,
                    message=f"HTTP {response.status_code}",
                )
            return ProviderHealth(status=ProviderStatus.HEALTHY, latency_ms=latency)
        except httpx.HTTPError as e:
            return ProviderHealth(status=ProviderStatus.UNAVAILABLE, message=str(e))

    async def create_index(self, index: str, vector_size: int) -> None:
        name = normalize_index_name(index)
        schema = {
            "name": name,
            "fields": [
                {"name": "id", "type": "Edm.String", "key": True},
                {
                    "name": "embedding",
                    "type": "Collection(Edm.Single)",
                    "searchable": True,
                    "dimensions": vector_size,
                    "vectorSearchProfile": "default",
                },
                {"name": "tags", "type": "Collection(Edm.String)", "filterable": True},
                {"name": "payload", "type": "Edm.String"},
            ],
            "vectorSearch": {
                "algorithms": [{"name": "hnsw", "kind": "hnsw", "hnswParameters": {"metric": "cosine"}}],
                "profiles": [{"name": "default", "algorithm": "hnsw"}],
            },
        }
        response = await self._request("PUT", f"/indexes/{name}", json=schema)
        self._raise_for_status(response, f"create index '{name}'")

    async def upsert(self, index: str, record: MemoryRecord) -> str:
        name = normalize_index_name(index)
        document = {
            "@search.action": "mergeOrUpload",
            "id": record.id,
            "embedding": record.vector,
            "tags": _tags_to_field(record.tags),
            "payload": json.dumps(record.payload, default=str),
        }
        response = await self._request("POST", f"/indexes/{name}/docs/index", json={"value": [document]})
        self._raise_for_status(response, f"upsert into '{name}'")
        return record.id

    async def get_similar_records(
        self,
        index: str,
        query_embedding: list[float],
        filters: Optional[list[MemoryFilter]] = None,
        min_relevance: float = 0.0,
        limit: int = -1,
    ) -> list[tuple[MemoryRecord, float]]:
        name = normalize_index_name(index)
        k = MAX_K if limit < 0 else min(limit, MAX_K)
        if k == 0:
            return []

        body: dict[str, Any] = {
            "vectorQueries": [
                {"kind": "vector", "vector": query_embedding, "fields": "embedding", "k": k}
            ],
            "select": "id,tags,payload",
            "top": k,
        }
        odata = build_odata_filter(filters)
        if odata:
            body["filter"] = odata

        response = await self._request("POST", f"/indexes/{name}/docs/search", json=body)
        if response.status_code == 404:
            logger.warning(f"Index '{name}' not found")
            return []
        self._raise_for_status(response, f"search '{name}'")

        results = []
        for doc in response.json().get("value", []):
            relevance = score_to_relevance(float(doc.get("@search.score", 0.0)))
            if relevance < min_relevance:
                continue
            record = MemoryRecord(
                id=doc["id"],
                tags=_field_to_tags(doc.get("tags", [])),
                payload=json.loads(doc.get("payload") or "{}"),
            )
            results.append((record, relevance))

        results.sort(key=lambda x: x[1], reverse=True)
        return results

    async def delete(self, index: str, record_id: str) -> bool:
        name = normalize_index_name(index)
        document = {"@search.action": "delete", "id": record_id}
        response = await self._request("POST", f"/indexes/{name}/docs/index", json={"value": [document]})
        if response.status_code == 404:
            return False
        self._raise_for_status(response, f"delete from '{name}'")
        return True

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        if not self._client:
            raise RuntimeError("Provider not initialized")
        return await self._client.request(method, url, params=self._params(), **kwargs)

    def _params(self) -> dict[str, str]:
        return {"api-version": self.config.api_version}

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.status_code >= 400:
            try:
                error = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                error = response.text
            raise RuntimeError(f"Azure AI Search failed to {action} ({response.status_code}): {error}")
