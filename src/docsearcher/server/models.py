"""Pydantic models for HTTP API responses."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..interfaces import SearchResult


class PartitionResponse(BaseModel):
    """One matching excerpt."""
    text: str
    relevance: float = Field(..., ge=0.0, le=1.0)
    partition_number: int
    last_update: Optional[datetime] = None
    tags: dict[str, list[str]] = Field(default_factory=dict)


class CitationResponse(BaseModel):
    """A source document and its matching excerpts."""
    source_id: str
    link: str
    source_name: str
    relevance: float
    partitions: list[PartitionResponse]


class SearchResponse(BaseModel):
    """Response from a search."""
    query: str
    no_result: bool
    results: list[CitationResponse]

    @classmethod
    def from_result(cls, result: SearchResult) -> "SearchResponse":
        return cls(
            query=result.query,
            no_result=result.no_result,
            results=[
                CitationResponse(
                    source_id=c.source_id,
                    link=c.link,
                    source_name=c.source_name,
                    relevance=c.relevance,
                    partitions=[
                        PartitionResponse(
                            text=p.text,
                            relevance=max(0.0, min(1.0, p.relevance)),
                            partition_number=p.partition_number,
                            last_update=p.last_update,
                            tags=p.tags,
                        )
                        for p in c.partitions
                    ],
                )
                for c in result.results
            ],
        )


class ProviderHealthResponse(BaseModel):
    """Health of one backend."""
    status: str
    latency_ms: Optional[float] = None
    message: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
    providers: dict[str, ProviderHealthResponse] = Field(default_factory=dict)
    version: str = "0.1.0"
