"""Core records shared by the engine, the backends and the search surface.

Storage backends exchange ``MemoryRecord`` objects; the engine reshapes
matching records into ``SearchResult`` / ``Citation`` / ``Partition`` values
that are created and discarded within one request.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
import uuid

# Reserved tag names written on every imported partition
TAG_DOCUMENT_ID = "__document_id"
TAG_FILE_NAME = "__file_name"
TAG_PARTITION_NUMBER = "__part_n"

# Payload keys
PAYLOAD_TEXT = "text"
PAYLOAD_URL = "url"
PAYLOAD_FILE = "file"
PAYLOAD_LAST_UPDATE = "last_update"


@dataclass
class MemoryRecord:
    """A single stored partition with its vector, tags and payload.

    Attributes:
        id: Unique record identifier
        vector: Embedding of the partition text (None if ingestion skipped it)
        tags: Tag name to list of values, e.g. {"chatid": ["42"]}
        payload: Text, link and bookkeeping fields
    """
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    vector: Optional[list[float]] = None
    tags: dict[str, list[str]] = field(default_factory=dict)
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def document_id(self) -> str:
        values = self.tags.get(TAG_DOCUMENT_ID) or [self.id]
        return values[0]

    @property
    def partition_number(self) -> int:
        values = self.tags.get(TAG_PARTITION_NUMBER) or ["0"]
        try:
            return int(values[0])
        except ValueError:
            return 0

    def __repr__(self) -> str:
        text = str(self.payload.get(PAYLOAD_TEXT, ""))
        preview = text[:40] + "..." if len(text) > 40 else text
        return f"MemoryRecord(id={self.id[:8]}..., document={self.document_id}, text='{preview}')"


@dataclass
class Partition:
    """One matching excerpt of a source document."""
    text: str
    relevance: float
    partition_number: int = 0
    last_update: Optional[datetime] = None
    tags: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class Citation:
    """A source document and the partitions of it that matched a query.

    Attributes:
        source_id: Document identifier
        link: Source URL or storage link
        source_name: File or document name
        partitions: Matching excerpts, highest relevance first
    """
    source_id: str
    link: str = ""
    source_name: str = ""
    partitions: list[Partition] = field(default_factory=list)

    @property
    def relevance(self) -> float:
        """Overall relevance: the best partition score."""
        if not self.partitions:
            return 0.0
        return max(p.relevance for p in self.partitions)


@dataclass
class SearchResult:
    """Result of a search query."""
    query: str
    results: list[Citation] = field(default_factory=list)

    @property
    def no_result(self) -> bool:
        return not self.results

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "noResult": self.no_result,
            "results": [
                {
                    "sourceId": c.source_id,
                    "link": c.link,
                    "sourceName": c.source_name,
                    "relevance": c.relevance,
                    "partitions": [
                        {
                            "text": p.text,
                            "relevance": p.relevance,
                            "partitionNumber": p.partition_number,
                            "lastUpdate": p.last_update.isoformat() if p.last_update else None,
                            "tags": p.tags,
                        }
                        for p in c.partitions
                    ],
                }
                for c in self.results
            ],
        }


@dataclass
class MemoryAnswer:
    """Answer generated from retrieved facts."""
    question: str
    text: str
    relevant_sources: list[Citation] = field(default_factory=list)

    @property
    def no_result(self) -> bool:
        return not self.relevant_sources
