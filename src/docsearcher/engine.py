"""Memory engine - the composed, ready-to-query set of backends.

A ``MemoryEngine`` is built once by ``ServiceComposer`` and then shared
read-only by every request. It embeds queries, asks the storage backend
for similar partitions and reshapes them into citations. It does not
implement indexing or vector distance itself.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Union

from .config import MemoryConfig, SearchClientConfig
from .errors import SearchFailure
from .filters import MemoryFilter
from .interfaces import (
    Citation,
    MemoryAnswer,
    MemoryRecord,
    Partition,
    SearchResult,
    PAYLOAD_FILE,
    PAYLOAD_LAST_UPDATE,
    PAYLOAD_TEXT,
    PAYLOAD_URL,
    TAG_DOCUMENT_ID,
    TAG_FILE_NAME,
    TAG_PARTITION_NUMBER,
)
from .providers.base import (
    EmbeddingProvider,
    StorageProvider,
    TextGenerationProvider,
    ProviderHealth,
)

logger = logging.getLogger(__name__)

DEFAULT_INDEX = "default"

ASK_PROMPT = """Facts:
{facts}
======
Given only the facts above, provide a comprehensive answer.
You don't know where the knowledge comes from, just answer.
If you don't have sufficient information, reply with '{empty_answer}'.
Question: {question}
Answer: """


def partition_text(text: str, max_chars: int) -> list[str]:
    """Split text into partitions of at most ``max_chars`` characters.

    Paragraphs (blank-line separated) are packed together while they fit;
    a paragraph longer than ``max_chars`` is split on whitespace, and a
    single word longer than that is cut.
    """
    paragraphs = [" ".join(p.split()) for p in text.split("\n\n")]
    paragraphs = [p for p in paragraphs if p]

    pieces: list[str] = []
    for paragraph in paragraphs:
        if len(paragraph) <= max_chars:
            pieces.append(paragraph)
            continue
        current = ""
        for word in paragraph.split(" "):
            while len(word) > max_chars:
                if current:
                    pieces.append(current)
                    current = ""
                pieces.append(word[:max_chars])
                word = word[max_chars:]
            if not word:
                continue
            candidate = f"{current} {word}" if current else word
            if len(candidate) > max_chars:
                pieces.append(current)
                current = word
            else:
                current = candidate
        if current:
            pieces.append(current)

    partitions: list[str] = []
    current = ""
    for piece in pieces:
        candidate = f"{current}\n\n{piece}" if current else piece
        if len(candidate) > max_chars:
            partitions.append(current)
            current = piece
        else:
            current = candidate
    if current:
        partitions.append(current)
    return partitions


class MemoryEngine:
    """Composed memory engine.

    Usage:
        engine = ServiceComposer(config).compose()

        async with engine:
            result = await engine.search("budget", filters=[MemoryFilter().by_tag("chatid", "42")])
    """

    def __init__(
        self,
        config: MemoryConfig,
        search_client: SearchClientConfig,
        storage: StorageProvider,
        embedding: Optional[EmbeddingProvider] = None,
        text_generator: Optional[TextGenerationProvider] = None,
    ):
        self.config = config
        self.search_client = search_client
        self._storage = storage
        self._embedding = embedding
        self._text_generator = text_generator
        self._started = False

    async def start(self) -> None:
        """Initialize all backends.

        If one backend fails to initialize, the ones initialized before it
        are shut down again and the error is re-raised.
        """
        if self._started:
            return

        initialized = []
        try:
            for provider in self._providers():
                if not provider.is_initialized:
                    await provider.initialize()
                    initialized.append(provider)
        except Exception:
            logger.error(f"Backend initialization failed, shutting down {len(initialized)} started backends")
            for provider in reversed(initialized):
                await provider.shutdown()
            raise

        self._started = True
        logger.info(
            "Memory engine started "
            f"(storage: {type(self._storage).__name__}, "
            f"embedding: {type(self._embedding).__name__ if self._embedding else None}, "
            f"text: {type(self._text_generator).__name__ if self._text_generator else None})"
        )

    async def stop(self) -> None:
        """Shutdown all backends in reverse order."""
        if not self._started:
            return

        for provider in reversed(self._providers()):
            await provider.shutdown()

        self._started = False
        logger.info("Memory engine stopped")

    async def health_check(self) -> dict[str, ProviderHealth]:
        """Check health of all backends."""
        results = {"storage": await self._storage.health_check()}
        if self._embedding:
            results["embedding"] = await self._embedding.health_check()
        if self._text_generator:
            results["text_generator"] = await self._text_generator.health_check()
        return results

    @property
    def storage(self) -> StorageProvider:
        return self._storage

    @property
    def embedding(self) -> Optional[EmbeddingProvider]:
        return self._embedding

    @property
    def text_generator(self) -> Optional[TextGenerationProvider]:
        return self._text_generator

    @property
    def is_started(self) -> bool:
        return self._started

    async def search(
        self,
        query: str,
        index: Optional[str] = None,
        filters: Optional[list[MemoryFilter]] = None,
        min_relevance: float = 0.0,
        limit: int = -1,
    ) -> SearchResult:
        """Search the index for partitions relevant to ``query``.

        Args:
            query: Free-text query
            index: Index name (default index if None)
            filters: Records must match at least one filter
            min_relevance: Inclusive lower bound on relevance
            limit: Max partitions fetched from storage, -1 for no bound

        Returns:
            SearchResult with citations grouped by source document

        Raises:
            SearchFailure: If no embedding generator is available or a backend faults
        """
        self._ensure_started()

        if not query or not query.strip():
            return SearchResult(query=query)

        if self._embedding is None:
            raise SearchFailure(
                "No embedding generator configured for retrieval "
                f"(Retrieval.EmbeddingGeneratorType='{self.config.retrieval.embedding_generator_type}')"
            )

        index = index or DEFAULT_INDEX
        try:
            query_embedding = await self._embedding.embed(query)
            matches = await self._storage.get_similar_records(
                index,
                query_embedding,
                filters=filters,
                min_relevance=min_relevance,
                limit=limit,
            )
        except SearchFailure:
            raise
        except Exception as e:
            raise SearchFailure(f"Search failed on index '{index}': {e}") from e

        return SearchResult(query=query, results=self._to_citations(index, matches))

    async def ask(
        self,
        question: str,
        index: Optional[str] = None,
        filters: Optional[list[MemoryFilter]] = None,
        min_relevance: float = 0.0,
    ) -> MemoryAnswer:
        """Answer a question from the most relevant stored facts.

        Raises:
            SearchFailure: If retrieval or text generation fails
        """
        tuning = self.search_client
        if self._text_generator is None:
            raise SearchFailure(
                "No text generator configured "
                f"(TextGeneratorType='{self.config.text_generator_type}')"
            )

        result = await self.search(
            question,
            index=index,
            filters=filters,
            min_relevance=min_relevance,
            limit=tuning.max_matches_count,
        )
        if result.no_result:
            return MemoryAnswer(question=question, text=tuning.empty_answer)

        facts = self._render_facts(result, tuning)
        prompt = ASK_PROMPT.format(facts=facts, empty_answer=tuning.empty_answer, question=question)
        try:
            text = await self._text_generator.generate(
                prompt,
                max_tokens=tuning.answer_tokens,
                temperature=tuning.temperature,
                top_p=tuning.top_p,
            )
        except Exception as e:
            raise SearchFailure(f"Answer generation failed: {e}") from e

        if not text.strip():
            text = tuning.empty_answer
        return MemoryAnswer(question=question, text=text, relevant_sources=result.results)

    async def import_text(
        self,
        text: str,
        document_id: Optional[str] = None,
        index: Optional[str] = None,
        tags: Optional[dict[str, Union[str, list[str]]]] = None,
        source_url: str = "",
        file_name: str = "content.txt",
    ) -> str:
        """Partition, embed and store a text document.

        Args:
            text: Document content
            document_id: Identifier (generated if None)
            index: Index name (default index if None)
            tags: Extra tags, e.g. {"chatid": "42"}
            source_url: Link returned in citations
            file_name: Source name returned in citations

        Returns:
            The document id

        Raises:
            ValueError: If the text is empty
            RuntimeError: If embeddings are enabled but no generator is configured
        """
        self._ensure_started()

        if not text or not text.strip():
            raise ValueError("Empty content not allowed")

        ingestion = self.config.data_ingestion
        if ingestion.embedding_generation_enabled and self._embedding is None:
            raise RuntimeError("No embedding generator configured for ingestion")

        document_id = document_id or str(uuid.uuid4())
        index = index or DEFAULT_INDEX
        partitions = partition_text(text, ingestion.effective_partition_size)

        vectors: list[Optional[list[float]]] = [None] * len(partitions)
        if ingestion.embedding_generation_enabled:
            vectors = await self._embedding.embed_batch(partitions)

        dimensions = self._embedding.dimensions if self._embedding else 0
        await self._storage.create_index(index, dimensions)

        base_tags: dict[str, list[str]] = {
            TAG_DOCUMENT_ID: [document_id],
            TAG_FILE_NAME: [file_name],
        }
        for name, value in (tags or {}).items():
            base_tags[name] = list(value) if isinstance(value, (list, tuple)) else [value]

        now = datetime.now(timezone.utc).isoformat()
        for number, (content, vector) in enumerate(zip(partitions, vectors)):
            record = MemoryRecord(
                id=f"{document_id}/{number}",
                vector=vector,
                tags={**base_tags, TAG_PARTITION_NUMBER: [str(number)]},
                payload={
                    PAYLOAD_TEXT: content,
                    PAYLOAD_URL: source_url,
                    PAYLOAD_FILE: file_name,
                    PAYLOAD_LAST_UPDATE: now,
                },
            )
            await self._storage.upsert(index, record)

        logger.info(f"Imported document {document_id} into '{index}' ({len(partitions)} partitions)")
        return document_id

    def _to_citations(
        self,
        index: str,
        matches: list[tuple[MemoryRecord, float]],
    ) -> list[Citation]:
        citations: dict[str, Citation] = {}
        for record, relevance in matches:
            document_id = record.document_id
            citation = citations.get(document_id)
            if citation is None:
                citation = Citation(
                    source_id=document_id,
                    link=record.payload.get(PAYLOAD_URL) or f"{index}/{document_id}",
                    source_name=record.payload.get(PAYLOAD_FILE, ""),
                )
                citations[document_id] = citation
            citation.partitions.append(Partition(
                text=str(record.payload.get(PAYLOAD_TEXT, "")),
                relevance=relevance,
                partition_number=record.partition_number,
                last_update=_parse_time(record.payload.get(PAYLOAD_LAST_UPDATE)),
                tags={k: v for k, v in record.tags.items() if not k.startswith("__")},
            ))

        for citation in citations.values():
            citation.partitions.sort(key=lambda p: p.relevance, reverse=True)
        return list(citations.values())

    @staticmethod
    def _render_facts(result: SearchResult, tuning: SearchClientConfig) -> str:
        facts = []
        size = 0
        partitions = [
            (citation, partition)
            for citation in result.results
            for partition in citation.partitions
        ]
        partitions.sort(key=lambda cp: cp[1].relevance, reverse=True)
        for citation, partition in partitions[:tuning.max_matches_count]:
            fact = tuning.fact_template.format(
                source=citation.source_name or citation.source_id,
                relevance=f"{partition.relevance:.1%}",
                content=partition.text,
            )
            if tuning.max_ask_prompt_size > 0 and size + len(fact) > tuning.max_ask_prompt_size:
                break
            facts.append(fact)
            size += len(fact)
        return "\n".join(facts)

    def _providers(self) -> list[Any]:
        providers = [self._storage]
        if self._embedding:
            providers.append(self._embedding)
        if self._text_generator:
            providers.append(self._text_generator)
        return providers

    def _ensure_started(self) -> None:
        if not self._started:
            raise RuntimeError("MemoryEngine not started. Call start() first.")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()


def _parse_time(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None
