"""Tests for the memory engine."""

import pytest

from docsearcher.composer import ServiceComposer, compose_engine
from docsearcher.config import MemoryConfig
from docsearcher.engine import MemoryEngine, partition_text
from docsearcher.errors import SearchFailure
from docsearcher.filters import MemoryFilter
from docsearcher.providers.base import ProviderStatus
from docsearcher.search import search_memory

BUDGET = "The quarterly budget review is scheduled for Friday"
HOLIDAY = "The office is closed for the winter holidays"


class TestPartitionText:
    """Tests for partition_text()."""

    def test_short_text_single_partition(self):
        assert partition_text("hello world", 100) == ["hello world"]

    def test_whitespace_collapsed(self):
        assert partition_text("  hello \n  world  ", 100) == ["hello world"]

    def test_paragraphs_packed(self):
        text = "first paragraph\n\nsecond paragraph"
        assert partition_text(text, 100) == ["first paragraph\n\nsecond paragraph"]

    def test_paragraphs_split_when_too_long(self):
        text = "first paragraph\n\nsecond paragraph"
        assert partition_text(text, 20) == ["first paragraph", "second paragraph"]

    def test_long_paragraph_split_on_words(self):
        parts = partition_text("one two three four five", 9)

        assert parts == ["one two", "three", "four five"]
        assert all(len(p) <= 9 for p in parts)

    def test_long_word_cut(self):
        assert partition_text("abcdefghij", 4) == ["abcd", "efgh", "ij"]

    def test_empty(self):
        assert partition_text("  \n\n ", 10) == []


class TestLifecycle:
    """Tests for start/stop and health."""

    async def test_search_before_start(self, memory_config):
        engine = compose_engine(memory_config)

        with pytest.raises(RuntimeError, match="not started"):
            await engine.search("budget")

    async def test_context_manager(self, memory_config):
        engine = compose_engine(memory_config)

        async with engine:
            assert engine.is_started
            assert engine.storage.is_initialized

        assert not engine.is_started

    async def test_start_is_idempotent(self, engine):
        await engine.start()
        assert engine.is_started

    async def test_failed_start_shuts_down_started_backends(self):
        """A backend failing to initialize releases the ones before it."""
        engine = compose_engine({
            "TextGeneratorType": "Mock",
            "DataIngestion": {"EmbeddingGenerationEnabled": False},
            "Retrieval": {
                "EmbeddingGeneratorType": "AzureOpenAIEmbedding",
                "MemoryDbType": "AzureAISearch",
            },
            "Services": {
                "AzureAISearch": {"Endpoint": "https://search.example.net", "APIKey": "key"},
            },
        })

        with pytest.raises(ValueError, match="Azure OpenAI endpoint required"):
            await engine.start()

        assert engine.storage._client is None
        assert not engine.storage.is_initialized
        assert not engine.text_generator.is_initialized
        assert not engine.is_started

    async def test_failed_start_shutdown_order(self, memory_config):
        engine = compose_engine(memory_config)
        calls = []
        storage_shutdown = engine.storage.shutdown

        async def record_shutdown():
            calls.append("storage")
            await storage_shutdown()

        async def fail():
            raise RuntimeError("boom")

        engine.storage.shutdown = record_shutdown
        engine.text_generator.initialize = fail

        with pytest.raises(RuntimeError, match="boom"):
            await engine.start()

        assert calls == ["storage"]
        assert not engine.embedding.is_initialized
        assert not engine.is_started

    async def test_health(self, engine):
        health = await engine.health_check()

        assert set(health) == {"storage", "embedding", "text_generator"}
        assert all(h.status == ProviderStatus.HEALTHY for h in health.values())


class TestImportAndSearch:
    """Tests for import_text() and search()."""

    async def test_exact_text_found(self, engine):
        document_id = await engine.import_text(BUDGET, document_id="doc-1", tags={"chatid": "42"})

        result = await engine.search(BUDGET, min_relevance=0.5)

        assert document_id == "doc-1"
        assert [c.source_id for c in result.results] == ["doc-1"]
        citation = result.results[0]
        assert citation.relevance == pytest.approx(1.0)
        assert citation.link == "default/doc-1"
        assert citation.source_name == "content.txt"
        assert citation.partitions[0].text == BUDGET

    async def test_partition_tags_exclude_reserved(self, engine):
        await engine.import_text(BUDGET, document_id="doc-1", tags={"chatid": "42", "memory": ["notes"]})

        result = await engine.search(BUDGET)

        partition = result.results[0].partitions[0]
        assert partition.tags == {"chatid": ["42"], "memory": ["notes"]}
        assert partition.partition_number == 0
        assert partition.last_update is not None

    async def test_source_url_used_as_link(self, engine):
        await engine.import_text(BUDGET, document_id="doc-1", source_url="https://example.com/budget")

        result = await engine.search(BUDGET)

        assert result.results[0].link == "https://example.com/budget"

    async def test_generated_document_id(self, engine):
        document_id = await engine.import_text(BUDGET)
        assert document_id

    async def test_filters_restrict_records(self, engine):
        await engine.import_text(BUDGET, document_id="chat-42", tags={"chatid": "42"})
        await engine.import_text(BUDGET, document_id="chat-7", tags={"chatid": "7"})

        result = await engine.search(BUDGET, filters=[MemoryFilter().by_tag("chatid", "42")])

        assert [c.source_id for c in result.results] == ["chat-42"]

    async def test_indexes_are_separate(self, engine):
        await engine.import_text(BUDGET, document_id="doc-1", index="finance")

        assert (await engine.search(BUDGET, index="finance")).results
        assert (await engine.search(BUDGET, index="other")).no_result

    async def test_empty_query(self, engine):
        result = await engine.search("   ")
        assert result.no_result

    async def test_empty_text_rejected(self, engine):
        with pytest.raises(ValueError, match="Empty content"):
            await engine.import_text("  ")

    async def test_embedding_disabled_stores_unsearchable_records(self):
        config = MemoryConfig.for_testing()
        config.data_ingestion.embedding_generation_enabled = False

        async with compose_engine(config) as engine:
            await engine.import_text(BUDGET, document_id="doc-1")
            result = await engine.search(BUDGET)
            assert engine.storage.count("default") == 1

        assert result.no_result


class TestChatScopedSearch:
    """Tests for search_memory() over real backends."""

    async def test_chat_isolation(self, engine):
        await engine.import_text(BUDGET, document_id="chat-42", tags={"chatid": "42"})
        await engine.import_text(BUDGET, document_id="chat-7", tags={"chatid": "7"})

        result = await search_memory(engine, "default", BUDGET, 0.5, chat_id="42")

        assert [c.source_id for c in result.results] == ["chat-42"]

    async def test_memory_scope(self, engine):
        await engine.import_text(BUDGET, document_id="notes", tags={"chatid": "42", "memory": "notes"})
        await engine.import_text(BUDGET, document_id="mail", tags={"chatid": "42", "memory": "mail"})

        result = await search_memory(engine, "default", BUDGET, 0.5, chat_id="42", memory_name="notes")

        assert [c.source_id for c in result.results] == ["notes"]

    async def test_unrelated_documents_below_threshold(self, engine):
        await engine.import_text(BUDGET, document_id="budget", tags={"chatid": "42"})

        result = await search_memory(engine, "default", HOLIDAY, 0.9, chat_id="42")

        assert result.no_result


class TestMissingBackends:
    """Tests for roles left empty by composition."""

    @pytest.fixture
    def bare_config(self):
        config = MemoryConfig.for_testing()
        config.text_generator_type = "Unregistered"
        config.retrieval.embedding_generator_type = "Unregistered"
        return config

    async def test_search_without_embedding(self, bare_config):
        async with compose_engine(bare_config) as engine:
            with pytest.raises(SearchFailure, match="embedding"):
                await engine.search("budget")

    async def test_import_without_embedding(self, bare_config):
        async with compose_engine(bare_config) as engine:
            with pytest.raises(RuntimeError, match="embedding"):
                await engine.import_text(BUDGET)

    async def test_ask_without_text_generator(self, bare_config):
        async with compose_engine(bare_config) as engine:
            with pytest.raises(SearchFailure, match="text generator"):
                await engine.ask("When is the review?")


class TestAsk:
    """Tests for ask()."""

    @pytest.fixture
    async def answering_engine(self):
        config = MemoryConfig.for_testing()
        config.services["Mock"] = {"Answer": "It is on Friday."}
        async with compose_engine(config) as engine:
            yield engine

    async def test_answer_from_facts(self, answering_engine):
        await answering_engine.import_text(BUDGET, document_id="doc-1", file_name="calendar.txt")

        answer = await answering_engine.ask(BUDGET)

        assert answer.text == "It is on Friday."
        assert [c.source_id for c in answer.relevant_sources] == ["doc-1"]
        prompt = answering_engine.text_generator.prompts[-1]
        assert "[File:calendar.txt;" in prompt
        assert BUDGET in prompt
        assert "INFO NOT FOUND" in prompt

    async def test_no_facts_gives_empty_answer(self, answering_engine):
        answer = await answering_engine.ask("When is the review?")

        assert answer.text == "INFO NOT FOUND"
        assert answer.no_result
        assert answering_engine.text_generator.prompts == []

    async def test_generation_failure(self, memory_config):
        engine = ServiceComposer(memory_config).compose()

        async def broken(*args, **kwargs):
            raise ConnectionError("model offline")

        async with engine:
            await engine.import_text(BUDGET)
            engine.text_generator.generate = broken

            with pytest.raises(SearchFailure, match="model offline"):
                await engine.ask(BUDGET)


def test_engine_exported():
    from docsearcher import MemoryEngine as exported
    assert exported is MemoryEngine
