"""Tests for tag filters."""

import pytest

from docsearcher.filters import MemoryFilter, MemoryTags, build_search_filter


class TestMemoryFilter:
    """Tests for MemoryFilter."""

    def test_by_tag_is_fluent(self):
        f = MemoryFilter()
        assert f.by_tag("chatid", "42") is f
        assert f.pairs == (("chatid", "42"),)

    def test_duplicates_ignored(self):
        f = MemoryFilter().by_tag("chatid", "42").by_tag("chatid", "42")
        assert f.pairs == (("chatid", "42"),)

    def test_is_empty(self):
        assert MemoryFilter().is_empty()
        assert not MemoryFilter([("chatid", "42")]).is_empty()

    def test_matches_requires_every_pair(self):
        f = MemoryFilter().by_tag("chatid", "42").by_tag("memory", "notes")

        assert f.matches({"chatid": ["42"], "memory": ["notes", "other"]})
        assert not f.matches({"chatid": ["42"]})
        assert not f.matches({"chatid": ["7"], "memory": ["notes"]})

    def test_empty_filter_matches_everything(self):
        assert MemoryFilter().matches({})

    def test_equality_ignores_order(self):
        a = MemoryFilter().by_tag("chatid", "42").by_tag("memory", "notes")
        b = MemoryFilter().by_tag("memory", "notes").by_tag("chatid", "42")

        assert a == b
        assert hash(a) == hash(b)
        assert a != MemoryFilter().by_tag("chatid", "42")

    def test_repr(self):
        f = MemoryFilter().by_tag("chatid", "42")
        assert repr(f) == "MemoryFilter(chatid=42)"


class TestBuildSearchFilter:
    """Tests for build_search_filter()."""

    def test_chat_only(self):
        f = build_search_filter("42")
        assert f.pairs == ((MemoryTags.CHAT_ID, "42"),)

    def test_chat_and_memory(self):
        f = build_search_filter("42", "notes")
        assert f.pairs == (("chatid", "42"), ("memory", "notes"))

    @pytest.mark.parametrize("memory_name", [None, "", "   "])
    def test_blank_memory_omitted(self, memory_name):
        f = build_search_filter("42", memory_name)
        assert f.pairs == (("chatid", "42"),)

    @pytest.mark.parametrize("chat_id", ["", "  ", None])
    def test_blank_chat_rejected(self, chat_id):
        with pytest.raises(ValueError, match="chat_id"):
            build_search_filter(chat_id)
