"""Tag filters used to scope a search to a chat and, optionally, a memory."""

from typing import Optional


class MemoryTags:
    """Tag names used to scope stored memory."""

    # Associates memory with a specific chat
    CHAT_ID = "chatid"

    # Associates memory with a specific memory type
    MEMORY = "memory"


class MemoryFilter:
    """Conjunction of required tag=value pairs.

    A record matches only if every pair is present on it. Pairs keep
    insertion order and duplicates are ignored. Two filters with the same
    pairs compare equal regardless of order.
    """

    def __init__(self, pairs: Optional[list[tuple[str, str]]] = None):
        self._pairs: list[tuple[str, str]] = []
        for name, value in pairs or []:
            self.by_tag(name, value)

    def by_tag(self, name: str, value: str) -> "MemoryFilter":
        """Require ``name`` to carry ``value``."""
        pair = (name, value)
        if pair not in self._pairs:
            self._pairs.append(pair)
        return self

    @property
    def pairs(self) -> tuple[tuple[str, str], ...]:
        return tuple(self._pairs)

    def is_empty(self) -> bool:
        return not self._pairs

    def matches(self, tags: dict[str, list[str]]) -> bool:
        return all(value in tags.get(name, []) for name, value in self._pairs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MemoryFilter):
            return NotImplemented
        return set(self._pairs) == set(other._pairs)

    def __hash__(self) -> int:
        return hash(frozenset(self._pairs))

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v}" for k, v in self._pairs)
        return f"MemoryFilter({inner})"


def build_search_filter(chat_id: str, memory_name: Optional[str] = None) -> MemoryFilter:
    """Build the filter for a chat-scoped search.

    The chat scope is always present; the memory scope is added only when
    ``memory_name`` is not blank.

    Raises:
        ValueError: If ``chat_id`` is empty or blank
    """
    if not chat_id or not chat_id.strip():
        raise ValueError("chat_id is required")

    search_filter = MemoryFilter().by_tag(MemoryTags.CHAT_ID, chat_id)
    if memory_name is not None and memory_name.strip():
        search_filter.by_tag(MemoryTags.MEMORY, memory_name)
    return search_filter
