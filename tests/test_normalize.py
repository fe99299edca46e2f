"""Tests for configuration tree normalization."""

import os
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Optional

from docsearcher.config import MemoryConfig, normalize_config_tree, classify, NodeKind


class Color(str, Enum):
    """A str-mixin enum whose value carries whitespace."""
    PADDED = " padded "


class Mode(Enum):
    FAST = "fast"


@dataclass
class Leaf:
    name: str = "  leaf  "
    color: Color = Color.PADDED
    mode: Mode = Mode.FAST
    count: int = 3
    enabled: bool = True


@dataclass
class Branch:
    title: str = "\tbranch\n"
    leaf: Leaf = field(default_factory=Leaf)
    missing: Optional[Leaf] = None
    names: list[str] = field(default_factory=lambda: ["  a  ", " b"])
    pair: tuple[str, str] = ("  x ", " y ")
    extra: dict = field(default_factory=lambda: {"key": "  value  ", "nested": {"deep": " deep "}})


class PlainObject:
    def __init__(self):
        self.label = "  plain  "
        self.child = Leaf()


@dataclass(frozen=True)
class FrozenSection:
    name: str = " frozen "
    leaf: Leaf = field(default_factory=Leaf)


@dataclass
class Holder:
    title: str = " holder "
    section: FrozenSection = field(default_factory=FrozenSection)


class WithReadOnlyProperty:
    def __init__(self):
        self.label = " label "

    @property
    def computed(self):
        return " computed "


class Opaque:
    """  padded doc  """


class WithReferences:
    def __init__(self):
        self.factory = Opaque
        self.module = os
        self.callback = len
        self.label = " refs "


class TestClassify:
    """Tests for value classification."""

    def test_string(self):
        assert classify("x") is NodeKind.STRING

    def test_enum_before_string(self):
        """str-mixin enums are enums, not strings."""
        assert classify(Color.PADDED) is NodeKind.ENUM
        assert classify(Mode.FAST) is NodeKind.ENUM

    def test_indexed(self):
        assert classify([1]) is NodeKind.INDEXED
        assert classify(("a",)) is NodeKind.INDEXED
        assert classify({"a"}) is NodeKind.INDEXED

    def test_composite(self):
        assert classify(Leaf()) is NodeKind.COMPOSITE
        assert classify({"a": 1}) is NodeKind.COMPOSITE
        assert classify(PlainObject()) is NodeKind.COMPOSITE

    def test_references_are_scalars(self):
        assert classify(Opaque) is NodeKind.SCALAR
        assert classify(os) is NodeKind.SCALAR
        assert classify(len) is NodeKind.SCALAR
        assert classify(lambda: None) is NodeKind.SCALAR

    def test_scalars_and_null(self):
        assert classify(1) is NodeKind.SCALAR
        assert classify(1.5) is NodeKind.SCALAR
        assert classify(True) is NodeKind.SCALAR
        assert classify(None) is NodeKind.NULL


class TestNormalizeConfigTree:
    """Tests for normalize_config_tree()."""

    def test_trims_top_level_and_nested_strings(self):
        """Every reachable string leaf is trimmed."""
        tree = Branch()

        normalize_config_tree(tree)

        assert tree.title == "branch"
        assert tree.leaf.name == "leaf"

    def test_enum_leaves_untouched(self):
        """Enum values are identical before and after."""
        tree = Branch()

        normalize_config_tree(tree)

        assert tree.leaf.color is Color.PADDED
        assert tree.leaf.color.value == " padded "
        assert tree.leaf.mode is Mode.FAST

    def test_indexed_values_untouched(self):
        """Lists and tuples of strings are not trimmed."""
        tree = Branch()

        normalize_config_tree(tree)

        assert tree.names == ["  a  ", " b"]
        assert tree.pair == ("  x ", " y ")

    def test_null_composite_skipped(self):
        tree = Branch()

        normalize_config_tree(tree)

        assert tree.missing is None

    def test_scalars_untouched(self):
        tree = Branch()

        normalize_config_tree(tree)

        assert tree.leaf.count == 3
        assert tree.leaf.enabled is True

    def test_mappings_are_traversed(self):
        """Nested dicts are composite nodes too."""
        tree = Branch()

        normalize_config_tree(tree)

        assert tree.extra["key"] == "value"
        assert tree.extra["nested"]["deep"] == "deep"

    def test_plain_objects_are_traversed(self):
        obj = PlainObject()

        normalize_config_tree(obj)

        assert obj.label == "plain"
        assert obj.child.name == "leaf"

    def test_read_only_mapping_left_alone(self):
        """Read-only mappings are visited but cannot be rewritten."""
        inner = Leaf()
        tree = {"frozen": MappingProxyType({"text": "  x  ", "leaf": inner})}

        normalize_config_tree(tree)

        assert tree["frozen"]["text"] == "  x  "
        assert inner.name == "leaf"

    def test_returns_same_root(self):
        tree = Branch()
        assert normalize_config_tree(tree) is tree

    def test_non_composite_root_returned_unchanged(self):
        assert normalize_config_tree("  text  ") == "  text  "
        assert normalize_config_tree(None) is None
        assert normalize_config_tree(["  a "]) == ["  a "]

    def test_memory_config(self):
        """Selectors and service sections of a memory config are trimmed."""
        config = MemoryConfig.from_dict({
            "TextGeneratorType": " AzureOpenAIText ",
            "DataIngestion": {"EmbeddingGeneratorTypes": [" AzureOpenAIEmbedding "]},
            "Retrieval": {
                "EmbeddingGeneratorType": "AzureOpenAIEmbedding\n",
                "MemoryDbType": "  AzureAISearch",
            },
            "Services": {"AzureAISearch": {"Endpoint": " https://search.example.net "}},
        })

        normalize_config_tree(config)

        assert config.text_generator_type == "AzureOpenAIText"
        assert config.retrieval.embedding_generator_type == "AzureOpenAIEmbedding"
        assert config.retrieval.memory_db_type == "AzureAISearch"
        assert config.services["AzureAISearch"]["Endpoint"] == "https://search.example.net"
        # Selector lists are indexed values
        assert config.data_ingestion.embedding_generator_types == [" AzureOpenAIEmbedding "]

    def test_frozen_dataclass_skipped(self):
        """Frozen sections are traversed but not written."""
        tree = Holder()

        normalize_config_tree(tree)

        assert tree.title == "holder"
        assert tree.section.name == " frozen "
        assert tree.section.leaf.name == "leaf"

    def test_frozen_root(self):
        section = FrozenSection()
        assert normalize_config_tree(section) is section
        assert section.name == " frozen "

    def test_read_only_property_skipped(self):
        obj = WithReadOnlyProperty()
        obj.__dict__["computed"] = " shadow "

        normalize_config_tree(obj)

        assert obj.label == "label"
        assert obj.computed == " computed "
        assert obj.__dict__["computed"] == " shadow "

    def test_references_left_alone(self):
        """Class, module and function references are not descended into."""
        obj = WithReferences()

        normalize_config_tree(obj)

        assert obj.label == "refs"
        assert obj.factory is Opaque
        assert Opaque.__doc__ == "  padded doc  "
        assert obj.module is os
        assert obj.callback is len
