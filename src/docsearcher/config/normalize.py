"""Whitespace normalization of configuration trees.

Values read from settings files and environment variables often carry
incidental whitespace ("AzureAISearch " or a trailing newline on an API
key). ``normalize_config_tree`` walks a configuration object breadth-first
and trims every string leaf it can reach.

Each value is classified into a ``NodeKind`` and the walk dispatches on
that kind:

- STRING: trimmed in place
- ENUM: left untouched, never descended into
- INDEXED: lists, tuples and sets are skipped, their items are not trimmed
- COMPOSITE: dataclasses, mappings and plain objects are queued
- SCALAR / NULL: left alone, as are classes, modules and functions

The configuration graph is assumed to be a tree. Cycles are not detected.
"""

from collections import deque
from collections.abc import Mapping, MutableMapping
from dataclasses import fields, is_dataclass
from enum import Enum
from types import ModuleType
from typing import Any, Iterator


class NodeKind(Enum):
    """Kind of a configuration value."""
    STRING = "string"
    ENUM = "enum"
    INDEXED = "indexed"
    COMPOSITE = "composite"
    SCALAR = "scalar"
    NULL = "null"


_INDEXED_TYPES = (list, tuple, set, frozenset)
_SCALAR_TYPES = (bool, int, float, complex, bytes, bytearray)


def classify(value: Any) -> NodeKind:
    """Return the kind of a configuration value."""
    if value is None:
        return NodeKind.NULL
    # Must precede STRING: str-mixin enums are also str instances
    if isinstance(value, Enum):
        return NodeKind.ENUM
    if isinstance(value, str):
        return NodeKind.STRING
    if isinstance(value, _INDEXED_TYPES):
        return NodeKind.INDEXED
    if isinstance(value, _SCALAR_TYPES):
        return NodeKind.SCALAR
    # Classes, modules and functions are opaque references, not settings
    if isinstance(value, (type, ModuleType)) or callable(value):
        return NodeKind.SCALAR
    if isinstance(value, Mapping) or is_dataclass(value) or hasattr(value, "__dict__"):
        return NodeKind.COMPOSITE
    return NodeKind.SCALAR


def _properties(node: Any) -> Iterator[tuple[Any, Any]]:
    if isinstance(node, Mapping):
        yield from list(node.items())
    elif is_dataclass(node):
        for f in fields(node):
            yield f.name, getattr(node, f.name)
    else:
        yield from list(vars(node).items())


def _writable(node: Any, name: Any) -> bool:
    if isinstance(node, Mapping):
        return isinstance(node, MutableMapping)
    params = getattr(type(node), "__dataclass_params__", None)
    if params is not None and params.frozen:
        return False
    attribute = getattr(type(node), name, None)
    if isinstance(attribute, property):
        return attribute.fset is not None
    return True


def _assign(node: Any, name: Any, value: Any) -> None:
    if not _writable(node, name):
        return
    if isinstance(node, MutableMapping):
        node[name] = value
    else:
        setattr(node, name, value)


def normalize_config_tree(root: Any) -> Any:
    """Trim leading/trailing whitespace from every reachable string leaf.

    The tree is mutated in place. Read-only mappings, frozen dataclasses
    and properties without a setter are traversed but their string values
    are left as they are. Never raises.

    Args:
        root: Dataclass instance, mapping, or plain object

    Returns:
        The same ``root`` object, for chaining
    """
    if classify(root) is not NodeKind.COMPOSITE:
        return root

    targets: deque[Any] = deque([root])
    while targets:
        target = targets.popleft()
        for name, value in _properties(target):
            kind = classify(value)
            if kind is NodeKind.STRING:
                trimmed = value.strip()
                if trimmed != value:
                    _assign(target, name, trimmed)
            elif kind is NodeKind.COMPOSITE:
                targets.append(value)
    return root
