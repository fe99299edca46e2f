"""Shared utility functions for document-searcher.

Vector math shared by the in-memory store and the embedding backends, and
the deterministic hash embedding used by the mock backend.
"""

import hashlib
import math
import random
import re


def normalize_embedding(embedding: list[float]) -> list[float]:
    """Normalize embedding to unit length for consistent similarity math.

    Args:
        embedding: Vector of floats representing an embedding.

    Returns:
        Normalized embedding with unit length (L2 norm = 1).
        Returns the original embedding if it has zero magnitude.
    """
    norm = math.sqrt(sum(x * x for x in embedding))
    if norm == 0:
        return embedding
    return [x / norm for x in embedding]


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity between two vectors, 0.0 if either is all zeros.

    Clamped to [-1, 1] to absorb floating point drift.
    """
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))


def hash_to_embedding(text: str, dimensions: int = 64) -> list[float]:
    """Convert text to a deterministic embedding.

    Uses word-level hashing so texts with shared words have similar
    embeddings. Identical texts always produce identical vectors.

    Args:
        text: Text to embed.
        dimensions: Output embedding dimensions.

    Returns:
        Normalized embedding vector.
    """
    embedding = [0.0] * dimensions

    def add_term(term: str, weight: float = 1.0):
        term_hash = hashlib.sha256(term.encode()).digest()
        rng = random.Random(int.from_bytes(term_hash[:8], "big"))
        for i in range(dimensions):
            embedding[i] += rng.gauss(0, 1) * weight

    text_lower = text.lower()

    words = set(re.findall(r"\b\w+\b", text_lower))
    for word in words:
        if len(word) > 2:
            add_term(word, 1.0)

    # Whole short text helps exact-match queries
    if len(text) < 200:
        add_term(text_lower.strip(), 2.0)

    norm = math.sqrt(sum(x * x for x in embedding))
    if norm == 0:
        rng = random.Random(42)
        embedding = [rng.gauss(0, 1) for _ in range(dimensions)]
        norm = math.sqrt(sum(x * x for x in embedding))

    return [x / norm for x in embedding]
