"""
Embedding similarity primitive shared by the vector store and the gateways.
"""

import math
from typing import Sequence

from .errors import EmbeddingDimensionError


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine of the angle between two embedding vectors.

    Args:
        a: First vector
        b: Second vector (must have the same length as a)

    Returns:
        dot(a, b) / (|a| * |b|), or 0.0 when either vector has zero norm

    Raises:
        EmbeddingDimensionError: If the vectors differ in length
    """
    if len(a) != len(b):
        raise EmbeddingDimensionError(len(a), len(b))

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return dot / (norm_a * norm_b)
