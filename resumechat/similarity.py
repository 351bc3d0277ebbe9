"""Cosine similarity and stable top-K ranking over chunk embeddings."""

from collections.abc import Sequence
from typing import Any

import numpy as np

from .embeddings import NUMERIC_KINDS
from .exceptions import ConfigurationError
from .models import DocumentChunk, RankedChunk


def _as_vector(value: Any) -> np.ndarray | None:
    try:
        vector = np.asarray(value)
    except (TypeError, ValueError):
        return None
    if vector.dtype.kind not in NUMERIC_KINDS:
        return None
    vector = vector.astype(np.float64)
    if vector.ndim != 1 or vector.size == 0 or not np.all(np.isfinite(vector)):
        return None
    return vector


def cosine_similarity(a: Any, b: Any) -> float:
    """Calculate cosine similarity between two vectors.

    Invalid vectors, mismatched lengths and zero norms all score exactly 0.0.

    Returns:
        float: Similarity in [-1, 1].
    """
    vec_a = _as_vector(a)
    vec_b = _as_vector(b)
    if vec_a is None or vec_b is None or vec_a.shape != vec_b.shape:
        return 0.0

    norm_a = float(np.linalg.norm(vec_a))
    norm_b = float(np.linalg.norm(vec_b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    score = float(np.dot(vec_a, vec_b)) / (norm_a * norm_b)
    if not np.isfinite(score):
        return 0.0
    return float(np.clip(score, -1.0, 1.0))


def top_k_indices(scores: Sequence[float], k: int) -> list[int]:
    """Return indices of the ``k`` best scores, ties kept in original order.

    Raises:
        ConfigurationError: If ``k`` is smaller than 1.
    """
    if k < 1:
        msg = f"top_k must be at least 1, got {k}"
        raise ConfigurationError(msg)
    # sorted() is stable, so equal scores keep their original order
    ranked = sorted(range(len(scores)), key=lambda i: -scores[i])
    return ranked[:k]


def rank_chunks(
    query_vector: Any,
    chunk_vectors: Sequence[Any],
    chunks: Sequence[DocumentChunk],
    top_k: int = 3,
) -> list[RankedChunk]:
    """Rank chunks by cosine similarity to the query vector.

    Args:
        query_vector: Embedding of the question.
        chunk_vectors: One embedding per chunk, aligned with ``chunks``.
        chunks: The session's chunks.
        top_k: Number of chunks to return; more than available returns all.

    Returns:
        The best chunks with their scores, highest first.
    """
    scores = [cosine_similarity(query_vector, vector) for vector in chunk_vectors]
    return [
        RankedChunk(chunk=chunks[i], score=scores[i])
        for i in top_k_indices(scores, top_k)
    ]
