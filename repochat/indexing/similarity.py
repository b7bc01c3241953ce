"""Cosine-similarity ranking over in-memory embedding vectors."""
import logging
import math
from collections.abc import Sequence
from typing import Protocol, TypeVar

from repochat.exceptions import DegenerateVectorError

logger = logging.getLogger(__name__)


class HasEmbedding(Protocol):
    embedding: Sequence[float]


R = TypeVar("R", bound=HasEmbedding)


def _norm(vector: Sequence[float]) -> float:
    return math.sqrt(math.fsum(v * v for v in vector))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b|).

    Raises DegenerateVectorError for empty, mismatched or zero-magnitude input.
    """
    len_a, len_b = len(a or ()), len(b or ())
    if not len_a or len_a != len_b:
        raise DegenerateVectorError(f"Vector length mismatch ({len_a} vs {len_b})")
    norm_a = _norm(a)
    norm_b = _norm(b)
    if norm_a == 0.0 or norm_b == 0.0:
        raise DegenerateVectorError("Cosine similarity is undefined for a zero-magnitude vector")
    dot = math.fsum(x * y for x, y in zip(a, b))
    return dot / (norm_a * norm_b)


def rank(query: Sequence[float], candidates: Sequence[R]) -> list[tuple[R, float]]:
    """Score every candidate against ``query`` and sort by descending similarity.

    The sort is stable, so ties keep their original candidate order. Candidates
    whose vectors are degenerate are skipped; a degenerate query raises.
    """
    if not query or _norm(query) == 0.0:
        raise DegenerateVectorError("Query vector has zero magnitude")

    scored: list[tuple[R, float]] = []
    for candidate in candidates:
        try:
            score = cosine_similarity(query, candidate.embedding)
        except DegenerateVectorError as exc:
            logger.warning("Skipping candidate %r: %s", getattr(candidate, "file_path", candidate), exc.detail)
            continue
        scored.append((candidate, score))

    scored.sort(key=lambda item: item[1], reverse=True)
    return scored


def top_k(query: Sequence[float], candidates: Sequence[R], k: int) -> list[tuple[R, float]]:
    return rank(query, candidates)[:k]
