"""
Cosine similarity and brute-force ranking.

Shared by the local backend and the S3 Vectors fallback path so both
produce identical scores and ordering.

Dependencies: numpy
System role: Similarity scoring for vector queries
"""

import logging
from typing import Iterable, Sequence

import numpy as np

from handbook_retrieval.boundary.vdb.vector_schemas import QueryMatch, VectorRecord

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float] | None, b: Sequence[float] | None) -> float:
    """
    Cosine similarity of two vectors.

    Degraded inputs (missing vector, length mismatch, zero magnitude) score
    0.0 and are logged instead of raising.

    Args:
        a: First vector
        b: Second vector

    Returns:
        float: dot(a, b) / (|a| * |b|), or 0.0 for degraded inputs
    """
    if a is None or b is None or len(a) == 0 or len(b) == 0:
        logger.warning(f"{__name__}:cosine_similarity - Missing vector, scoring 0")
        return 0.0
    if len(a) != len(b):
        logger.warning(
            f"{__name__}:cosine_similarity - Dimension mismatch, scoring 0",
            extra={"left_dim": len(a), "right_dim": len(b)},
        )
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denominator = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denominator == 0.0:
        logger.warning(f"{__name__}:cosine_similarity - Zero magnitude vector, scoring 0")
        return 0.0
    return float(np.dot(va, vb) / denominator)


def rank_records(
    records: Iterable[VectorRecord],
    query_vector: Sequence[float],
    top_k: int,
    include_vector: bool = False,
) -> list[QueryMatch]:
    """
    Brute-force top-K: score every record, sort descending, slice.

    Records without a vector are skipped.

    Args:
        records: Candidate records
        query_vector: Query embedding
        top_k: Maximum matches to return
        include_vector: Attach stored vectors to matches

    Returns:
        list[QueryMatch]: Matches sorted by score descending
    """
    matches = [
        QueryMatch(
            id=record.id or "",
            score=cosine_similarity(query_vector, record.vector),
            metadata=record.metadata,
            vector=list(record.vector) if include_vector else None,
        )
        for record in records
        if record.vector
    ]
    # sorted() is stable, so equal scores keep storage order
    matches = sorted(matches, key=lambda m: m.score, reverse=True)
    return matches[:top_k]
