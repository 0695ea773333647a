"""
Cosine similarity and nearest-neighbour ranking over document vectors.

Candidates are expected to be pre-filtered by the storage layer
(status, ownership, dates), so a linear scan is O(|candidates| x N).
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, NamedTuple, Optional, Sequence, Set, Union

import numpy as np

from .models import Document, SimilarityResult
from .vectorizer import Vectorizer

logger = logging.getLogger(__name__)


class VectorDimensionError(ValueError):
    """Raised when two vectors of different lengths are compared."""
    pass


class Candidate(NamedTuple):
    id: str
    vector: np.ndarray
    timestamp: Optional[datetime] = None


def cosine_similarity(vector_a: np.ndarray, vector_b: np.ndarray) -> float:
    """
    Cosine similarity clipped into [0, 1].

    A zero-magnitude vector on either side scores 0.0 (never NaN), which
    includes comparing the zero vector with itself.
    """
    a = np.asarray(vector_a, dtype=np.float64)
    b = np.asarray(vector_b, dtype=np.float64)
    if a.shape != b.shape:
        raise VectorDimensionError(f"Vectors must have the same length ({a.size} != {b.size})")

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = float(np.dot(a, b) / (norm_a * norm_b))
    return max(0.0, min(1.0, similarity))


def _recency_key(timestamp: Optional[datetime]):
    # (0, None) sorts below any (1, datetime) and never compares None with a datetime
    return (0, None) if timestamp is None else (1, timestamp)


class SimilarityIndex:
    """Ranks candidate vectors against a query vector."""

    def __init__(self, vectorizer: Optional[Vectorizer] = None):
        self.vectorizer = vectorizer or Vectorizer()

    def top_k(
        self,
        query_vector: np.ndarray,
        candidates: Iterable[Union[Candidate, tuple]],
        k: int,
        exclude_ids: Optional[Iterable[str]] = None,
        source_id: Optional[str] = None,
    ) -> List[SimilarityResult]:
        """
        Return the ``k`` best-scoring candidates, highest first.

        Excluded ids are dropped before scoring. Equal scores are ordered by
        recency (newest first) when timestamps are supplied, otherwise they
        keep their input order.
        """
        if k <= 0:
            return []

        excluded: Set[str] = set(exclude_ids or ())
        scored = []
        for raw in candidates:
            candidate = raw if isinstance(raw, Candidate) else Candidate(*raw)
            if candidate.id in excluded:
                continue
            score = cosine_similarity(query_vector, candidate.vector)
            scored.append((score, _recency_key(candidate.timestamp), candidate.id))

        # Python's sort is stable, including with reverse=True
        scored.sort(key=lambda item: (item[0], item[1]), reverse=True)

        results = [
            SimilarityResult(source_id=source_id, target_id=candidate_id, score=score)
            for score, _, candidate_id in scored[:k]
        ]
        logger.debug(f"top_k: scored {len(scored)} candidates, returning {len(results)}")
        return results

    def document_vector(self, document: Document) -> np.ndarray:
        if document.vector is not None:
            return document.vector
        return self.vectorizer.vectorize(document.text)

    def find_similar(
        self,
        query: Union[np.ndarray, Document],
        pool: Sequence[Document],
        k: int,
        exclude_ids: Optional[Iterable[str]] = None,
    ) -> List[SimilarityResult]:
        """
        Nearest documents to a vector or to another document.

        A document query is excluded from its own results.
        """
        if not pool:
            return []

        excluded = set(exclude_ids or ())
        source_id = None
        if isinstance(query, Document):
            source_id = query.id
            excluded.add(query.id)
            query_vector = self.document_vector(query)
        else:
            query_vector = query

        candidates = (
            Candidate(document.id, self.document_vector(document), document.timestamp)
            for document in pool
            if document.id not in excluded
        )
        return self.top_k(query_vector, candidates, k, excluded, source_id=source_id)


_default_index = SimilarityIndex()


def find_similar(
    query: Union[np.ndarray, Document],
    pool: Sequence[Document],
    k: int,
    exclude_ids: Optional[Iterable[str]] = None,
) -> List[SimilarityResult]:
    return _default_index.find_similar(query, pool, k, exclude_ids)
