"""
Bag-of-words vectorizer for tenders and proposals.

Each document gets a fixed-length vector built from its own most frequent
terms: slot i holds count(term_i) / total_tokens for the i-th most frequent
term of *that* document. There is no shared vocabulary, so two vectors line
up slot-by-slot only through the frequency rank of their terms.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import List, Optional

import numpy as np

from core import config
from core.cache import VectorCache

logger = logging.getLogger(__name__)

PUNCTUATION_PATTERN = re.compile(r"[^\w\s]")


def tokenize(text: Optional[str], min_length: int = config.MIN_TOKEN_LENGTH) -> List[str]:
    """Lowercase, replace punctuation with spaces and split on whitespace.

    Tokens shorter than ``min_length`` are dropped; this doubles as a cheap
    stopword filter.
    """
    if not text:
        return []
    cleaned = PUNCTUATION_PATTERN.sub(" ", str(text).lower())
    return [token for token in cleaned.split() if len(token) >= min_length]


class Vectorizer:
    """Turns text into a normalized term-frequency vector of fixed length."""

    def __init__(
        self,
        dimensions: int = config.VECTOR_DIMENSIONS,
        min_token_length: int = config.MIN_TOKEN_LENGTH,
        cache: Optional[VectorCache] = None,
    ):
        if dimensions <= 0:
            raise ValueError(f"dimensions must be positive (got {dimensions})")
        self.dimensions = dimensions
        self.min_token_length = min_token_length
        self.cache = cache
        # Part of every cache key: vectors from other settings have other shapes
        self.cache_variant = f"dim={dimensions}:min={min_token_length}"

    def zero_vector(self) -> np.ndarray:
        return np.zeros(self.dimensions, dtype=np.float64)

    def vectorize(self, text: Optional[str]) -> np.ndarray:
        if text is not None and not isinstance(text, str):
            raise TypeError(f"vectorize() expects str, got {type(text).__name__}")
        if not text or not text.strip():
            return self.zero_vector()

        if self.cache is not None:
            return self.cache.get_or_compute(text, self._build_vector, self.cache_variant)
        return self._build_vector(text)

    def _build_vector(self, text: str) -> np.ndarray:
        tokens = tokenize(text, self.min_token_length)
        vector = self.zero_vector()
        if tokens:
            # most_common keeps first-occurrence order among equal counts
            counts = Counter(tokens)
            total = len(tokens)
            for slot, (_, count) in enumerate(counts.most_common(self.dimensions)):
                vector[slot] = count / total

        # Cached vectors are shared between callers
        vector.setflags(write=False)
        return vector

    def top_terms(self, text: Optional[str]) -> List[str]:
        """Terms backing each non-zero slot of ``vectorize(text)``, in slot order."""
        counts = Counter(tokenize(text, self.min_token_length))
        return [term for term, _ in counts.most_common(self.dimensions)]


_default_vectorizer = Vectorizer()


def vectorize(text: Optional[str]) -> np.ndarray:
    """Vector for ``text`` using the default 100-slot vectorizer (no cache)."""
    return _default_vectorizer.vectorize(text)
