"""
Vector cache keyed by a hash of the source text.

Two tiers:
1. Memory: dict of {text_hash: (vector, stored_at)}, oldest 20% evicted past the size limit
2. Redis (optional): JSON-encoded vectors with a TTL, shared between workers

Entries are write-once per key. Recomputing a vector for the same text yields
the same vector, so concurrent writers need no compare-and-swap.
"""

import hashlib
import json
import logging
import threading
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import numpy as np
import redis

from core import config

logger = logging.getLogger(__name__)


def compute_text_hash(text: str, variant: str = "") -> str:
    """SHA-256 of the normalized text (64 hex characters).

    ``variant`` identifies the settings that produced the vector, so vectors of
    different shapes never share a key.
    """
    # Normalize before hashing to improve cache hits; vectorization is case-insensitive
    normalized = (text or "").strip().lower()
    if variant:
        normalized = f"{variant}\n{normalized}"
    return hashlib.sha256(normalized.encode('utf-8')).hexdigest()


class VectorCache:
    """Injectable content-hash → vector cache.

    Pass a fresh instance per test run; nothing here is a module-level singleton.
    """

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        max_size: int = config.VECTOR_CACHE_SIZE,
        ttl: int = config.VECTOR_CACHE_TTL,
        namespace: str = "",
    ):
        self.redis_client = redis_client
        self.max_size = max_size
        self.ttl = ttl
        self.namespace = namespace
        self._memory_cache: Dict[str, Tuple[np.ndarray, datetime]] = {}
        self._evict_lock = threading.Lock()
        self.stats = {
            "memory_hits": 0,
            "redis_hits": 0,
            "misses": 0,
            "writes": 0,
        }

    def _redis_key(self, text_hash: str) -> str:
        return f"{config.VECTOR_CACHE_PREFIX}{self.namespace}{text_hash}"

    def get(self, text_hash: str) -> Optional[np.ndarray]:
        entry = self._memory_cache.get(text_hash)
        if entry is not None:
            self.stats["memory_hits"] += 1
            return entry[0]

        if self.redis_client is not None:
            try:
                cached = self.redis_client.get(self._redis_key(text_hash))
                if cached:
                    vector = np.asarray(json.loads(cached), dtype=np.float64)
                    self._remember(text_hash, vector)
                    self.stats["redis_hits"] += 1
                    return vector
            except (redis.RedisError, ValueError) as e:
                logger.warning(f"⚠ Redis vector lookup failed: {e}, using memory tier only")

        self.stats["misses"] += 1
        return None

    def set(self, text_hash: str, vector: np.ndarray) -> None:
        self._remember(text_hash, vector)
        self.stats["writes"] += 1

        if self.redis_client is not None:
            try:
                self.redis_client.setex(self._redis_key(text_hash), self.ttl, json.dumps(vector.tolist()))
            except redis.RedisError as e:
                logger.warning(f"⚠ Redis vector storage failed: {e}")

    def get_or_compute(self, text: str, compute, variant: str = "") -> np.ndarray:
        text_hash = compute_text_hash(text, variant)
        vector = self.get(text_hash)
        if vector is None:
            vector = compute(text)
            self.set(text_hash, vector)
        return vector

    def invalidate(self, text: str, variant: str = "") -> None:
        text_hash = compute_text_hash(text, variant)
        self._memory_cache.pop(text_hash, None)
        if self.redis_client is not None:
            try:
                self.redis_client.delete(self._redis_key(text_hash))
            except redis.RedisError as e:
                logger.warning(f"⚠ Redis vector invalidation failed: {e}")

    def clear(self) -> None:
        self._memory_cache.clear()

    def __len__(self) -> int:
        return len(self._memory_cache)

    def _remember(self, text_hash: str, vector: np.ndarray) -> None:
        self._memory_cache[text_hash] = (vector, datetime.utcnow())
        if len(self._memory_cache) > self.max_size:
            self._cleanup_memory_cache()

    def _cleanup_memory_cache(self) -> None:
        """Drop the oldest 20% of entries once the size limit is exceeded."""
        with self._evict_lock:
            if len(self._memory_cache) <= self.max_size:
                return
            sorted_items = sorted(list(self._memory_cache.items()), key=lambda item: item[1][1])
            num_to_remove = max(1, int(self.max_size * 0.2))
            for text_hash, _ in sorted_items[:num_to_remove]:
                self._memory_cache.pop(text_hash, None)
            logger.debug(f"Vector cache cleanup: removed {num_to_remove} oldest entries")

    def get_cache_stats(self) -> Dict[str, Any]:
        total = self.stats["memory_hits"] + self.stats["redis_hits"] + self.stats["misses"]
        hits = self.stats["memory_hits"] + self.stats["redis_hits"]
        return {
            **self.stats,
            "total_requests": total,
            "cache_hit_rate": (hits / total) * 100 if total else 0.0,
            "memory_cache_size": len(self._memory_cache),
            "redis_enabled": self.redis_client is not None,
        }
