"""
Redis client configuration for the shared vector cache.
"""

import os
import threading
import redis
import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Suppress verbose Redis logs
logging.getLogger('redis').setLevel(logging.WARNING)

# Redis configuration; unset means memory-only caching
REDIS_URL = os.getenv('REDIS_URL')

_redis_client: Optional[redis.Redis] = None
_connect_attempted = False
_connect_lock = threading.Lock()


def _connect() -> Optional[redis.Redis]:
    if not REDIS_URL:
        logger.debug("REDIS_URL not set. Using in-memory vector cache only.")
        return None
    try:
        client = redis.from_url(
            REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5
        )
        # Test connection
        client.ping()
        logger.debug("✓ Redis connection established")
        return client
    except (redis.ConnectionError, redis.TimeoutError) as e:
        logger.warning(f"Redis connection failed: {e}. Using in-memory storage.")
        return None


def get_redis_client() -> Optional[redis.Redis]:
    """Get Redis client instance, connecting on first use."""
    global _redis_client, _connect_attempted
    if not _connect_attempted:
        with _connect_lock:
            if not _connect_attempted:
                _redis_client = _connect()
                _connect_attempted = True
    return _redis_client


def is_redis_available() -> bool:
    """Check if Redis is available."""
    return get_redis_client() is not None
