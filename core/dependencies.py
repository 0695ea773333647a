"""
Shared dependencies for FastAPI routes.
"""

from typing import Optional
from fastapi import Request

from database import SessionLocal
from core.cache import VectorCache
from core.redis_client import get_redis_client

USER_ID_HEADER = "X-User-Id"

_vector_cache: Optional[VectorCache] = None


def get_db():
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user_id(request: Request) -> Optional[str]:
    """Caller's user id as forwarded by the upstream auth layer."""
    user_id = request.headers.get(USER_ID_HEADER)
    if not user_id or not user_id.strip():
        return None
    return user_id.strip()


def get_vector_cache() -> VectorCache:
    """Process-wide cache for query vectors, backed by Redis when available."""
    global _vector_cache
    if _vector_cache is None:
        _vector_cache = VectorCache(redis_client=get_redis_client())
    return _vector_cache
