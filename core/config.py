"""
Recommendation engine configuration.

Values are read from the environment once at import time. app.py loads .env
before anything imports this module.
"""

import os


# Vectorizer
VECTOR_DIMENSIONS = int(os.getenv("VECTOR_DIMENSIONS", "100"))
MIN_TOKEN_LENGTH = int(os.getenv("MIN_TOKEN_LENGTH", "3"))

# Trending topics use a stricter cutoff to drop filler words
TRENDING_MIN_TOKEN_LENGTH = int(os.getenv("TRENDING_MIN_TOKEN_LENGTH", "4"))
TRENDING_DEFAULT_DAYS = int(os.getenv("TRENDING_DEFAULT_DAYS", "30"))
TRENDING_MAX_WINDOW_DAYS = int(os.getenv("TRENDING_MAX_WINDOW_DAYS", "365"))
TRENDING_TOP_KEYWORDS = int(os.getenv("TRENDING_TOP_KEYWORDS", "20"))
TRENDING_TOP_CATEGORIES = int(os.getenv("TRENDING_TOP_CATEGORIES", "10"))

# Ranker
MAX_REASONS = int(os.getenv("MAX_REASONS", "3"))
DEFAULT_RECOMMENDATION_LIMIT = int(os.getenv("DEFAULT_RECOMMENDATION_LIMIT", "10"))
RECOMMENDATION_POOL_LIMIT = int(os.getenv("RECOMMENDATION_POOL_LIMIT", "1000"))
FUZZY_LOCATION_THRESHOLD = int(os.getenv("FUZZY_LOCATION_THRESHOLD", "85"))

# Vector cache (memory tier size, Redis TTL in seconds)
VECTOR_CACHE_SIZE = int(os.getenv("VECTOR_CACHE_SIZE", "1000"))
VECTOR_CACHE_TTL = int(os.getenv("VECTOR_CACHE_TTL", str(30 * 24 * 3600)))
VECTOR_CACHE_PREFIX = os.getenv("VECTOR_CACHE_PREFIX", "tendermatch:vector:")
