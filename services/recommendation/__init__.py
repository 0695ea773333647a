"""
Tender/proposal similarity and recommendation engine.

Deterministic bag-of-words vectors, cosine ranking, a two-phase recommender
with human-readable reasons, and trending keyword aggregation.
"""

from .competition import CompetitionAnalyzer
from .explainer import ReasonExplainer
from .keywords import extract_key_phrases, keyword_frequencies, keyword_similarity
from .models import (
    BudgetRange,
    CategoryTrend,
    Document,
    Preference,
    RecommendationItem,
    SimilarityResult,
    TrendingEntry,
    TrendingReport,
)
from .ranker import RecommendationRanker, recommend
from .similarity import SimilarityIndex, VectorDimensionError, cosine_similarity, find_similar
from .trending import TrendingAggregator, trending
from .vectorizer import Vectorizer, tokenize, vectorize

__all__ = [
    'BudgetRange',
    'CategoryTrend',
    'CompetitionAnalyzer',
    'Document',
    'Preference',
    'ReasonExplainer',
    'RecommendationItem',
    'RecommendationRanker',
    'SimilarityIndex',
    'SimilarityResult',
    'TrendingAggregator',
    'TrendingEntry',
    'TrendingReport',
    'VectorDimensionError',
    'Vectorizer',
    'cosine_similarity',
    'extract_key_phrases',
    'find_similar',
    'keyword_frequencies',
    'keyword_similarity',
    'recommend',
    'tokenize',
    'trending',
    'vectorize',
]
