"""
Trending keywords and categories over a time window.

Counts are plain sums over the documents in the window, so counting two
disjoint pools separately and adding the results gives the same numbers as
counting their union.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Iterable, List

from core import config
from .models import CategoryTrend, Document, TrendingEntry, TrendingReport
from .vectorizer import tokenize

logger = logging.getLogger(__name__)


class TrendingAggregator:
    def __init__(self, min_token_length: int = config.TRENDING_MIN_TOKEN_LENGTH):
        self.min_token_length = min_token_length

    def in_window(
        self,
        documents: Iterable[Document],
        window_start: datetime,
        window_end: datetime,
    ) -> List[Document]:
        """Documents whose timestamp falls inside the inclusive window."""
        if window_start > window_end:
            logger.warning(f"Inverted trending window {window_start.isoformat()} > {window_end.isoformat()}")
            return []

        selected = []
        for document in documents:
            timestamp = document.timestamp
            if timestamp is None:
                continue
            if window_start <= timestamp <= window_end:
                selected.append(document)
        return selected

    def count_terms(self, documents: Iterable[Document]) -> Counter:
        counts: Counter = Counter()
        for document in documents:
            counts.update(tokenize(document.text, self.min_token_length))
        return counts

    def trending(
        self,
        documents: Iterable[Document],
        window_start: datetime,
        window_end: datetime,
        top_k: int = config.TRENDING_TOP_KEYWORDS,
    ) -> List[TrendingEntry]:
        if top_k <= 0:
            return []

        selected = self.in_window(documents, window_start, window_end)
        counts = self.count_terms(selected)
        return [
            TrendingEntry(term=term, frequency=frequency, window_start=window_start, window_end=window_end)
            for term, frequency in counts.most_common(top_k)
        ]

    def top_categories(
        self,
        documents: Iterable[Document],
        window_start: datetime,
        window_end: datetime,
        top_k: int = config.TRENDING_TOP_CATEGORIES,
    ) -> List[CategoryTrend]:
        if top_k <= 0:
            return []

        counts: Counter = Counter(
            document.category
            for document in self.in_window(documents, window_start, window_end)
            if document.category
        )
        return [CategoryTrend(category=category, count=count) for category, count in counts.most_common(top_k)]

    def aggregate(
        self,
        documents: Iterable[Document],
        window_start: datetime,
        window_end: datetime,
        top_keywords: int = config.TRENDING_TOP_KEYWORDS,
        top_categories: int = config.TRENDING_TOP_CATEGORIES,
    ) -> TrendingReport:
        """Keywords, categories and document count for one window."""
        selected = self.in_window(list(documents), window_start, window_end)
        report = TrendingReport(
            window_start=window_start,
            window_end=window_end,
            total_documents=len(selected),
            keywords=self.trending(selected, window_start, window_end, top_keywords),
            categories=self.top_categories(selected, window_start, window_end, top_categories),
        )
        logger.info(
            f"Trending {window_start.date()}..{window_end.date()}: {report.total_documents} documents, "
            f"{len(report.keywords)} keywords, {len(report.categories)} categories"
        )
        return report


_default_aggregator = TrendingAggregator()


def trending(
    pool: Iterable[Document],
    window_start: datetime,
    window_end: datetime,
    top_k: int = config.TRENDING_TOP_KEYWORDS,
) -> List[TrendingEntry]:
    return _default_aggregator.trending(pool, window_start, window_end, top_k)
