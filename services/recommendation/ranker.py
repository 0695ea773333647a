"""
Recommendation ranking for a user's preferences.

Strategy:
1. Hard filters: category, budget range, excluded keywords, location
2. Similarity phase: keywords → query vector → SimilarityIndex, kept when
   score * 100 >= min_match_score
3. Fallback phase: remaining slots filled from the same filtered pool by
   recency, then popularity (view count)

Similarity-phase items always precede fallback items and an id is never
returned twice.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from fuzzywuzzy import fuzz

from core import config
from .explainer import ReasonExplainer
from .models import Document, Preference, RecommendationItem
from .similarity import Candidate, SimilarityIndex, _recency_key
from .vectorizer import Vectorizer

logger = logging.getLogger(__name__)

PHASE_SIMILARITY = "similarity"
PHASE_FALLBACK = "fallback"


class RecommendationRanker:
    """Merges similarity-ranked and attribute-filtered candidates."""

    def __init__(
        self,
        vectorizer: Optional[Vectorizer] = None,
        index: Optional[SimilarityIndex] = None,
        explainer: Optional[ReasonExplainer] = None,
        location_threshold: int = config.FUZZY_LOCATION_THRESHOLD,
    ):
        self.vectorizer = vectorizer or Vectorizer()
        self.index = index or SimilarityIndex(self.vectorizer)
        self.explainer = explainer or ReasonExplainer()
        self.location_threshold = location_threshold

    # --- hard filters -------------------------------------------------------------

    def _passes_category(self, document: Document, preference: Preference) -> bool:
        if not preference.categories:
            return True
        if not document.category:
            return False
        return document.category.lower() in {c.lower() for c in preference.categories}

    def _passes_budget(self, document: Document, preference: Preference) -> bool:
        if preference.budget_range is None or document.value is None:
            return True
        return preference.budget_range.contains(document.value)

    def _passes_exclusions(self, document: Document, preference: Preference) -> bool:
        if not preference.exclude_keywords:
            return True
        haystack = " ".join([document.title or "", document.text or ""] + list(document.requirements)).lower()
        return not any(keyword.lower() in haystack for keyword in preference.exclude_keywords)

    def _passes_location(self, document: Document, preference: Preference) -> bool:
        if not preference.locations or not document.location:
            return True

        document_location = document.location.lower().strip()
        for location in preference.locations:
            location_lower = location.lower().strip()
            if location_lower == document_location:
                return True
            if fuzz.ratio(location_lower, document_location) >= self.location_threshold:
                return True
        return False

    def apply_hard_filters(self, preference: Preference, pool: Iterable[Document]) -> List[Document]:
        """Drop documents violating a hard constraint; keeps pool order and first occurrence of each id."""
        filtered = []
        seen: Set[str] = set()
        for document in pool:
            if document.id in seen:
                continue
            if not self._passes_category(document, preference):
                logger.debug(f"  {document.id} rejected: category {document.category!r}")
                continue
            if not self._passes_budget(document, preference):
                logger.debug(f"  {document.id} rejected: value {document.value} outside budget")
                continue
            if not self._passes_exclusions(document, preference):
                logger.debug(f"  {document.id} rejected: contains excluded keyword")
                continue
            if not self._passes_location(document, preference):
                logger.debug(f"  {document.id} rejected: location {document.location!r}")
                continue
            seen.add(document.id)
            filtered.append(document)
        return filtered

    # --- phases -------------------------------------------------------------------

    def _similarity_phase(
        self,
        preference: Preference,
        pool: Sequence[Document],
        limit: int,
    ) -> Tuple[List[Tuple[Document, float]], Dict[str, float]]:
        query_text = " ".join(preference.keywords)
        query_vector = self.vectorizer.vectorize(query_text)

        candidates = [
            Candidate(document.id, self.index.document_vector(document), document.timestamp)
            for document in pool
        ]
        ranked = self.index.top_k(query_vector, candidates, k=len(candidates), source_id=preference.user_id)
        scores = {result.target_id: result.score for result in ranked}

        by_id = {document.id: document for document in pool}
        qualifying = [
            (by_id[result.target_id], result.score)
            for result in ranked
            if result.score * 100 >= preference.min_match_score
        ]
        return qualifying[:limit], scores

    def _fallback_phase(self, pool: Sequence[Document], chosen: Set[str], remaining: int) -> List[Document]:
        leftovers = [document for document in pool if document.id not in chosen]
        leftovers.sort(
            key=lambda document: (_recency_key(document.timestamp), document.view_count or 0),
            reverse=True,
        )
        return leftovers[:remaining]

    def recommend(
        self,
        preference: Preference,
        candidate_pool: Sequence[Document],
        limit: int,
        exclude_ids: Optional[Iterable[str]] = None,
    ) -> List[RecommendationItem]:
        if limit <= 0 or not candidate_pool:
            return []

        excluded = set(exclude_ids or ())
        pool = self.apply_hard_filters(
            preference,
            (document for document in candidate_pool if document.id not in excluded),
        )
        logger.info(f"Recommending for user {preference.user_id}: {len(pool)}/{len(candidate_pool)} candidates passed hard filters")
        if not pool:
            return []

        items: List[RecommendationItem] = []
        chosen: Set[str] = set()
        scores: Dict[str, float] = {}

        if preference.keywords:
            matches, scores = self._similarity_phase(preference, pool, limit)
            for document, score in matches:
                items.append(RecommendationItem(
                    document=document,
                    score=score,
                    reasons=self.explainer.explain(document, preference),
                    phase=PHASE_SIMILARITY,
                ))
                chosen.add(document.id)
            logger.debug(f"Similarity phase produced {len(items)} items (min score {preference.min_match_score})")
        else:
            logger.debug("No keywords in preference, skipping similarity phase")

        if len(items) < limit:
            backfill = self._fallback_phase(pool, chosen, limit - len(items))
            for document in backfill:
                items.append(RecommendationItem(
                    document=document,
                    score=scores.get(document.id, 0.0),
                    reasons=self.explainer.explain(document, preference),
                    phase=PHASE_FALLBACK,
                ))
                chosen.add(document.id)
            logger.debug(f"Fallback phase added {len(backfill)} items")

        return items


_default_ranker = RecommendationRanker()


def recommend(preference: Preference, pool: Sequence[Document], limit: int) -> List[RecommendationItem]:
    return _default_ranker.recommend(preference, pool, limit)
