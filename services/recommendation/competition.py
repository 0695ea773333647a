"""Competition level for a tender, compared against similar past tenders."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .models import Document
from .similarity import SimilarityIndex

logger = logging.getLogger(__name__)

# (max proposals, level, estimated win probability), checked in order
COMPETITION_LEVELS: Tuple[Tuple[int, str, float], ...] = (
    (3, "low", 0.7),
    (8, "medium", 0.4),
)
HIGH_COMPETITION: Tuple[str, float] = ("high", 0.2)

BIDDING_TIPS = (
    "Focus on unique value propositions to stand out",
    "Ensure competitive pricing while maintaining quality",
    "Highlight relevant experience and case studies",
    "Submit well before the deadline to avoid last-minute issues",
)


def competition_level(proposal_count: int) -> Tuple[str, float]:
    for limit, level, probability in COMPETITION_LEVELS:
        if proposal_count <= limit:
            return level, probability
    return HIGH_COMPETITION


class CompetitionAnalyzer:
    def __init__(self, index: Optional[SimilarityIndex] = None):
        self.index = index or SimilarityIndex()

    def analyze(self, tender: Document, history_pool: Sequence[Document], k: int = 5) -> Dict[str, Any]:
        """
        Build the competitive analysis payload for one tender.

        Args:
            tender: The tender being bid on
            history_pool: Past tenders (evaluation, awarded or closed)
            k: Number of similar past tenders to compare with

        Returns:
            Dict with current_tender, competition, similar_tenders and recommendations
        """
        similar = self.index.find_similar(tender, history_pool, k)
        by_id = {document.id: document for document in history_pool}

        similar_tenders: List[Dict[str, Any]] = []
        for result in similar:
            past = by_id[result.target_id]
            similar_tenders.append({
                "id": past.id,
                "title": past.title,
                "proposal_count": past.proposal_count or 0,
                "value": past.value,
                "similarity": round(result.score, 4),
            })

        average = 0.0
        if similar_tenders:
            average = sum(t["proposal_count"] for t in similar_tenders) / len(similar_tenders)

        proposal_count = tender.proposal_count or 0
        level, probability = competition_level(proposal_count)
        logger.info(f"Competition for tender {tender.id}: {proposal_count} proposals → {level} ({len(similar_tenders)} similar)")

        return {
            "current_tender": {
                "id": tender.id,
                "title": tender.title,
                "total_proposals": proposal_count,
                "estimated_value": tender.value,
            },
            "competition": {
                "total_bidders": proposal_count,
                "average_proposals_for_similar": average,
                "competition_level": level,
                "estimated_win_probability": probability,
            },
            "similar_tenders": similar_tenders,
            "recommendations": list(BIDDING_TIPS),
        }
