"""Value types shared by the recommendation components."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np


Vector = np.ndarray

DOCUMENT_KINDS = ("tender", "proposal")


def _unique(values: Optional[Iterable[str]]) -> Tuple[str, ...]:
    """Strip, drop blanks and de-duplicate while keeping first-seen order."""
    if not values:
        return ()
    if isinstance(values, str):
        values = [values]

    seen = set()
    ordered: List[str] = []
    for value in values:
        if value is None:
            continue
        item = str(value).strip()
        if not item or item.lower() in seen:
            continue
        seen.add(item.lower())
        ordered.append(item)
    return tuple(ordered)


@dataclass
class Document:
    """A tender or proposal as seen by the engine.

    The engine never persists documents. ``vector`` stays ``None`` until
    computed and must be recomputed whenever ``text`` changes, which is why
    text edits go through :meth:`with_text`.
    """

    id: str
    kind: str
    text: str
    vector: Optional[Vector] = None
    updated_at: Optional[datetime] = None
    title: Optional[str] = None
    category: Optional[str] = None
    value: Optional[float] = None
    location: Optional[str] = None
    requirements: Tuple[str, ...] = ()
    published_at: Optional[datetime] = None
    view_count: int = 0
    proposal_count: int = 0

    def __post_init__(self):
        if self.kind not in DOCUMENT_KINDS:
            raise ValueError(f"Unknown document kind '{self.kind}', expected one of {DOCUMENT_KINDS}")
        self.requirements = tuple(r for r in (self.requirements or ()) if r)

    @property
    def timestamp(self) -> Optional[datetime]:
        """Recency used for ranking and trending windows."""
        return self.published_at or self.updated_at

    def with_text(self, text: str) -> "Document":
        """Return a copy carrying new text and an invalidated vector."""
        return replace(self, text=text, vector=None)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe summary; the vector and full text are left out."""
        return {
            "id": self.id,
            "kind": self.kind,
            "title": self.title,
            "category": self.category,
            "estimated_value": self.value,
            "location": self.location,
            "requirements": list(self.requirements),
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "view_count": self.view_count,
            "proposal_count": self.proposal_count,
        }


@dataclass(frozen=True)
class BudgetRange:
    """Inclusive amount range; an unset bound is open."""

    min: Optional[float] = None
    max: Optional[float] = None

    def contains(self, amount: Optional[float]) -> bool:
        if amount is None:
            return False
        if self.min is not None and amount < self.min:
            return False
        if self.max is not None and amount > self.max:
            return False
        return True


@dataclass
class Preference:
    """Recommendation preferences owned by the user-profile subsystem."""

    user_id: str
    categories: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    exclude_keywords: Tuple[str, ...] = ()
    budget_range: Optional[BudgetRange] = None
    locations: Tuple[str, ...] = ()
    min_match_score: float = 0.0

    def __post_init__(self):
        self.categories = _unique(self.categories)
        self.keywords = _unique(self.keywords)
        self.exclude_keywords = _unique(self.exclude_keywords)
        self.locations = _unique(self.locations)
        self.min_match_score = max(0.0, min(100.0, float(self.min_match_score or 0.0)))
        if isinstance(self.budget_range, dict):
            low = self.budget_range.get("min")
            high = self.budget_range.get("max")
            self.budget_range = BudgetRange(
                min=float(low) if low is not None else None,
                max=float(high) if high is not None else None,
            )

    def to_dict(self) -> Dict[str, Any]:
        budget = None
        if self.budget_range is not None:
            budget = {"min": self.budget_range.min, "max": self.budget_range.max}
        return {
            "user_id": self.user_id,
            "categories": list(self.categories),
            "keywords": list(self.keywords),
            "exclude_keywords": list(self.exclude_keywords),
            "budget_range": budget,
            "locations": list(self.locations),
            "min_match_score": self.min_match_score,
        }


@dataclass(frozen=True)
class SimilarityResult:
    source_id: Optional[str]
    target_id: str
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {"source_id": self.source_id, "target_id": self.target_id, "score": round(self.score, 4)}


@dataclass
class RecommendationItem:
    document: Document
    score: float
    reasons: List[str] = field(default_factory=list)
    phase: str = "similarity"


@dataclass(frozen=True)
class TrendingEntry:
    term: str
    frequency: int
    window_start: datetime
    window_end: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"keyword": self.term, "frequency": self.frequency}


@dataclass(frozen=True)
class CategoryTrend:
    category: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"industry": self.category, "count": self.count}


@dataclass
class TrendingReport:
    window_start: datetime
    window_end: datetime
    total_documents: int
    keywords: List[TrendingEntry] = field(default_factory=list)
    categories: List[CategoryTrend] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "window_start": self.window_start.isoformat(),
            "window_end": self.window_end.isoformat(),
            "total_documents": self.total_documents,
            "top_keywords": [entry.to_dict() for entry in self.keywords],
            "top_industries": [trend.to_dict() for trend in self.categories],
        }
