"""Human-readable reasons for why a document was recommended."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from core import config
from .models import Document, Preference
from .vectorizer import tokenize


DEFAULT_REASON = "Popular item in your area of interest"
MAX_MATCHED_SKILLS = 2


@dataclass(frozen=True)
class ReasonRule:
    """A predicate returning template fields when it fires, ``None`` otherwise."""

    name: str
    predicate: Callable[[Document, Preference], Optional[Dict[str, str]]]
    template: str

    def evaluate(self, document: Document, preference: Preference) -> Optional[str]:
        fields = self.predicate(document, preference)
        if fields is None:
            return None
        return self.template.format(**fields)


def _category_match(document: Document, preference: Preference) -> Optional[Dict[str, str]]:
    if not document.category or not preference.categories:
        return None
    preferred = {category.lower() for category in preference.categories}
    if document.category.lower() in preferred:
        return {"category": document.category}
    return None


def _requirement_tokens(document: Document) -> List[str]:
    text = " ".join(list(document.requirements) + [document.text or ""])
    return tokenize(text)


def matched_keywords(document: Document, preference: Preference) -> List[str]:
    """Preference keywords that overlap a requirement/description token either way round."""
    tokens = _requirement_tokens(document)
    matched = []
    for keyword in preference.keywords:
        keyword_lower = keyword.lower()
        if any(keyword_lower in token or token in keyword_lower for token in tokens):
            matched.append(keyword)
    return matched


def _keyword_match(document: Document, preference: Preference) -> Optional[Dict[str, str]]:
    if not preference.keywords:
        return None
    matched = matched_keywords(document, preference)
    if not matched:
        return None
    return {"keywords": ", ".join(matched[:MAX_MATCHED_SKILLS])}


def _budget_match(document: Document, preference: Preference) -> Optional[Dict[str, str]]:
    if preference.budget_range is None or document.value is None:
        return None
    if preference.budget_range.contains(document.value):
        return {}
    return None


# Evaluated in order; the order is part of the output contract
REASON_RULES: Sequence[ReasonRule] = (
    ReasonRule("category", _category_match, "Matches your preferred category: {category}"),
    ReasonRule("skills", _keyword_match, "Matches your skills: {keywords}"),
    ReasonRule("budget", _budget_match, "Within your preferred budget range"),
)


class ReasonExplainer:
    def __init__(self, rules: Sequence[ReasonRule] = REASON_RULES, max_reasons: int = config.MAX_REASONS):
        self.rules = tuple(rules)
        self.max_reasons = max(1, max_reasons)

    def explain(self, document: Document, preference: Preference) -> List[str]:
        reasons = []
        for rule in self.rules:
            reason = rule.evaluate(document, preference)
            if reason:
                reasons.append(reason)
        if not reasons:
            return [DEFAULT_REASON]
        return reasons[:self.max_reasons]


_default_explainer = ReasonExplainer()


def explain(document: Document, preference: Preference) -> List[str]:
    return _default_explainer.explain(document, preference)
