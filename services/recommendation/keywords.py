"""Keyword frequency maps, weighted Jaccard overlap and key phrase extraction."""

from __future__ import annotations

from collections import Counter
from typing import Dict, List, Mapping, Optional

from .vectorizer import tokenize

MIN_PHRASE_WORD_LENGTH = 4


def keyword_frequencies(text: Optional[str]) -> Dict[str, float]:
    """
    Normalized token frequencies for a text.

    Returns:
        Dict mapping token → count / total tokens (values sum to 1.0), empty for blank text
    """
    tokens = tokenize(text)
    if not tokens:
        return {}
    total = len(tokens)
    return {token: count / total for token, count in Counter(tokens).items()}


def keyword_similarity(keywords_a: Mapping[str, float], keywords_b: Mapping[str, float]) -> float:
    """
    Frequency-weighted Jaccard similarity between two keyword maps.

    Args:
        keywords_a: token → weight
        keywords_b: token → weight

    Returns:
        Σmin / (Σa + Σb - Σmin), or 0.0 when both maps are empty
    """
    intersection = 0.0
    total_a = 0.0
    total_b = 0.0
    for keyword in set(keywords_a) | set(keywords_b):
        weight_a = keywords_a.get(keyword, 0.0)
        weight_b = keywords_b.get(keyword, 0.0)
        intersection += min(weight_a, weight_b)
        total_a += weight_a
        total_b += weight_b

    union = total_a + total_b - intersection
    return intersection / union if union > 0 else 0.0


def extract_key_phrases(text: Optional[str], max_phrases: int = 10) -> List[str]:
    """
    Most significant words and bigrams of a text.

    Single words qualify when they occur more than once and are at least
    four characters long, scored by their count. Every adjacent token pair is
    a bigram candidate scored by how often it occurs. Ties keep the order in
    which phrases were first seen, words before bigrams.
    """
    if max_phrases <= 0:
        return []

    tokens = tokenize(text)
    word_counts = Counter(tokens)

    scores: Dict[str, int] = {}
    for word, count in word_counts.items():
        if count > 1 and len(word) >= MIN_PHRASE_WORD_LENGTH:
            scores[word] = count

    for first, second in zip(tokens, tokens[1:]):
        bigram = f"{first} {second}"
        scores[bigram] = scores.get(bigram, 0) + 1

    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    return [phrase for phrase, _ in ranked[:max_phrases]]
