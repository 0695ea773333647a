import pytest

from services.recommendation import (
    CompetitionAnalyzer,
    extract_key_phrases,
    keyword_frequencies,
    keyword_similarity,
)
from services.recommendation.competition import BIDDING_TIPS, competition_level


def test_keyword_frequencies_are_normalized():
    frequencies = keyword_frequencies("Cloud cloud migration")

    assert frequencies == {"cloud": pytest.approx(2 / 3), "migration": pytest.approx(1 / 3)}
    assert keyword_frequencies("") == {}


def test_keyword_similarity_weighted_jaccard():
    assert keyword_similarity({"x": 0.5, "y": 0.5}, {"x": 1.0}) == pytest.approx(1 / 3)
    assert keyword_similarity({"x": 1.0}, {"x": 1.0}) == pytest.approx(1.0)
    assert keyword_similarity({"x": 1.0}, {"y": 1.0}) == 0.0
    assert keyword_similarity({}, {}) == 0.0


def test_extract_key_phrases_words_then_bigrams():
    phrases = extract_key_phrases("cloud migration cloud migration plan")

    assert phrases == ["cloud", "migration", "cloud migration", "migration cloud", "migration plan"]
    assert extract_key_phrases("cloud migration cloud migration plan", max_phrases=3) == [
        "cloud",
        "migration",
        "cloud migration",
    ]
    assert extract_key_phrases("") == []


@pytest.mark.parametrize(
    "proposals, level, probability",
    [(0, "low", 0.7), (3, "low", 0.7), (4, "medium", 0.4), (8, "medium", 0.4), (9, "high", 0.2), (250, "high", 0.2)],
)
def test_competition_level_thresholds(proposals, level, probability):
    assert competition_level(proposals) == (level, probability)


def test_analyze_compares_with_similar_past_tenders(make_document):
    tender = make_document("current", "road resurfacing works", title="Road works", proposal_count=5, value=1000)
    history = [
        tender,
        make_document("p1", "road resurfacing", proposal_count=2),
        make_document("p2", "road lighting upgrade", proposal_count=4),
        make_document("p3", "bridge painting", proposal_count=6),
    ]

    analysis = CompetitionAnalyzer().analyze(tender, history, k=5)

    assert analysis["current_tender"] == {
        "id": "current",
        "title": "Road works",
        "total_proposals": 5,
        "estimated_value": 1000,
    }
    assert analysis["competition"]["competition_level"] == "medium"
    assert analysis["competition"]["estimated_win_probability"] == 0.4
    assert analysis["competition"]["average_proposals_for_similar"] == pytest.approx(4.0)
    assert {t["id"] for t in analysis["similar_tenders"]} == {"p1", "p2", "p3"}
    assert analysis["recommendations"] == list(BIDDING_TIPS)


def test_analyze_without_history(make_document):
    tender = make_document("current", "road works")

    analysis = CompetitionAnalyzer().analyze(tender, [], k=5)

    assert analysis["similar_tenders"] == []
    assert analysis["competition"]["average_proposals_for_similar"] == 0.0
    assert analysis["competition"]["competition_level"] == "low"
