from datetime import timedelta

import pytest

from services.recommendation import BudgetRange, Preference, RecommendationRanker, recommend


@pytest.fixture
def ranker():
    return RecommendationRanker()


@pytest.fixture
def it_pool(make_document):
    return [
        make_document("cloud", "cloud migration kubernetes", category="it_software"),
        make_document("k8s", "kubernetes cluster security", category="it_software"),
        make_document("furniture", "office furniture supply", category="manufacturing"),
    ]


def test_kubernetes_preference_returns_it_tenders_in_similarity_phase(it_pool):
    preference = Preference(
        user_id="u1",
        categories=("it_software",),
        keywords=("kubernetes",),
        min_match_score=10,
    )

    items = recommend(preference, it_pool, limit=2)

    assert [item.document.id for item in items] == ["cloud", "k8s"]
    assert all(item.phase == "similarity" for item in items)
    assert items[0].score >= items[1].score


def test_equal_scores_keep_pool_order_when_all_share_category(make_document):
    pool = [
        make_document("cloud", "cloud migration kubernetes", category="it_software"),
        make_document("k8s", "kubernetes cluster security", category="it_software"),
        make_document("furniture", "office furniture supply", category="it_software"),
    ]
    preference = Preference(user_id="u1", categories=("it_software",), keywords=("kubernetes",), min_match_score=10)

    items = recommend(preference, pool, limit=2)

    assert [item.document.id for item in items] == ["cloud", "k8s"]


def test_empty_pool_and_non_positive_limit(ranker, it_pool):
    preference = Preference(user_id="u1", keywords=("kubernetes",))

    assert ranker.recommend(preference, [], limit=5) == []
    assert ranker.recommend(preference, it_pool, limit=0) == []


def test_similarity_items_precede_fallback_items(ranker, make_document, base_time):
    pool = [
        make_document("old-exact", "kubernetes", published_at=base_time - timedelta(days=10)),
        make_document("new-partial", "kubernetes cluster security", published_at=base_time),
        make_document("mid-other", "alpha beta gamma delta", published_at=base_time - timedelta(days=1)),
    ]
    preference = Preference(user_id="u1", keywords=("kubernetes",), min_match_score=80)

    items = ranker.recommend(preference, pool, limit=3)

    assert [item.document.id for item in items] == ["old-exact", "new-partial", "mid-other"]
    assert [item.phase for item in items] == ["similarity", "fallback", "fallback"]
    assert items[0].score == pytest.approx(1.0)
    assert items[1].score == pytest.approx(3 ** -0.5)


def test_fallback_orders_by_recency_then_views(ranker, make_document, base_time):
    pool = [
        make_document("undated", "zzz text"),
        make_document("old", "some text", published_at=base_time - timedelta(days=3)),
        make_document("new-quiet", "some text", published_at=base_time, view_count=1),
        make_document("new-popular", "some text", published_at=base_time, view_count=50),
    ]
    preference = Preference(user_id="u1")

    items = ranker.recommend(preference, pool, limit=4)

    assert [item.document.id for item in items] == ["new-popular", "new-quiet", "old", "undated"]
    assert all(item.phase == "fallback" for item in items)
    assert all(item.score == 0.0 for item in items)


def test_returns_exactly_limit_when_pool_is_large_enough(ranker, make_document):
    pool = [make_document(f"t{i}", f"tender number {i} services") for i in range(8)]
    preference = Preference(user_id="u1", keywords=("services",), min_match_score=99)

    items = ranker.recommend(preference, pool, limit=5)

    assert len(items) == 5
    assert len({item.document.id for item in items}) == 5


def test_duplicate_ids_in_pool_returned_once(ranker, make_document):
    pool = [make_document("t1", "road works"), make_document("t1", "road works"), make_document("t2", "bridge works")]

    items = ranker.recommend(Preference(user_id="u1"), pool, limit=5)

    assert sorted(item.document.id for item in items) == ["t1", "t2"]


def test_category_filter_is_case_insensitive(ranker, make_document):
    pool = [
        make_document("a", "text", category="it_software"),
        make_document("b", "text", category="healthcare"),
        make_document("c", "text"),
    ]
    preference = Preference(user_id="u1", categories=("IT_Software",))

    assert [item.document.id for item in ranker.recommend(preference, pool, limit=5)] == ["a"]


def test_budget_filter_keeps_documents_without_value(ranker, make_document):
    pool = [
        make_document("cheap", "text", value=500),
        make_document("fits", "text", value=5000),
        make_document("unpriced", "text"),
    ]
    preference = Preference(user_id="u1", budget_range=BudgetRange(min=1000, max=10000))

    ids = {item.document.id for item in ranker.recommend(preference, pool, limit=5)}

    assert ids == {"fits", "unpriced"}


def test_exclude_keywords_drop_matching_documents(ranker, it_pool):
    preference = Preference(user_id="u1", exclude_keywords=("FURNITURE",))

    ids = [item.document.id for item in ranker.recommend(preference, it_pool, limit=5)]

    assert "furniture" not in ids
    assert len(ids) == 2


def test_location_filter_matches_exact_and_fuzzy(ranker, make_document):
    pool = [
        make_document("exact", "text", location="Mumbai"),
        make_document("typo", "text", location="Hyderbad"),
        make_document("elsewhere", "text", location="Chennai"),
        make_document("remote", "text"),
    ]
    preference = Preference(user_id="u1", locations=("mumbai", "Hyderabad"))

    ids = {item.document.id for item in ranker.recommend(preference, pool, limit=5)}

    assert ids == {"exact", "typo", "remote"}


def test_exclude_ids_removed_from_pool(ranker, it_pool):
    items = ranker.recommend(Preference(user_id="u1"), it_pool, limit=5, exclude_ids=["cloud"])

    assert "cloud" not in [item.document.id for item in items]


def test_every_item_carries_reasons(ranker, it_pool):
    preference = Preference(user_id="u1", categories=("it_software",), keywords=("kubernetes",))

    for item in ranker.recommend(preference, it_pool, limit=5):
        assert 1 <= len(item.reasons) <= 3


def test_preference_normalizes_inputs():
    preference = Preference(
        user_id="u1",
        keywords=["Python", "python ", "", "Java"],
        budget_range={"min": 100, "max": None},
        min_match_score=150,
    )

    assert preference.keywords == ("Python", "Java")
    assert preference.budget_range == BudgetRange(min=100.0, max=None)
    assert preference.min_match_score == 100.0
