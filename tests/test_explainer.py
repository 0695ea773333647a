from services.recommendation import BudgetRange, Preference, ReasonExplainer
from services.recommendation.explainer import DEFAULT_REASON, ReasonRule, explain, matched_keywords


def _always(name):
    return ReasonRule(name, lambda document, preference: {}, f"rule {name}")


def test_reasons_follow_rule_order(make_document):
    document = make_document(
        "t1",
        "Cloud migration using python and kubernetes",
        category="it_software",
        requirements=("Kubernetes certification",),
        value=5000,
    )
    preference = Preference(
        user_id="u1",
        categories=("it_software",),
        keywords=("kubernetes", "python", "java"),
        budget_range=BudgetRange(min=1000, max=10000),
    )

    assert explain(document, preference) == [
        "Matches your preferred category: it_software",
        "Matches your skills: kubernetes, python",
        "Within your preferred budget range",
    ]


def test_default_reason_when_nothing_matches(make_document):
    document = make_document("t1", "office furniture supply", category="manufacturing", value=50)
    preference = Preference(
        user_id="u1",
        categories=("it_software",),
        keywords=("kubernetes",),
        budget_range=BudgetRange(min=1000),
    )

    assert explain(document, preference) == [DEFAULT_REASON]


def test_empty_preference_gets_default_reason(make_document):
    assert explain(make_document("t1", "anything"), Preference(user_id="u1")) == [DEFAULT_REASON]


def test_keyword_match_is_bidirectional_substring(make_document):
    document = make_document("t1", "ERP implementation", requirements=("SAP HANA",))
    preference = Preference(user_id="u1", keywords=("implement", "hana database"))

    assert matched_keywords(document, preference) == ["implement", "hana database"]


def test_reasons_capped_at_max():
    explainer = ReasonExplainer(rules=[_always("a"), _always("b"), _always("c"), _always("d")])
    document_reasons = explainer.explain(None, None)

    assert document_reasons == ["rule a", "rule b", "rule c"]
