import numpy as np
import pytest

from core.cache import VectorCache
from services.recommendation import Document, Vectorizer, tokenize, vectorize


def test_tokenize_lowercases_strips_punctuation_and_short_tokens():
    assert tokenize("Cloud-Migration, to Kubernetes!") == ["cloud", "migration", "kubernetes"]


def test_tokenize_handles_empty_input():
    assert tokenize("") == []
    assert tokenize(None) == []


def test_empty_and_short_text_give_zero_vector():
    for text in ("", "   ", "a an to", None):
        vector = vectorize(text)
        assert vector.shape == (100,)
        assert not vector.any()


def test_slots_hold_normalized_term_frequencies():
    vector = vectorize("cloud cloud migration")

    assert vector[0] == pytest.approx(2 / 3)
    assert vector[1] == pytest.approx(1 / 3)
    assert not vector[2:].any()
    assert vector.sum() == pytest.approx(1.0)


def test_equal_counts_keep_first_occurrence_order():
    vectorizer = Vectorizer()
    assert vectorizer.top_terms("beta alpha beta alpha gamma") == ["beta", "alpha", "gamma"]


def test_only_top_dimensions_are_kept():
    vector = Vectorizer(dimensions=2).vectorize("one two three four")

    assert vector.shape == (2,)
    assert vector.tolist() == [0.25, 0.25]


def test_vectorize_is_deterministic():
    text = "Supply and installation of solar panels for rural schools"
    assert np.array_equal(vectorize(text), vectorize(text))


def test_non_string_input_raises_type_error():
    with pytest.raises(TypeError):
        vectorize(123)


def test_invalid_dimensions_rejected():
    with pytest.raises(ValueError):
        Vectorizer(dimensions=0)


def test_cache_is_consulted_by_text_hash():
    cache = VectorCache()
    vectorizer = Vectorizer(cache=cache)

    first = vectorizer.vectorize("Road construction and maintenance")
    second = vectorizer.vectorize("  road construction and maintenance ")

    assert second is first
    assert cache.stats["misses"] == 1
    assert cache.stats["memory_hits"] == 1


def test_with_text_invalidates_vector():
    document = Document(id="t1", kind="tender", text="old text", vector=vectorize("old text"))
    updated = document.with_text("brand new text")

    assert updated.vector is None
    assert updated.text == "brand new text"
    assert document.vector is not None


def test_unknown_document_kind_rejected():
    with pytest.raises(ValueError):
        Document(id="x", kind="invoice", text="")


def test_shared_cache_keeps_vectorizer_settings_apart():
    cache = VectorCache()
    text = "Road construction and maintenance"

    wide = Vectorizer(dimensions=100, cache=cache).vectorize(text)
    narrow = Vectorizer(dimensions=2, cache=cache).vectorize(text)

    assert wide.shape == (100,)
    assert narrow.shape == (2,)
    assert cache.stats["misses"] == 2


def test_shared_cache_respects_min_token_length():
    cache = VectorCache()

    loose = Vectorizer(min_token_length=1, cache=cache).vectorize("a b c road")
    strict = Vectorizer(min_token_length=3, cache=cache).vectorize("a b c road")

    assert loose[:4].tolist() == [0.25, 0.25, 0.25, 0.25]
    assert strict[0] == 1.0
    assert not strict[1:].any()


def test_cached_vector_for_short_tokens_is_read_only():
    cache = VectorCache()
    vectorizer = Vectorizer(cache=cache)

    vector = vectorizer.vectorize("a an to")

    assert not vector.any()
    with pytest.raises(ValueError):
        vector[0] = 1.0
    assert not vectorizer.vectorize("a an to").any()
