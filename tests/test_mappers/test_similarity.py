import pytest

from eywa.mappers.similarity import jaccard, keywords, levenshtein_ratio, normalize


def test_normalize_strips_accents_and_punctuation():
    assert normalize("Hôtel  Le Café-Paris!") == "hotel le cafe paris"


def test_normalize_keeps_non_latin_letters():
    assert normalize("東京 Hotel") == "東京 hotel"


def test_normalize_empty():
    assert normalize("   ") == ""


def test_keywords_drop_stop_words_and_single_letters():
    assert keywords("The Grand Hotel & Spa Paris") == ["grand", "paris"]
    assert keywords("Hotel B Roma") == ["roma"]


def test_keywords_only_generic_words():
    assert keywords("The Hotel Resort") == []


def test_jaccard():
    assert jaccard(["a", "b"], ["b", "c"]) == pytest.approx(1 / 3)
    assert jaccard(["paris"], ["paris"]) == 1.0


def test_jaccard_empty_inputs_share_nothing():
    assert jaccard([], []) == 0.0
    assert jaccard(["paris"], []) == 0.0


def test_identical_strings_score_one():
    name = normalize("Grand Hotel Paris")
    assert levenshtein_ratio(name, name) == 1.0
    assert jaccard(keywords("Grand Hotel Paris"), keywords("grand hotel PARIS")) == 1.0


def test_levenshtein_ratio():
    assert levenshtein_ratio("kitten", "sitting") == pytest.approx(4 / 7)
    assert levenshtein_ratio("", "") == 1.0
    assert levenshtein_ratio("abc", "") == 0.0
