from __future__ import annotations

from quizplay.fuzzy import best_similarity, levenshtein, matches_short_answer, normalize_answer, similarity
from quizplay.items import ComparisonMode


def test_levenshtein_basic_distances() -> None:
    assert levenshtein("", "") == 0
    assert levenshtein("abc", "") == 3
    assert levenshtein("", "abc") == 3
    assert levenshtein("kitten", "sitting") == 3
    assert levenshtein("gato", "gatto") == 1


def test_levenshtein_is_symmetric() -> None:
    pairs = [("flaw", "lawn"), ("perro", "burro"), ("intention", "execution")]
    for a, b in pairs:
        assert levenshtein(a, b) == levenshtein(b, a)


def test_similarity_is_symmetric() -> None:
    pairs = [("gato", "gatto"), ("abc", ""), ("madrid", "mad"), ("intention", "execution")]
    for a, b in pairs:
        assert similarity(a, b) == similarity(b, a)
    assert similarity("gatto", "gato") == 0.8
    assert similarity("", "abc") == 0.0


def test_similarity_uses_longer_length_and_handles_empty() -> None:
    assert similarity("", "") == 1.0
    assert similarity("abc", "") == 0.0
    assert similarity("gato", "gatto") == 0.8


def test_flexible_accepts_at_threshold() -> None:
    assert matches_short_answer("gatto", ["gato"], ComparisonMode.FLEXIBLE) is True


def test_flexible_rejects_just_below_threshold() -> None:
    reference = "abcdefghijklmn"
    response = "XbcdefgYijklmZ"
    assert len(reference) == 14
    assert levenshtein(reference, response) == 3
    assert matches_short_answer(response, [reference], ComparisonMode.FLEXIBLE) is False


def test_answers_are_trimmed_and_case_folded() -> None:
    assert normalize_answer("  Madrid ") == "madrid"
    assert matches_short_answer("  MADRID  ", ["madrid"], ComparisonMode.EXACT) is True


def test_exact_mode_rejects_typos() -> None:
    assert matches_short_answer("gatto", ["gato"], ComparisonMode.EXACT) is False


def test_any_reference_may_match() -> None:
    refs = ["colour", "color"]
    assert matches_short_answer("color", refs, ComparisonMode.EXACT) is True
    assert best_similarity("colr", refs) == 0.8
    assert best_similarity("x", []) == 0.0
