from __future__ import annotations

from quizplay.evaluators import (
    ChoiceResponse,
    ColumnMatchEvaluator,
    HotspotClick,
    HotspotEvaluator,
    PairResponse,
    TextResponse,
    WordOrderEvaluator,
    WordOrderResponse,
    WordWheelEvaluator,
    evaluator_for,
)
from quizplay.items import ItemKind, item_from_dict


def _choice_item():
    return item_from_dict(
        {
            "id": "q1",
            "kind": "multiple_choice",
            "prompt": "Capital of France?",
            "options": [
                {"id": "a", "text": "Paris", "is_correct": True},
                {"id": "b", "text": "Rome"},
            ],
        }
    )


def test_choice_evaluator_scores_points_and_costs() -> None:
    item = _choice_item()
    ev = evaluator_for(ItemKind.MULTIPLE_CHOICE)
    right = ev.evaluate(item, ChoiceResponse("a"))
    wrong = ev.evaluate(item, ChoiceResponse("b"))
    unknown = ev.evaluate(item, ChoiceResponse("zzz"))

    assert (right.correct, right.points_awarded, right.lives_cost) == (True, 10, 0)
    assert (wrong.correct, wrong.points_awarded, wrong.lives_cost) == (False, 0, 1)
    assert unknown.correct is False
    assert unknown.detail == "unknown_option"


def test_short_answer_uses_configured_threshold() -> None:
    item = item_from_dict({"id": "s1", "kind": "short_answer", "accepted": ["gato"]})
    assert evaluator_for(ItemKind.SHORT_ANSWER).evaluate(item, TextResponse("gatto")).correct is True
    strict = evaluator_for(ItemKind.SHORT_ANSWER, similarity_threshold=0.9)
    assert strict.evaluate(item, TextResponse("gatto")).correct is False


def test_word_order_compares_joined_sentence_case_insensitively() -> None:
    item = item_from_dict(
        {"id": "w1", "kind": "word_order", "words": ["cat", "The", "sleeps"], "correct_sentence": "The cat sleeps"}
    )
    ev = WordOrderEvaluator()
    assert ev.evaluate(item, WordOrderResponse(("the", "cat", "sleeps"))).correct is True
    assert ev.evaluate(item, WordOrderResponse(("cat", "the", "sleeps"))).correct is False


def test_column_match_pairs_by_match_id() -> None:
    item = item_from_dict(
        {
            "id": "m1",
            "kind": "column_match",
            "left": [{"id": "l1", "text": "dog", "match_id": "x"}, {"id": "l2", "text": "cat", "match_id": "y"}],
            "right": [{"id": "r1", "text": "perro", "match_id": "x"}, {"id": "r2", "text": "gato", "match_id": "y"}],
        }
    )
    ev = ColumnMatchEvaluator()
    good = ev.evaluate(item, PairResponse("l1", "r1"))
    bad = ev.evaluate(item, PairResponse("l1", "r2"))
    assert good.correct is True
    assert good.detail == "x"
    assert bad.correct is False
    assert bad.lives_cost == 1


def test_word_wheel_rejects_wrong_initial_without_comparing_sentence() -> None:
    item = item_from_dict(
        {"id": "b", "kind": "word_wheel", "initial_letter": "B", "correct_sentence": "Perro"}
    )
    result = WordWheelEvaluator().evaluate(item, TextResponse("Perro"))
    assert result.correct is False
    assert result.lives_cost == 1
    assert result.detail == "initial_letter"


def test_word_wheel_accepts_matching_answer() -> None:
    item = item_from_dict(
        {"id": "b", "kind": "word_wheel", "initial_letter": "b", "correct_sentence": "Burro"}
    )
    ev = WordWheelEvaluator()
    assert ev.evaluate(item, TextResponse(" burro ")).correct is True
    assert ev.evaluate(item, TextResponse("Barco")).detail == "mismatch"


def test_hotspot_wrong_point_costs_that_points_lives() -> None:
    a = item_from_dict({"id": "A", "kind": "image_hotspot", "x": 10, "y": 10, "lives_cost": 1})
    b = item_from_dict({"id": "B", "kind": "image_hotspot", "x": 50, "y": 50, "lives_cost": 2})
    ev = HotspotEvaluator()
    wrong = ev.evaluate(a, HotspotClick(b.key.point))
    assert wrong.correct is False
    assert wrong.lives_cost == 2
    assert ev.evaluate(a, HotspotClick(a.key.point)).correct is True


def test_evaluator_traits() -> None:
    assert WordWheelEvaluator.supports_skip is True
    assert WordWheelEvaluator.auto_advance is True
    assert ColumnMatchEvaluator.locks_on_wrong is False
    assert evaluator_for(ItemKind.TRUE_FALSE).supports_skip is False
