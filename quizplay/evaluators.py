from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Protocol

from .fuzzy import DEFAULT_SIMILARITY_THRESHOLD, matches_short_answer, normalize_answer
from .items import (
    ChoiceKey,
    ColumnMatchKey,
    HotspotKey,
    HotspotPoint,
    Item,
    ItemKind,
    ShortAnswerKey,
    WordOrderKey,
    WordWheelKey,
)


@dataclass(frozen=True, slots=True)
class ChoiceResponse:
    option_id: str

    def describe(self) -> str:
        return self.option_id

    def is_blank(self) -> bool:
        return not self.option_id


@dataclass(frozen=True, slots=True)
class TextResponse:
    text: str

    def describe(self) -> str:
        return self.text.strip()

    def is_blank(self) -> bool:
        return not self.text.strip()


@dataclass(frozen=True, slots=True)
class WordOrderResponse:
    ordered_words: tuple[str, ...]

    def describe(self) -> str:
        return " ".join(self.ordered_words)

    def is_blank(self) -> bool:
        return len(self.ordered_words) == 0


@dataclass(frozen=True, slots=True)
class PairResponse:
    left_id: str
    right_id: str

    def describe(self) -> str:
        return f"{self.left_id}->{self.right_id}"

    def is_blank(self) -> bool:
        return not self.left_id or not self.right_id


@dataclass(frozen=True, slots=True)
class HotspotClick:
    """A click resolved against the configured points; ``point`` is None for empty space."""

    point: HotspotPoint | None

    def describe(self) -> str:
        return "" if self.point is None else self.point.id

    def is_blank(self) -> bool:
        return self.point is None


Response = ChoiceResponse | TextResponse | WordOrderResponse | PairResponse | HotspotClick


@dataclass(frozen=True, slots=True)
class Evaluation:
    correct: bool
    points_awarded: int
    lives_cost: int
    detail: str = ""


class Evaluator(Protocol):
    """Pure correctness predicate for one item variant.

    The traits tell the session how the variant flows:
    - ``auto_advance``: move on as soon as the item is resolved.
    - ``locks_on_wrong``: a wrong answer resolves the item (no retry).
    - ``supports_skip``: ``Session.skip()`` is allowed.
    """

    response_type: ClassVar[type]
    auto_advance: ClassVar[bool]
    locks_on_wrong: ClassVar[bool]
    supports_skip: ClassVar[bool]

    def evaluate(self, item: Item, response: Response) -> Evaluation: ...


def _right(item: Item, *, detail: str = "") -> Evaluation:
    return Evaluation(correct=True, points_awarded=item.points, lives_cost=0, detail=detail)


def _wrong(cost: int, *, detail: str = "") -> Evaluation:
    return Evaluation(correct=False, points_awarded=0, lives_cost=max(0, int(cost)), detail=detail)


class ChoiceEvaluator:
    response_type: ClassVar[type] = ChoiceResponse
    auto_advance: ClassVar[bool] = False
    locks_on_wrong: ClassVar[bool] = True
    supports_skip: ClassVar[bool] = False

    def evaluate(self, item: Item, response: Response) -> Evaluation:
        assert isinstance(item.key, ChoiceKey)
        assert isinstance(response, ChoiceResponse)
        option = item.key.option(response.option_id)
        if option is not None and option.is_correct:
            return _right(item)
        return _wrong(item.lives_cost, detail="wrong_option" if option is not None else "unknown_option")


class ShortAnswerEvaluator:
    response_type: ClassVar[type] = TextResponse
    auto_advance: ClassVar[bool] = False
    locks_on_wrong: ClassVar[bool] = True
    supports_skip: ClassVar[bool] = False

    def __init__(self, *, threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> None:
        self._threshold = float(threshold)

    def evaluate(self, item: Item, response: Response) -> Evaluation:
        assert isinstance(item.key, ShortAnswerKey)
        assert isinstance(response, TextResponse)
        key = item.key
        if matches_short_answer(response.text, key.accepted, key.comparison_mode, threshold=self._threshold):
            return _right(item, detail=key.comparison_mode.value)
        return _wrong(item.lives_cost, detail=key.comparison_mode.value)


class WordOrderEvaluator:
    response_type: ClassVar[type] = WordOrderResponse
    auto_advance: ClassVar[bool] = False
    locks_on_wrong: ClassVar[bool] = True
    supports_skip: ClassVar[bool] = False

    def evaluate(self, item: Item, response: Response) -> Evaluation:
        assert isinstance(item.key, WordOrderKey)
        assert isinstance(response, WordOrderResponse)
        sentence = " ".join(response.ordered_words).lower().strip()
        if sentence == item.key.correct_sentence.lower().strip():
            return _right(item)
        return _wrong(item.lives_cost)


class ColumnMatchEvaluator:
    """Scores one proposed pair. Endpoint reuse is rejected by the session first."""

    response_type: ClassVar[type] = PairResponse
    auto_advance: ClassVar[bool] = True
    locks_on_wrong: ClassVar[bool] = False
    supports_skip: ClassVar[bool] = False

    def evaluate(self, item: Item, response: Response) -> Evaluation:
        assert isinstance(item.key, ColumnMatchKey)
        assert isinstance(response, PairResponse)
        left = item.key.left_entry(response.left_id)
        right = item.key.right_entry(response.right_id)
        if left is not None and right is not None and left.match_id == right.match_id:
            return _right(item, detail=left.match_id)
        return _wrong(item.lives_cost)


class HotspotEvaluator:
    response_type: ClassVar[type] = HotspotClick
    auto_advance: ClassVar[bool] = False
    locks_on_wrong: ClassVar[bool] = False
    supports_skip: ClassVar[bool] = False

    def evaluate(self, item: Item, response: Response) -> Evaluation:
        assert isinstance(item.key, HotspotKey)
        assert isinstance(response, HotspotClick)
        clicked = response.point
        if clicked is None:
            # Sessions never forward empty clicks; scoring one is a no-op.
            return _wrong(0, detail="empty_click")
        if clicked.id == item.key.point.id:
            return _right(item)
        # Another configured point costs *its* lives, not the expected point's.
        return _wrong(clicked.lives_cost, detail=clicked.id)


class WordWheelEvaluator:
    response_type: ClassVar[type] = TextResponse
    auto_advance: ClassVar[bool] = True
    locks_on_wrong: ClassVar[bool] = True
    supports_skip: ClassVar[bool] = True

    def evaluate(self, item: Item, response: Response) -> Evaluation:
        assert isinstance(item.key, WordWheelKey)
        assert isinstance(response, TextResponse)
        answer = normalize_answer(response.text)
        if answer[:1].upper() != item.key.initial_letter.upper():
            return _wrong(item.lives_cost, detail="initial_letter")
        if answer == normalize_answer(item.key.correct_sentence):
            return _right(item)
        return _wrong(item.lives_cost, detail="mismatch")


def evaluator_for(kind: ItemKind, *, similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> Evaluator:
    if kind in (ItemKind.MULTIPLE_CHOICE, ItemKind.TRUE_FALSE):
        return ChoiceEvaluator()
    if kind is ItemKind.SHORT_ANSWER:
        return ShortAnswerEvaluator(threshold=similarity_threshold)
    if kind is ItemKind.WORD_ORDER:
        return WordOrderEvaluator()
    if kind is ItemKind.COLUMN_MATCH:
        return ColumnMatchEvaluator()
    if kind is ItemKind.WORD_WHEEL:
        return WordWheelEvaluator()
    return HotspotEvaluator()
