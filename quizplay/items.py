"""Content data model: items, answer keys and the bundle a repository returns.

Everything here is immutable. ``content_bundle_from_dict`` is the single place
where raw JSON-like mappings are validated; anything the engine cannot score
is rejected with :class:`ConfigurationError` before a session exists.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum

from .errors import ConfigurationError, ContentEmpty

DEFAULT_POINTS = 10
DEFAULT_LIVES_COST = 1


class ItemKind(StrEnum):
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"
    WORD_ORDER = "word_order"
    COLUMN_MATCH = "column_match"
    WORD_WHEEL = "word_wheel"
    IMAGE_HOTSPOT = "image_hotspot"


class Experience(StrEnum):
    QUIZ = "quiz"
    WORD_ORDER = "word_order"
    COLUMN_MATCH = "column_match"
    WORD_WHEEL = "word_wheel"
    IMAGE_HOTSPOT = "image_hotspot"


class ComparisonMode(StrEnum):
    EXACT = "exact"
    FLEXIBLE = "flexible"


@dataclass(frozen=True, slots=True)
class ChoiceOption:
    id: str
    text: str
    is_correct: bool
    order_index: int = 0


@dataclass(frozen=True, slots=True)
class ChoiceKey:
    options: tuple[ChoiceOption, ...]

    def option(self, option_id: str) -> ChoiceOption | None:
        for opt in self.options:
            if opt.id == option_id:
                return opt
        return None


@dataclass(frozen=True, slots=True)
class ShortAnswerKey:
    accepted: tuple[str, ...]
    comparison_mode: ComparisonMode = ComparisonMode.FLEXIBLE


@dataclass(frozen=True, slots=True)
class WordOrderKey:
    words: tuple[str, ...]
    correct_sentence: str


@dataclass(frozen=True, slots=True)
class MatchEntry:
    id: str
    text: str
    match_id: str
    image_url: str | None = None


@dataclass(frozen=True, slots=True)
class ColumnMatchKey:
    left: tuple[MatchEntry, ...]
    right: tuple[MatchEntry, ...]

    def left_entry(self, entry_id: str) -> MatchEntry | None:
        return next((e for e in self.left if e.id == entry_id), None)

    def right_entry(self, entry_id: str) -> MatchEntry | None:
        return next((e for e in self.right if e.id == entry_id), None)

    @property
    def pair_count(self) -> int:
        return len(self.left)


@dataclass(frozen=True, slots=True)
class WordWheelKey:
    initial_letter: str
    correct_sentence: str


@dataclass(frozen=True, slots=True)
class HotspotPoint:
    id: str
    x_pct: float
    y_pct: float
    lives_cost: int = DEFAULT_LIVES_COST


@dataclass(frozen=True, slots=True)
class HotspotKey:
    point: HotspotPoint


AnswerKey = ChoiceKey | ShortAnswerKey | WordOrderKey | ColumnMatchKey | WordWheelKey | HotspotKey


@dataclass(frozen=True, slots=True)
class Item:
    id: str
    kind: ItemKind
    prompt: str
    key: AnswerKey
    points: int = DEFAULT_POINTS
    order_index: int = 0
    lives_cost: int = DEFAULT_LIVES_COST
    feedback: str | None = None
    image_url: str | None = None

    @property
    def max_points(self) -> int:
        if isinstance(self.key, ColumnMatchKey):
            return self.points * self.key.pair_count
        return self.points


@dataclass(frozen=True, slots=True)
class ImageInfo:
    url: str
    width: int
    height: int


@dataclass(frozen=True, slots=True)
class ContentBundle:
    content_id: str
    title: str
    experience: Experience
    items: tuple[Item, ...]
    lives_budget: int | None = None
    time_limit_s: int | None = None
    random_order: bool = False
    pass_threshold: int | None = None
    image: ImageInfo | None = None

    @property
    def max_score(self) -> int:
        return sum(item.max_points for item in self.items)

    def hotspot_points(self) -> tuple[HotspotPoint, ...]:
        return tuple(item.key.point for item in self.items if isinstance(item.key, HotspotKey))


_EXPERIENCE_KINDS: dict[Experience, frozenset[ItemKind]] = {
    Experience.QUIZ: frozenset({ItemKind.MULTIPLE_CHOICE, ItemKind.TRUE_FALSE, ItemKind.SHORT_ANSWER}),
    Experience.WORD_ORDER: frozenset({ItemKind.WORD_ORDER}),
    Experience.COLUMN_MATCH: frozenset({ItemKind.COLUMN_MATCH}),
    Experience.WORD_WHEEL: frozenset({ItemKind.WORD_WHEEL}),
    Experience.IMAGE_HOTSPOT: frozenset({ItemKind.IMAGE_HOTSPOT}),
}


def content_bundle_from_dict(data: object) -> ContentBundle:
    if not isinstance(data, Mapping):
        raise ConfigurationError("content must be an object")

    content_id = _req_str(data, "id", where="content")
    experience = _enum(Experience, data.get("experience", Experience.QUIZ.value), where=content_id)

    raw_items = data.get("items", [])
    if not isinstance(raw_items, Sequence) or isinstance(raw_items, str):
        raise ConfigurationError(f"{content_id}: items must be a list")
    if not raw_items:
        raise ContentEmpty(f"{content_id}: content has no items")

    items = tuple(
        sorted(
            (item_from_dict(raw, fallback_index=i) for i, raw in enumerate(raw_items)),
            key=lambda it: it.order_index,
        )
    )
    seen: set[str] = set()
    allowed = _EXPERIENCE_KINDS[experience]
    for item in items:
        if item.id in seen:
            raise ConfigurationError(f"{content_id}: duplicate item id {item.id!r}")
        seen.add(item.id)
        if item.kind not in allowed:
            raise ConfigurationError(
                f"{content_id}: item {item.id!r} of kind {item.kind.value} not allowed in {experience.value}"
            )

    lives_budget = _opt_positive_int(data, "lives", where=content_id)
    time_limit_s = _opt_positive_int(data, "time_limit_s", where=content_id)
    pass_threshold = data.get("pass_threshold")
    if pass_threshold is not None:
        pass_threshold = _as_int(pass_threshold, where=f"{content_id}.pass_threshold")
        if not (0 <= pass_threshold <= 100):
            raise ConfigurationError(f"{content_id}: pass_threshold must be in [0, 100]")

    image = None
    raw_image = data.get("image")
    if raw_image is not None:
        if not isinstance(raw_image, Mapping):
            raise ConfigurationError(f"{content_id}: image must be an object")
        width = _as_int(raw_image.get("width"), where=f"{content_id}.image.width")
        height = _as_int(raw_image.get("height"), where=f"{content_id}.image.height")
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"{content_id}: image size must be positive")
        image = ImageInfo(url=str(raw_image.get("url", "")), width=width, height=height)
    if experience is Experience.IMAGE_HOTSPOT and image is None:
        raise ConfigurationError(f"{content_id}: image_hotspot content needs an image with its intrinsic size")

    return ContentBundle(
        content_id=content_id,
        title=str(data.get("title", content_id)),
        experience=experience,
        items=items,
        lives_budget=lives_budget,
        time_limit_s=time_limit_s,
        random_order=bool(data.get("random_order", False)),
        pass_threshold=pass_threshold,
        image=image,
    )


def item_from_dict(data: object, *, fallback_index: int = 0) -> Item:
    if not isinstance(data, Mapping):
        raise ConfigurationError("item must be an object")
    item_id = _req_str(data, "id", where="item")
    kind = _enum(ItemKind, data.get("kind"), where=item_id)

    points = _as_int(data.get("points", DEFAULT_POINTS), where=f"{item_id}.points")
    if points <= 0:
        raise ConfigurationError(f"{item_id}: points must be > 0")
    lives_cost = _as_int(data.get("lives_cost", DEFAULT_LIVES_COST), where=f"{item_id}.lives_cost")
    if lives_cost <= 0:
        raise ConfigurationError(f"{item_id}: lives_cost must be > 0")

    if kind in (ItemKind.MULTIPLE_CHOICE, ItemKind.TRUE_FALSE):
        key: AnswerKey = _choice_key(data, item_id)
    elif kind is ItemKind.SHORT_ANSWER:
        key = _short_answer_key(data, item_id)
    elif kind is ItemKind.WORD_ORDER:
        key = _word_order_key(data, item_id)
    elif kind is ItemKind.COLUMN_MATCH:
        key = _column_match_key(data, item_id)
    elif kind is ItemKind.WORD_WHEEL:
        key = _word_wheel_key(data, item_id)
    else:
        key = _hotspot_key(data, item_id, lives_cost=lives_cost)

    return Item(
        id=item_id,
        kind=kind,
        prompt=str(data.get("prompt", "")),
        key=key,
        points=points,
        order_index=_as_int(data.get("order_index", fallback_index), where=f"{item_id}.order_index"),
        lives_cost=lives_cost,
        feedback=_opt_str(data.get("feedback")),
        image_url=_opt_str(data.get("image_url")),
    )


def _choice_key(data: Mapping[str, object], item_id: str) -> ChoiceKey:
    raw = _req_list(data, "options", where=item_id)
    options = []
    for i, opt in enumerate(raw):
        if not isinstance(opt, Mapping):
            raise ConfigurationError(f"{item_id}: option must be an object")
        options.append(
            ChoiceOption(
                id=_req_str(opt, "id", where=item_id),
                text=str(opt.get("text", "")),
                is_correct=bool(opt.get("is_correct", False)),
                order_index=_as_int(opt.get("order_index", i), where=f"{item_id}.options"),
            )
        )
    if len(options) < 2:
        raise ConfigurationError(f"{item_id}: needs at least two options")
    if not any(o.is_correct for o in options):
        raise ConfigurationError(f"{item_id}: no option is marked correct")
    if len({o.id for o in options}) != len(options):
        raise ConfigurationError(f"{item_id}: duplicate option ids")
    return ChoiceKey(options=tuple(sorted(options, key=lambda o: o.order_index)))


def _short_answer_key(data: Mapping[str, object], item_id: str) -> ShortAnswerKey:
    accepted = tuple(str(a) for a in _req_list(data, "accepted", where=item_id))
    if not accepted or not any(a.strip() for a in accepted):
        raise ConfigurationError(f"{item_id}: needs at least one accepted answer")
    mode = _enum(ComparisonMode, data.get("comparison_mode", ComparisonMode.FLEXIBLE.value), where=item_id)
    return ShortAnswerKey(accepted=accepted, comparison_mode=mode)


def _word_order_key(data: Mapping[str, object], item_id: str) -> WordOrderKey:
    words = data.get("words", [])
    if isinstance(words, str):
        # Older content stores the bag as a single space separated string.
        words = words.split()
    if not isinstance(words, Sequence) or not words:
        raise ConfigurationError(f"{item_id}: needs a non-empty word bank")
    sentence = _req_str(data, "correct_sentence", where=item_id)
    return WordOrderKey(words=tuple(str(w) for w in words), correct_sentence=sentence)


def _column_match_key(data: Mapping[str, object], item_id: str) -> ColumnMatchKey:
    left = tuple(_match_entry(e, item_id) for e in _req_list(data, "left", where=item_id))
    right = tuple(_match_entry(e, item_id) for e in _req_list(data, "right", where=item_id))
    if not left or not right:
        raise ConfigurationError(f"{item_id}: both columns need entries")
    if len(left) != len(right):
        raise ConfigurationError(f"{item_id}: columns must have the same length")
    for column in (left, right):
        match_ids = [e.match_id for e in column]
        if len(set(match_ids)) != len(match_ids):
            raise ConfigurationError(f"{item_id}: duplicate match_id within a column")
    if {e.match_id for e in left} != {e.match_id for e in right}:
        raise ConfigurationError(f"{item_id}: columns do not pair 1:1 by match_id")
    entry_ids = [e.id for e in left + right]
    if len(set(entry_ids)) != len(entry_ids):
        raise ConfigurationError(f"{item_id}: duplicate entry ids")
    return ColumnMatchKey(left=left, right=right)


def _match_entry(raw: object, item_id: str) -> MatchEntry:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"{item_id}: column entry must be an object")
    return MatchEntry(
        id=_req_str(raw, "id", where=item_id),
        text=str(raw.get("text", "")),
        match_id=_req_str(raw, "match_id", where=item_id),
        image_url=_opt_str(raw.get("image_url")),
    )


def _word_wheel_key(data: Mapping[str, object], item_id: str) -> WordWheelKey:
    letter = _req_str(data, "initial_letter", where=item_id).strip()
    if len(letter) != 1 or not letter.isalpha():
        raise ConfigurationError(f"{item_id}: initial_letter must be a single letter")
    sentence = _req_str(data, "correct_sentence", where=item_id)
    return WordWheelKey(initial_letter=letter.upper(), correct_sentence=sentence)


def _hotspot_key(data: Mapping[str, object], item_id: str, *, lives_cost: int) -> HotspotKey:
    x = _as_float(data.get("x"), where=f"{item_id}.x")
    y = _as_float(data.get("y"), where=f"{item_id}.y")
    if not (0.0 <= x <= 100.0 and 0.0 <= y <= 100.0):
        raise ConfigurationError(f"{item_id}: hotspot coordinates must be percentages in [0, 100]")
    return HotspotKey(point=HotspotPoint(id=item_id, x_pct=x, y_pct=y, lives_cost=lives_cost))


def _req_str(data: Mapping[str, object], key: str, *, where: str) -> str:
    value = data.get(key)
    if value is None or str(value).strip() == "":
        raise ConfigurationError(f"{where}: missing {key!r}")
    return str(value)


def _opt_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _req_list(data: Mapping[str, object], key: str, *, where: str) -> Sequence[object]:
    value = data.get(key)
    if not isinstance(value, Sequence) or isinstance(value, str):
        raise ConfigurationError(f"{where}: {key!r} must be a list")
    return value


def _as_int(value: object, *, where: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{where}: expected an integer")
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ConfigurationError(f"{where}: expected an integer") from None


def _as_float(value: object, *, where: str) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ConfigurationError(f"{where}: expected a number") from None


def _opt_positive_int(data: Mapping[str, object], key: str, *, where: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    out = _as_int(value, where=f"{where}.{key}")
    if out <= 0:
        raise ConfigurationError(f"{where}: {key} must be > 0")
    return out


def _enum(enum_cls: type[StrEnum], value: object, *, where: str):  # type: ignore[no-untyped-def]
    try:
        return enum_cls(str(value))
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ConfigurationError(f"{where}: {value!r} is not one of {allowed}") from None
