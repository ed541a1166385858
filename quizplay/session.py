"""Session state machine shared by every quiz and mini-game.

States: loading -> active -> completed. The host owns exactly one Session per
attempt and drives it through discrete operations (``submit_answer``,
``advance``, ``skip``, ``tick``, ``extend_time``, focus and clipboard reports).
All mutation goes through those operations. Out-of-order or late calls
return an ignored ``Outcome`` instead of raising; score, lives and the
completed state are one-way.

Time is entirely via the injected Clock (elapsed time) and explicit ``tick()``
calls (countdown), so headless runs are deterministic.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import StrEnum

from .clock import Clock
from .config import EngineConfig
from .content import ContentRepository
from .errors import ContentEmpty, IgnoreReason, PersistenceFailed, RepositoryUnavailable
from .evaluators import Evaluation, Evaluator, HotspotClick, PairResponse, Response, evaluator_for
from .geometry import Point, hit_test
from .integrity import ClipboardAction, IntegrityMonitor, IntegritySummary
from .items import ColumnMatchKey, ContentBundle, Experience, Item, ItemKind, MatchEntry, WordOrderKey, WordWheelKey
from .results import (
    AttemptRecord,
    AttemptStatus,
    CompletionReason,
    ResultRecord,
    ResultsStore,
    SessionResult,
    normalize_score,
    result_record_from_session,
)
from .rewards import RewardNotifier
from .timer import Countdown

logger = logging.getLogger(__name__)


class SessionStatus(StrEnum):
    LOADING = "loading"
    ACTIVE = "active"
    COMPLETED = "completed"


class SignalKind(StrEnum):
    ITEM_CORRECT = "item_correct"
    ITEM_WRONG = "item_wrong"
    LIFE_LOST = "life_lost"
    TIME_WARNING = "time_warning"
    TIME_EXPIRED = "time_expired"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"
    CLIPBOARD_ATTEMPT = "clipboard_attempt"
    PERSISTENCE_FAILED = "persistence_failed"
    COMPLETED = "completed"


class LetterState(StrEnum):
    PENDING = "pending"
    CORRECT = "correct"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class Signal:
    kind: SignalKind
    item_id: str | None = None
    message: str = ""


@dataclass(frozen=True, slots=True)
class Outcome:
    accepted: bool
    reason: IgnoreReason | None = None
    evaluation: Evaluation | None = None
    completed: bool = False
    message: str = ""

    @property
    def correct(self) -> bool:
        return self.evaluation is not None and self.evaluation.correct


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """View model for the host (pure data)."""

    title: str
    experience: Experience | None
    status: SessionStatus
    item_index: int
    item_count: int
    item: Item | None
    item_resolved: bool
    last_evaluation: Evaluation | None
    feedback: str | None

    raw_score: int
    max_raw_score: int
    lives: int | None
    lives_budget: int | None
    time_remaining_s: int | None
    paused: bool

    word_bank: tuple[str, ...] = ()
    right_column: tuple[MatchEntry, ...] = ()
    connected_pairs: tuple[tuple[str, str], ...] = ()
    letter_states: tuple[tuple[str, LetterState], ...] = ()

    suspicious: bool = False
    focus_losses: int = 0
    clipboard_attempts: int = 0
    result: SessionResult | None = None


def _ignored(reason: IgnoreReason) -> Outcome:
    return Outcome(accepted=False, reason=reason)


def round_half_up(x: float) -> int:
    return int(x + 0.5) if x >= 0 else -int(-x + 0.5)


class Session:
    def __init__(
        self,
        *,
        clock: Clock,
        seed: int,
        config: EngineConfig | None = None,
        results_store: ResultsStore | None = None,
        reward_notifier: RewardNotifier | None = None,
        user_id: str | None = None,
        evaluation_event_id: str | None = None,
    ) -> None:
        self._clock = clock
        self._seed = int(seed)
        self._rng = random.Random(self._seed)
        self._cfg = config or EngineConfig()
        self._results_store = results_store
        self._reward_notifier = reward_notifier
        self._user_id = user_id
        self._evaluation_event_id = evaluation_event_id

        self._status = SessionStatus.LOADING
        self._bundle: ContentBundle | None = None
        self._items: tuple[Item, ...] = ()
        self._index = 0
        self._raw_score = 0
        self._lives: int | None = None
        self._lives_budget: int | None = None
        self._countdown: Countdown | None = None
        self._integrity = IntegrityMonitor(
            clock=clock,
            suspicious_after=self._cfg.suspicious_after_focus_losses,
        )
        self._started_at_s: float | None = None

        self._evaluators: dict[ItemKind, Evaluator] = {}
        self._resolved: dict[str, AttemptStatus] = {}
        self._connections: dict[str, list[tuple[str, str]]] = {}
        self._attempts: list[AttemptRecord] = []
        self._last_evaluation: Evaluation | None = None
        self._signals: list[Signal] = []

        self._word_banks: dict[str, tuple[str, ...]] = {}
        self._right_columns: dict[str, tuple[MatchEntry, ...]] = {}

        self._result: SessionResult | None = None
        self._record: ResultRecord | None = None
        self._persisted = False

    # -- lifecycle -----------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def bundle(self) -> ContentBundle | None:
        return self._bundle

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def evaluation_event_id(self) -> str | None:
        return self._evaluation_event_id

    @property
    def item_index(self) -> int:
        return self._index

    @property
    def raw_score(self) -> int:
        return self._raw_score

    @property
    def lives(self) -> int | None:
        return self._lives

    @property
    def time_remaining_s(self) -> int | None:
        return None if self._countdown is None else self._countdown.remaining_s

    @property
    def persisted(self) -> bool:
        return self._persisted

    @property
    def record(self) -> ResultRecord | None:
        return self._record

    def load(self, repository: ContentRepository, content_id: str) -> Outcome:
        """Resolve content and start.

        RepositoryUnavailable leaves the session in ``loading`` so the host can
        offer a retry; ContentNotFound and configuration errors are fatal. A
        session that already started ignores the call.
        """

        if self._status is not SessionStatus.LOADING:
            return _ignored(IgnoreReason.ALREADY_STARTED)
        try:
            bundle = repository.load_items(content_id)
        except RepositoryUnavailable:
            logger.warning("content_repository_unavailable: content_id=%s", content_id)
            raise
        return self.begin(bundle)

    def begin(self, bundle: ContentBundle) -> Outcome:
        if self._status is not SessionStatus.LOADING:
            return _ignored(IgnoreReason.ALREADY_STARTED)
        if not bundle.items:
            raise ContentEmpty(f"{bundle.content_id}: content has no items")

        items = list(bundle.items)
        if bundle.random_order:
            self._rng.shuffle(items)

        for item in items:
            if item.kind not in self._evaluators:
                self._evaluators[item.kind] = evaluator_for(
                    item.kind,
                    similarity_threshold=self._cfg.similarity_threshold,
                )
            if isinstance(item.key, WordOrderKey):
                words = list(item.key.words)
                if bundle.random_order:
                    self._rng.shuffle(words)
                self._word_banks[item.id] = tuple(words)
            elif isinstance(item.key, ColumnMatchKey):
                right = list(item.key.right)
                self._rng.shuffle(right)
                self._right_columns[item.id] = tuple(right)
                self._connections[item.id] = []

        if bundle.lives_budget is not None:
            self._lives_budget = bundle.lives_budget
        elif bundle.experience is not Experience.QUIZ:
            self._lives_budget = self._cfg.default_lives
        self._lives = self._lives_budget

        if bundle.time_limit_s is not None:
            self._countdown = Countdown(total_s=bundle.time_limit_s, warning_at_s=self._cfg.time_warning_s)

        self._bundle = bundle
        self._items = tuple(items)
        self._index = 0
        self._started_at_s = self._clock.now()
        self._status = SessionStatus.ACTIVE
        logger.info(
            "session_started: content_id=%s items=%s lives=%s time_limit_s=%s",
            bundle.content_id,
            len(items),
            self._lives,
            bundle.time_limit_s,
        )
        return Outcome(accepted=True)

    def current_item(self) -> Item | None:
        if self._status is not SessionStatus.ACTIVE or self._index >= len(self._items):
            return None
        return self._items[self._index]

    def items(self) -> tuple[Item, ...]:
        return self._items

    def attempts(self) -> tuple[AttemptRecord, ...]:
        return tuple(self._attempts)

    def drain_signals(self) -> tuple[Signal, ...]:
        out = tuple(self._signals)
        self._signals.clear()
        return out

    # -- answering -----------------------------------------------------------

    def submit_answer(self, response: Response) -> Outcome:
        guard = self._guard_active()
        if guard is not None:
            return guard
        item = self._items[self._index]
        if item.id in self._resolved:
            return _ignored(IgnoreReason.ALREADY_ANSWERED)

        evaluator = self._evaluators[item.kind]
        if not isinstance(response, evaluator.response_type):
            return _ignored(IgnoreReason.WRONG_RESPONSE_KIND)
        if response.is_blank():
            reason = IgnoreReason.EMPTY_CLICK if isinstance(response, HotspotClick) else IgnoreReason.EMPTY_RESPONSE
            return _ignored(reason)
        if isinstance(response, PairResponse):
            pair_guard = self._guard_pair(item, response)
            if pair_guard is not None:
                return pair_guard

        evaluation = evaluator.evaluate(item, response)
        self._last_evaluation = evaluation
        status = AttemptStatus.CORRECT if evaluation.correct else AttemptStatus.WRONG
        self._record_attempt(item, response.describe(), status, evaluation)

        if evaluation.correct:
            self._raw_score += evaluation.points_awarded
            self._signals.append(Signal(SignalKind.ITEM_CORRECT, item_id=item.id))
            self._notify_item_correct()
            if isinstance(response, PairResponse):
                pairs = self._connections[item.id]
                pairs.append((response.left_id, response.right_id))
                assert isinstance(item.key, ColumnMatchKey)
                if len(pairs) >= item.key.pair_count:
                    self._resolved[item.id] = AttemptStatus.CORRECT
            else:
                self._resolved[item.id] = AttemptStatus.CORRECT
        else:
            self._signals.append(Signal(SignalKind.ITEM_WRONG, item_id=item.id, message=evaluation.detail))
            if evaluator.locks_on_wrong:
                self._resolved[item.id] = AttemptStatus.WRONG
            if self._lives is not None and evaluation.lives_cost > 0:
                self._lives = max(0, self._lives - evaluation.lives_cost)
                self._signals.append(Signal(SignalKind.LIFE_LOST, item_id=item.id))
                if self._lives == 0:
                    self._complete(CompletionReason.LIVES_EXHAUSTED)
                    return Outcome(accepted=True, evaluation=evaluation, completed=True)

        if item.id in self._resolved and evaluator.auto_advance:
            self._advance_index()
        return Outcome(accepted=True, evaluation=evaluation, completed=self._status is SessionStatus.COMPLETED)

    def click_image(self, x_pct: float, y_pct: float) -> Outcome:
        """Hit-test a click (percent of the image) against every configured point and submit it."""

        guard = self._guard_active()
        if guard is not None:
            return guard
        assert self._bundle is not None
        point = hit_test(
            Point(float(x_pct), float(y_pct)),
            self._bundle.hotspot_points(),
            tolerance_pct=self._cfg.hotspot_tolerance_pct,
        )
        return self.submit_answer(HotspotClick(point=point))

    def advance(self) -> Outcome:
        guard = self._guard_active()
        if guard is not None:
            return guard
        if self._items[self._index].id not in self._resolved:
            return _ignored(IgnoreReason.ITEM_PENDING)
        self._advance_index()
        return Outcome(accepted=True, completed=self._status is SessionStatus.COMPLETED)

    def skip(self) -> Outcome:
        guard = self._guard_active()
        if guard is not None:
            return guard
        item = self._items[self._index]
        if not self._evaluators[item.kind].supports_skip:
            return _ignored(IgnoreReason.SKIP_UNSUPPORTED)
        if item.id in self._resolved:
            return _ignored(IgnoreReason.ALREADY_ANSWERED)
        self._resolved[item.id] = AttemptStatus.SKIPPED
        self._record_attempt(item, "", AttemptStatus.SKIPPED, None)
        self._advance_index()
        return Outcome(accepted=True, completed=self._status is SessionStatus.COMPLETED)

    # -- time ----------------------------------------------------------------

    def tick(self) -> Outcome:
        """One wall-clock second. Paused while the learner is away."""

        guard = self._guard_active()
        if guard is not None:
            return guard
        if self._countdown is None:
            return _ignored(IgnoreReason.UNTIMED)

        self._countdown.paused = self._integrity.inattentive
        result = self._countdown.tick()
        if result.paused:
            return _ignored(IgnoreReason.PAUSED)
        if result.warning:
            self._signals.append(Signal(SignalKind.TIME_WARNING, message=f"{result.remaining_s}s left"))
        if result.expired:
            self._signals.append(Signal(SignalKind.TIME_EXPIRED))
            self._complete(CompletionReason.TIME_EXPIRED)
            return Outcome(accepted=True, completed=True)
        return Outcome(accepted=True)

    def extend_time(self, seconds: int) -> Outcome:
        guard = self._guard_active()
        if guard is not None:
            return guard
        if self._countdown is None:
            return _ignored(IgnoreReason.UNTIMED)
        if int(seconds) <= 0:
            return _ignored(IgnoreReason.INVALID_AMOUNT)
        self._countdown.extend(int(seconds))
        return Outcome(accepted=True)

    # -- integrity -----------------------------------------------------------

    def focus_lost(self) -> Outcome:
        guard = self._guard_active()
        if guard is not None:
            return guard
        self._integrity.focus_lost()
        if self._countdown is not None:
            self._countdown.paused = True
        return Outcome(accepted=True)

    def focus_regained(self) -> Outcome:
        guard = self._guard_active()
        if guard is not None:
            return guard
        flagged = self._integrity.focus_regained()
        if self._countdown is not None:
            self._countdown.paused = self._integrity.inattentive
        if flagged:
            logger.info(
                "suspicious_activity: content_id=%s focus_losses=%s",
                self._content_id(),
                self._integrity.focus_losses,
            )
            self._signals.append(Signal(SignalKind.SUSPICIOUS_ACTIVITY, message="Suspicious activity detected"))
        return Outcome(accepted=True)

    def clipboard_attempt(self, action: ClipboardAction) -> Outcome:
        guard = self._guard_active()
        if guard is not None:
            return guard
        notice = self._integrity.clipboard_attempt(action)
        self._signals.append(Signal(SignalKind.CLIPBOARD_ATTEMPT, message=notice.message))
        return Outcome(accepted=True, message=notice.message)

    def integrity_summary(self) -> IntegritySummary:
        return self._integrity.summary()

    # -- results -------------------------------------------------------------

    @property
    def result(self) -> SessionResult | None:
        return self._result

    def finalize(self) -> SessionResult | Outcome:
        """Complete the session (if still active) and return the cached result.

        A session still in ``loading`` has nothing to finalize; the call is
        ignored with ``not_started``.
        """

        if self._status is SessionStatus.LOADING:
            return _ignored(IgnoreReason.NOT_STARTED)
        if self._status is SessionStatus.ACTIVE:
            self._complete(CompletionReason.FINALIZED)
        assert self._result is not None
        return self._result

    def retry_persistence(self) -> bool:
        if self._status is not SessionStatus.COMPLETED or self._record is None:
            return False
        if self._persisted:
            return True
        return self._persist()

    def snapshot(self) -> SessionSnapshot:
        bundle = self._bundle
        item = self.current_item()
        integrity = self._integrity.summary()
        resolved = item is not None and item.id in self._resolved
        return SessionSnapshot(
            title="" if bundle is None else bundle.title,
            experience=None if bundle is None else bundle.experience,
            status=self._status,
            item_index=self._index,
            item_count=len(self._items),
            item=item,
            item_resolved=resolved,
            last_evaluation=self._last_evaluation,
            feedback=item.feedback if (item is not None and resolved) else None,
            raw_score=self._raw_score,
            max_raw_score=0 if bundle is None else bundle.max_score,
            lives=self._lives,
            lives_budget=self._lives_budget,
            time_remaining_s=self.time_remaining_s,
            paused=self._integrity.inattentive,
            word_bank=self._word_banks.get(item.id, ()) if item is not None else (),
            right_column=self._right_columns.get(item.id, ()) if item is not None else (),
            connected_pairs=tuple(self._connections.get(item.id, ())) if item is not None else (),
            letter_states=self._letter_states(),
            suspicious=integrity.suspicious,
            focus_losses=integrity.focus_losses,
            clipboard_attempts=integrity.clipboard_attempts,
            result=self._result,
        )

    # -- internals -----------------------------------------------------------

    def _guard_active(self) -> Outcome | None:
        if self._status is SessionStatus.LOADING:
            return _ignored(IgnoreReason.NOT_STARTED)
        if self._status is SessionStatus.COMPLETED:
            return _ignored(IgnoreReason.SESSION_CLOSED)
        return None

    def _guard_pair(self, item: Item, response: PairResponse) -> Outcome | None:
        assert isinstance(item.key, ColumnMatchKey)
        if item.key.left_entry(response.left_id) is None or item.key.right_entry(response.right_id) is None:
            return _ignored(IgnoreReason.UNKNOWN_ENDPOINT)
        for left_id, right_id in self._connections[item.id]:
            if left_id == response.left_id or right_id == response.right_id:
                return _ignored(IgnoreReason.ENDPOINT_CONNECTED)
        return None

    def _record_attempt(self, item: Item, response: str, status: AttemptStatus, evaluation: Evaluation | None) -> None:
        self._attempts.append(
            AttemptRecord(
                seq=len(self._attempts),
                item_id=item.id,
                response=response,
                status=status,
                points_awarded=0 if evaluation is None else evaluation.points_awarded,
                lives_cost=0 if evaluation is None else evaluation.lives_cost,
                at_s=self._clock.now(),
            )
        )

    def _advance_index(self) -> None:
        self._index += 1
        self._last_evaluation = None
        if self._index >= len(self._items):
            self._index = len(self._items)
            self._complete(CompletionReason.ITEMS_EXHAUSTED)

    def _complete(self, reason: CompletionReason) -> None:
        if self._status is not SessionStatus.ACTIVE:
            return
        assert self._bundle is not None and self._started_at_s is not None
        self._status = SessionStatus.COMPLETED
        if self._countdown is not None:
            self._countdown.paused = True

        max_raw = self._bundle.max_score
        normalized = normalize_score(self._raw_score, max_raw)
        threshold = self._bundle.pass_threshold
        if threshold is None:
            threshold = self._cfg.pass_threshold
        elapsed = round_half_up(max(0.0, self._clock.now() - self._started_at_s))
        self._result = SessionResult(
            normalized_score=normalized,
            passed=normalized >= threshold,
            elapsed_seconds=elapsed,
            raw_score=self._raw_score,
            max_raw_score=max_raw,
            reason=reason,
        )
        self._signals.append(Signal(SignalKind.COMPLETED, message=reason.value))
        logger.info(
            "session_completed: content_id=%s reason=%s raw=%s/%s normalized=%s passed=%s elapsed_s=%s",
            self._bundle.content_id,
            reason.value,
            self._raw_score,
            max_raw,
            normalized,
            self._result.passed,
            elapsed,
        )

        self._record = result_record_from_session(self)
        self._persist()
        if self._reward_notifier is not None:
            try:
                self._reward_notifier.session_completed(self._bundle.content_id, self._result.passed)
            except Exception:
                logger.exception("reward_notifier_failed: event=session_completed content_id=%s", self._content_id())

    def _persist(self) -> bool:
        if self._results_store is None or self._record is None:
            return False
        try:
            self._results_store.save_result(self._record)
        except Exception as exc:
            err = PersistenceFailed(str(exc))
            logger.exception("persistence_failed: content_id=%s error=%s", self._content_id(), err)
            self._signals.append(Signal(SignalKind.PERSISTENCE_FAILED, message=str(err)))
            return False
        self._persisted = True
        return True

    def _notify_item_correct(self) -> None:
        if self._reward_notifier is None:
            return
        try:
            self._reward_notifier.item_correct(self._content_id())
        except Exception:
            logger.exception("reward_notifier_failed: event=item_correct content_id=%s", self._content_id())

    def _content_id(self) -> str:
        return "" if self._bundle is None else self._bundle.content_id

    def _letter_states(self) -> tuple[tuple[str, LetterState], ...]:
        out: dict[str, LetterState] = {}
        for item in self._items:
            if not isinstance(item.key, WordWheelKey):
                continue
            status = self._resolved.get(item.id)
            if status is AttemptStatus.CORRECT:
                state = LetterState.CORRECT
            elif status is AttemptStatus.WRONG:
                state = LetterState.FAILED
            elif status is AttemptStatus.SKIPPED:
                state = LetterState.SKIPPED
            else:
                state = LetterState.PENDING
            out[item.key.initial_letter.upper()] = state
        return tuple(sorted(out.items()))
