"""Pygame host for quizplay content.

The menu lists every content document in the configured directory; picking
one opens a SessionScreen that renders whichever experience the content
declares (quiz, word order, column match, word wheel, image hotspot). When an
events file is configured the menu also offers access-code entry for timed
evaluation events.

All scoring, lives, timing and integrity rules live in quizplay.session; the
screens only translate pygame input into Session operations and draw
``Session.snapshot()``.
"""

from __future__ import annotations

import datetime as dt
import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import pygame

from .clock import Clock, RealClock, SecondTicker
from .config import AppSettings, EngineConfig
from .content import JsonContentRepository
from .errors import ConfigurationError, EngineError, EventNotFound, EventNotOpen, RepositoryUnavailable
from .evaluators import ChoiceResponse, PairResponse, TextResponse, WordOrderResponse
from .events import EvaluationEventBook, normalize_access_code, start_event_session
from .fuzzy import best_similarity
from .geometry import (
    ColumnSide,
    Point,
    Rect,
    click_to_percent,
    connection_curve,
    connector_anchor,
    contain_rect,
    index_at,
    percent_to_screen,
    stack_rects,
    wheel_positions,
)
from .integrity import ClipboardAction
from .items import (
    ChoiceKey,
    ColumnMatchKey,
    ComparisonMode,
    ContentBundle,
    Experience,
    Item,
    ItemKind,
    MatchEntry,
    ShortAnswerKey,
)
from .persistence import SqliteResultsStore
from .results import AttemptStatus, SessionResult
from .rewards import LoggingRewardNotifier
from .session import LetterState, Session, SessionSnapshot, SessionStatus, SignalKind

logger = logging.getLogger(__name__)

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

BG = (3, 9, 78)
PANEL_BG = (8, 18, 104)
HEADER_BG = (18, 30, 118)
BORDER = (226, 236, 255)
TEXT_MAIN = (238, 245, 255)
TEXT_MUTED = (186, 200, 224)
GOOD = (88, 200, 120)
BAD = (226, 92, 92)
WARN = (240, 196, 80)

_LETTER_COLORS = {
    LetterState.PENDING: (62, 84, 152),
    LetterState.CORRECT: GOOD,
    LetterState.FAILED: BAD,
    LetterState.SKIPPED: (120, 120, 140),
}

_CLIPBOARD_KEYS = {
    pygame.K_c: ClipboardAction.COPY,
    pygame.K_x: ClipboardAction.CUT,
    pygame.K_v: ClipboardAction.PASTE,
}


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the root screen; it handles its own quit.
        if len(self._screens) > 1:
            self._screens.pop()

    def replace(self, screen: Screen) -> None:
        if len(self._screens) > 1:
            self._screens.pop()
        self._screens.append(screen)

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


def _fit_label(font: pygame.font.Font, label: str, max_width: int) -> str:
    if max_width <= 0:
        return ""
    if font.size(label)[0] <= max_width:
        return label
    clipped = label
    while clipped and font.size(f"{clipped}...")[0] > max_width:
        clipped = clipped[:-1]
    return f"{clipped}..." if clipped else "..."


def _wrap(font: pygame.font.Font, text: str, max_width: int) -> list[str]:
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}".strip()
        if current and font.size(candidate)[0] > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def _draw_frame(surface: pygame.Surface, title: str, tag: str, font: pygame.font.Font) -> pygame.Rect:
    """Panel with a header bar; returns the content area below the header."""

    w, h = surface.get_size()
    surface.fill(BG)
    margin = max(10, min(26, w // 34))
    frame = pygame.Rect(margin, margin, max(260, w - margin * 2), max(220, h - margin * 2))
    pygame.draw.rect(surface, PANEL_BG, frame)
    pygame.draw.rect(surface, BORDER, frame, 2)

    header_h = max(34, min(52, h // 8))
    header = pygame.Rect(frame.x + 2, frame.y + 2, frame.w - 4, header_h)
    pygame.draw.rect(surface, HEADER_BG, header)
    pygame.draw.line(surface, BORDER, (header.x, header.bottom), (header.right, header.bottom), 1)

    small = pygame.font.Font(None, 22)
    tag_surf = small.render(tag, True, TEXT_MUTED)
    surface.blit(tag_surf, (header.x + 12, header.y + (header.h - tag_surf.get_height()) // 2))
    title_surf = font.render(_fit_label(font, title, header.w - 220), True, TEXT_MAIN)
    surface.blit(title_surf, title_surf.get_rect(center=(frame.centerx, header.centery)))
    return pygame.Rect(frame.x + 16, header.bottom + 12, frame.w - 32, frame.bottom - header.bottom - 24)


class MessageScreen:
    def __init__(self, app: App, title: str, message: str) -> None:
        self._app = app
        self._title = title
        self._message = message
        self._font = pygame.font.Font(None, 30)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE, pygame.K_RETURN):
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        area = _draw_frame(surface, self._title, "NOTICE", pygame.font.Font(None, 42))
        y = area.y + 10
        for line in _wrap(self._font, self._message, area.w - 20):
            surface.blit(self._font.render(line, True, TEXT_MAIN), (area.x + 10, y))
            y += self._font.get_linesize()
        hint = self._font.render("Esc/Enter: Back", True, TEXT_MUTED)
        surface.blit(hint, (area.x + 10, area.bottom - hint.get_height()))


class AccessCodeScreen:
    """Text entry for an evaluation event's access code."""

    def __init__(self, app: App, *, on_submit: Callable[[str], None]) -> None:
        self._app = app
        self._on_submit = on_submit
        self._code = ""
        self._title_font = pygame.font.Font(None, 42)
        self._font = pygame.font.Font(None, 36)
        self._small = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key == pygame.K_ESCAPE:
            self._app.pop()
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if self._code.strip():
                self._on_submit(self._code)
        elif event.key == pygame.K_BACKSPACE:
            self._code = self._code[:-1]
        elif event.unicode and event.unicode.isprintable() and len(self._code) < 32:
            self._code += event.unicode

    def render(self, surface: pygame.Surface) -> None:
        area = _draw_frame(surface, "Evaluation", "ACCESS CODE", self._title_font)
        label = self._small.render("Type the code your instructor gave you", True, TEXT_MUTED)
        surface.blit(label, (area.x + 12, area.y + 16))
        box = pygame.Rect(area.x + 12, area.y + 48, min(420, area.w - 24), 48)
        pygame.draw.rect(surface, (6, 13, 92), box)
        pygame.draw.rect(surface, BORDER, box, 1)
        text = self._font.render(f"{normalize_access_code(self._code)}_", True, TEXT_MAIN)
        surface.blit(text, (box.x + 10, box.y + (box.h - text.get_height()) // 2))
        hint = self._small.render("Enter: Start  |  Esc: Back", True, TEXT_MUTED)
        surface.blit(hint, (area.x + 12, area.bottom - hint.get_height()))


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        key = event.key
        if key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._activate()
        elif key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._back()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def _activate(self) -> None:
        if not self._items:
            return
        self._items[self._selected].action()

    def _back(self) -> None:
        if self._is_root:
            self._app.quit()
        else:
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        area = _draw_frame(surface, self._title, "MENU", self._title_font)
        pygame.draw.rect(surface, (6, 13, 92), area)
        pygame.draw.rect(surface, (78, 102, 170), area, 1)

        count = max(1, len(self._items))
        gap = max(4, min(10, area.h // max(10, count * 3)))
        row_h = max(30, min(44, (area.h - gap * (count + 1)) // count))
        y = area.y + gap
        for idx, item in enumerate(self._items):
            row = pygame.Rect(area.x + 12, y, area.w - 24, row_h)
            selected = idx == self._selected
            if selected:
                pygame.draw.rect(surface, (244, 248, 255), row)
                pygame.draw.rect(surface, (120, 142, 196), row, 2)
            else:
                pygame.draw.rect(surface, (9, 20, 106), row)
                pygame.draw.rect(surface, (62, 84, 152), row, 1)
            color = (14, 26, 74) if selected else TEXT_MAIN
            label = _fit_label(self._item_font, item.label, row.w - 20)
            text = self._item_font.render(label, True, color)
            surface.blit(text, (row.x + 10, row.y + (row.h - text.get_height()) // 2))
            y += row_h + gap

        foot = self._hint_font.render("Enter/Space: Select  |  Esc/Backspace: Back", True, TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(area.centerx, area.bottom + 8)))


class ResultsScreen:
    def __init__(self, app: App, *, title: str, result: SessionResult, persisted: bool, suspicious: bool) -> None:
        self._app = app
        self._title = title
        self._result = result
        self._persisted = persisted
        self._suspicious = suspicious
        self._big = pygame.font.Font(None, 72)
        self._font = pygame.font.Font(None, 30)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN and event.key in (pygame.K_ESCAPE, pygame.K_RETURN, pygame.K_SPACE):
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        area = _draw_frame(surface, self._title, "RESULTS", pygame.font.Font(None, 42))
        r = self._result
        score = self._big.render(f"{r.normalized_score}/100", True, GOOD if r.passed else BAD)
        surface.blit(score, score.get_rect(midtop=(area.centerx, area.y + 20)))
        lines = [
            "Passed" if r.passed else "Not passed",
            f"Points: {r.raw_score} of {r.max_raw_score}",
            f"Time: {r.elapsed_seconds}s",
            f"Ended: {r.reason.value.replace('_', ' ')}",
        ]
        if self._suspicious:
            lines.append("Suspicious activity was recorded")
        if not self._persisted:
            lines.append("Result was not saved")
        y = area.y + 110
        for line in lines:
            text = self._font.render(line, True, TEXT_MAIN)
            surface.blit(text, text.get_rect(midtop=(area.centerx, y)))
            y += self._font.get_linesize() + 4
        hint = self._font.render("Enter: Back to menu", True, TEXT_MUTED)
        surface.blit(hint, hint.get_rect(midbottom=(area.centerx, area.bottom)))


class SessionScreen:
    def __init__(
        self,
        app: App,
        *,
        session: Session,
        clock: Clock,
        content_dir: Path | None = None,
    ) -> None:
        self._app = app
        self._session = session
        self._ticker = SecondTicker(clock)
        self._content_dir = content_dir
        self._font = pygame.font.Font(None, 30)
        self._small = pygame.font.Font(None, 22)
        self._title_font = pygame.font.Font(None, 38)
        self._size = WINDOW_SIZE

        self._input = ""
        self._item_id: str | None = None
        self._picked: list[int] = []
        self._left_selected: str | None = None
        self._toast = ""
        self._toast_color = TEXT_MUTED
        self._hint: str | None = None
        self._image: pygame.Surface | None = None
        self._image_loaded = False

    @property
    def session(self) -> Session:
        return self._session

    # -- input ---------------------------------------------------------------

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.WINDOWFOCUSLOST:
            self._session.focus_lost()
            return
        if event.type == pygame.WINDOWFOCUSGAINED:
            self._session.focus_regained()
            return
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            self._handle_click(Point(float(event.pos[0]), float(event.pos[1])))
        elif event.type == pygame.KEYDOWN:
            self._handle_key(event)
        self._after_input()

    def _handle_key(self, event: pygame.event.Event) -> None:
        if event.mod & pygame.KMOD_CTRL and event.key in _CLIPBOARD_KEYS:
            self._session.clipboard_attempt(_CLIPBOARD_KEYS[event.key])
            return
        if event.key == pygame.K_ESCAPE:
            self._session.finalize()
            return

        snap = self._session.snapshot()
        item = snap.item
        if item is None:
            return
        if snap.item_resolved:
            if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
                self._session.advance()
            return

        if item.kind in (ItemKind.MULTIPLE_CHOICE, ItemKind.TRUE_FALSE):
            idx = _digit_from_key(event.key)
            if idx is not None and isinstance(item.key, ChoiceKey) and idx < len(item.key.options):
                self._session.submit_answer(ChoiceResponse(item.key.options[idx].id))
        elif item.kind in (ItemKind.SHORT_ANSWER, ItemKind.WORD_WHEEL):
            if event.key == pygame.K_TAB and item.kind is ItemKind.WORD_WHEEL:
                self._session.skip()
            else:
                self._edit_text(event, submit=lambda text: self._submit_text(item, text))
        elif item.kind is ItemKind.WORD_ORDER:
            self._word_order_key(event, snap)

    def _edit_text(self, event: pygame.event.Event, *, submit: Callable[[str], object]) -> None:
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            submit(self._input)
            self._input = ""
        elif event.key == pygame.K_BACKSPACE:
            self._input = self._input[:-1]
        elif event.unicode and event.unicode.isprintable() and len(self._input) < 200:
            self._input += event.unicode

    def _submit_text(self, item: Item, text: str) -> None:
        outcome = self._session.submit_answer(TextResponse(text))
        if outcome.evaluation is not None and not outcome.correct:
            self._hint = _short_answer_hint(item, text)

    def _word_order_key(self, event: pygame.event.Event, snap: SessionSnapshot) -> None:
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            words = tuple(snap.word_bank[i] for i in self._picked)
            self._session.submit_answer(WordOrderResponse(words))
            return
        if event.key == pygame.K_BACKSPACE:
            if self._picked:
                self._picked.pop()
            return
        idx = _digit_from_key(event.key)
        if idx is not None and idx < len(snap.word_bank) and idx not in self._picked:
            self._picked.append(idx)

    def _handle_click(self, p: Point) -> None:
        snap = self._session.snapshot()
        if snap.item is None or snap.status is not SessionStatus.ACTIVE:
            return
        if snap.experience is Experience.COLUMN_MATCH:
            self._column_click(p, snap)
        elif snap.experience is Experience.IMAGE_HOTSPOT:
            bundle = self._session.bundle
            if bundle is None or bundle.image is None:
                return
            pct = click_to_percent(
                p,
                self._image_box(),
                intrinsic_w=bundle.image.width,
                intrinsic_h=bundle.image.height,
            )
            if pct is not None:
                self._session.click_image(pct.x, pct.y)

    def _column_click(self, p: Point, snap: SessionSnapshot) -> None:
        item = snap.item
        assert item is not None
        _, left_rects, right_rects = self._match_layout(snap)
        left_ids = [e.id for e in _left_entries(self._session.bundle, item.id)]
        left_idx = index_at(left_rects, p)
        if left_idx is not None:
            self._left_selected = left_ids[left_idx]
            return
        right_idx = index_at(right_rects, p)
        if right_idx is not None and self._left_selected is not None:
            self._session.submit_answer(PairResponse(self._left_selected, snap.right_column[right_idx].id))
            self._left_selected = None

    def _after_input(self) -> None:
        self._drain()
        if self._session.status is SessionStatus.COMPLETED:
            self._show_results()

    def _drain(self) -> None:
        for signal in self._session.drain_signals():
            if signal.kind is SignalKind.ITEM_CORRECT:
                self._toast, self._toast_color = "Correct!", GOOD
            elif signal.kind is SignalKind.ITEM_WRONG:
                self._toast, self._toast_color = "Incorrect", BAD
            elif signal.kind is SignalKind.LIFE_LOST:
                self._toast, self._toast_color = "Life lost", BAD
            elif signal.kind is SignalKind.TIME_WARNING:
                self._toast, self._toast_color = f"Hurry up: {signal.message}", WARN
            elif signal.kind in (SignalKind.SUSPICIOUS_ACTIVITY, SignalKind.CLIPBOARD_ATTEMPT):
                self._toast, self._toast_color = signal.message, WARN
            elif signal.kind is SignalKind.PERSISTENCE_FAILED:
                self._toast, self._toast_color = "Could not save result", BAD
        if self._hint:
            self._toast, self._toast_color = self._hint, BAD
            self._hint = None

    def _show_results(self) -> None:
        self._session.finalize()
        result = self._session.result
        assert result is not None
        bundle = self._session.bundle
        self._app.replace(
            ResultsScreen(
                self._app,
                title="" if bundle is None else bundle.title,
                result=result,
                persisted=self._session.persisted,
                suspicious=self._session.integrity_summary().suspicious,
            )
        )

    # -- drawing -------------------------------------------------------------

    def render(self, surface: pygame.Surface) -> None:
        for _ in range(self._ticker.poll()):
            self._session.tick()
        self._drain()
        if self._session.status is SessionStatus.COMPLETED:
            self._show_results()
            return

        self._size = surface.get_size()
        snap = self._session.snapshot()
        if snap.item is not None and snap.item.id != self._item_id:
            self._item_id = snap.item.id
            self._input = ""
            self._picked = []
            self._left_selected = None

        area = _draw_frame(surface, snap.title, snap.experience.value.upper() if snap.experience else "", self._title_font)
        self._draw_status(surface, area, snap)

        body = pygame.Rect(area.x, area.y + 40, area.w, area.h - 80)
        if snap.experience is Experience.COLUMN_MATCH:
            self._draw_column_match(surface, snap)
        elif snap.experience is Experience.IMAGE_HOTSPOT:
            self._draw_hotspot(surface, snap)
        elif snap.experience is Experience.WORD_WHEEL:
            self._draw_word_wheel(surface, body, snap)
        elif snap.experience is Experience.WORD_ORDER:
            self._draw_word_order(surface, body, snap)
        else:
            self._draw_quiz(surface, body, snap)

        if snap.feedback:
            fb = self._small.render(_fit_label(self._small, snap.feedback, area.w), True, TEXT_MUTED)
            surface.blit(fb, (area.x, area.bottom - 44))
        if self._toast:
            toast = self._font.render(self._toast, True, self._toast_color)
            surface.blit(toast, toast.get_rect(bottomright=(area.right, area.bottom)))
        hint = "Enter: Next" if snap.item_resolved else "Esc: Finish"
        surface.blit(self._small.render(hint, True, TEXT_MUTED), (area.x, area.bottom - 18))

    def _draw_status(self, surface: pygame.Surface, area: pygame.Rect, snap: SessionSnapshot) -> None:
        parts = [f"Item {min(snap.item_index + 1, snap.item_count)}/{snap.item_count}", f"Score {snap.raw_score}"]
        if snap.lives is not None:
            parts.append(f"Lives {snap.lives}/{snap.lives_budget}")
        if snap.time_remaining_s is not None:
            parts.append(f"Time {snap.time_remaining_s}s")
        if snap.paused:
            parts.append("PAUSED")
        text = self._font.render("   ".join(parts), True, TEXT_MAIN)
        surface.blit(text, (area.x, area.y))
        if snap.suspicious:
            flag = self._small.render("Suspicious activity", True, WARN)
            surface.blit(flag, flag.get_rect(topright=(area.right, area.y)))

    def _draw_prompt(self, surface: pygame.Surface, body: pygame.Rect, prompt: str) -> int:
        y = body.y
        for line in _wrap(self._font, prompt, body.w):
            surface.blit(self._font.render(line, True, TEXT_MAIN), (body.x, y))
            y += self._font.get_linesize()
        return y + 12

    def _draw_quiz(self, surface: pygame.Surface, body: pygame.Rect, snap: SessionSnapshot) -> None:
        item = snap.item
        if item is None:
            return
        y = self._draw_prompt(surface, body, item.prompt)
        if isinstance(item.key, ChoiceKey):
            for i, opt in enumerate(item.key.options):
                color = TEXT_MAIN
                if snap.item_resolved and opt.is_correct:
                    color = GOOD
                text = self._font.render(f"{i + 1}. {opt.text}", True, color)
                surface.blit(text, (body.x + 20, y))
                y += self._font.get_linesize() + 6
        else:
            self._draw_input(surface, pygame.Rect(body.x, y, body.w, 40))

    def _draw_input(self, surface: pygame.Surface, box: pygame.Rect) -> None:
        pygame.draw.rect(surface, (6, 13, 92), box)
        pygame.draw.rect(surface, BORDER, box, 1)
        text = self._font.render(f"{self._input}_", True, TEXT_MAIN)
        surface.blit(text, (box.x + 8, box.y + (box.h - text.get_height()) // 2))

    def _draw_word_order(self, surface: pygame.Surface, body: pygame.Rect, snap: SessionSnapshot) -> None:
        item = snap.item
        if item is None:
            return
        y = self._draw_prompt(surface, body, item.prompt)
        x = body.x
        for i, word in enumerate(snap.word_bank):
            color = TEXT_MUTED if i in self._picked else TEXT_MAIN
            chip = self._font.render(f"{i + 1}:{word}", True, color)
            if x + chip.get_width() > body.right:
                x = body.x
                y += self._font.get_linesize() + 6
            surface.blit(chip, (x, y))
            x += chip.get_width() + 16
        built = " ".join(snap.word_bank[i] for i in self._picked)
        y += self._font.get_linesize() + 20
        surface.blit(self._font.render(f"> {built}", True, GOOD if snap.item_resolved else TEXT_MAIN), (body.x, y))

    def _draw_word_wheel(self, surface: pygame.Surface, body: pygame.Rect, snap: SessionSnapshot) -> None:
        item = snap.item
        if item is None:
            return
        radius = max(40.0, min(body.w, body.h) / 2.0 - 40.0)
        center = Point(body.x + radius + 30, body.centery)
        positions = wheel_positions(len(snap.letter_states), radius=radius, center=center)
        for (letter, state), pos in zip(snap.letter_states, positions):
            pygame.draw.circle(surface, _LETTER_COLORS[state], (int(pos.x), int(pos.y)), 16)
            glyph = self._small.render(letter, True, TEXT_MAIN)
            surface.blit(glyph, glyph.get_rect(center=(int(pos.x), int(pos.y))))
        right = pygame.Rect(int(center.x + radius + 60), body.y, body.right - int(center.x + radius + 60), body.h)
        y = self._draw_prompt(surface, right, item.prompt)
        self._draw_input(surface, pygame.Rect(right.x, y, right.w, 40))
        surface.blit(self._small.render("Tab: Skip", True, TEXT_MUTED), (right.x, y + 48))

    def _match_layout(self, snap: SessionSnapshot) -> tuple[Rect, list[Rect], list[Rect]]:
        w, h = self._size
        container = Rect(60.0, 150.0, float(w - 120), float(h - 230))
        col_w = container.w * 0.35
        left = Rect(container.x, container.y, col_w, container.h)
        right = Rect(container.right - col_w, container.y, col_w, container.h)
        count = len(snap.right_column)
        return container, stack_rects(count, left, gap=8.0), stack_rects(count, right, gap=8.0)

    def _draw_column_match(self, surface: pygame.Surface, snap: SessionSnapshot) -> None:
        item = snap.item
        if item is None:
            return
        container, left_rects, right_rects = self._match_layout(snap)
        self._draw_prompt(surface, pygame.Rect(int(container.x), 110, int(container.w), 30), item.prompt)
        left_entries = _left_entries(self._session.bundle, item.id)
        connected_left = {a for a, _ in snap.connected_pairs}
        connected_right = {b for _, b in snap.connected_pairs}

        for entry, rect in zip(left_entries, left_rects):
            selected = entry.id == self._left_selected
            self._draw_entry(surface, rect, entry, done=entry.id in connected_left, selected=selected)
        for entry, rect in zip(snap.right_column, right_rects):
            self._draw_entry(surface, rect, entry, done=entry.id in connected_right, selected=False)

        left_index = {e.id: i for i, e in enumerate(left_entries)}
        right_index = {e.id: i for i, e in enumerate(snap.right_column)}
        for left_id, right_id in snap.connected_pairs:
            a = connector_anchor(left_rects[left_index[left_id]], container, ColumnSide.LEFT)
            b = connector_anchor(right_rects[right_index[right_id]], container, ColumnSide.RIGHT)
            curve = connection_curve(a, b)
            pts = [(p.x + container.x, p.y + container.y) for p in curve]
            pygame.draw.lines(surface, GOOD, False, pts, 3)

    def _draw_entry(self, surface: pygame.Surface, rect: Rect, entry: MatchEntry, *, done: bool, selected: bool) -> None:
        r = pygame.Rect(int(rect.x), int(rect.y), int(rect.w), int(rect.h))
        fill = (244, 248, 255) if selected else (9, 20, 106)
        pygame.draw.rect(surface, fill, r)
        pygame.draw.rect(surface, GOOD if done else (62, 84, 152), r, 2)
        color = (14, 26, 74) if selected else TEXT_MAIN
        text = self._small.render(_fit_label(self._small, entry.text, r.w - 12), True, color)
        surface.blit(text, (r.x + 6, r.y + (r.h - text.get_height()) // 2))

    def _image_box(self) -> Rect:
        w, h = self._size
        return Rect(40.0, 150.0, float(w - 80), float(h - 230))

    def _draw_hotspot(self, surface: pygame.Surface, snap: SessionSnapshot) -> None:
        item = snap.item
        bundle = self._session.bundle
        if item is None or bundle is None or bundle.image is None:
            return
        w, _ = self._size
        self._draw_prompt(surface, pygame.Rect(40, 110, w - 80, 30), f"Find: {item.prompt}")
        box = self._image_box()
        shown = contain_rect(bundle.image.width, bundle.image.height, box)
        target = pygame.Rect(int(shown.x), int(shown.y), int(shown.w), int(shown.h))
        image = self._load_image(bundle)
        if image is not None:
            surface.blit(pygame.transform.smoothscale(image, target.size), target.topleft)
        else:
            pygame.draw.rect(surface, (30, 44, 120), target)
        pygame.draw.rect(surface, BORDER, target, 1)

        found = {a.item_id for a in self._session.attempts() if a.status is AttemptStatus.CORRECT}
        for point in bundle.hotspot_points():
            if point.id not in found:
                continue
            pos = percent_to_screen(
                Point(point.x_pct, point.y_pct),
                box,
                intrinsic_w=bundle.image.width,
                intrinsic_h=bundle.image.height,
            )
            pygame.draw.circle(surface, GOOD, (int(pos.x), int(pos.y)), 10, 3)

    def _load_image(self, bundle: ContentBundle) -> pygame.Surface | None:
        if self._image_loaded or bundle.image is None:
            return self._image
        self._image_loaded = True
        path = Path(bundle.image.url)
        if not path.is_absolute() and self._content_dir is not None:
            path = self._content_dir / path
        if not path.is_file():
            logger.info("hotspot_image_missing: content_id=%s url=%s", bundle.content_id, bundle.image.url)
            return None
        try:
            self._image = pygame.image.load(str(path))
        except pygame.error as exc:
            logger.warning("hotspot_image_unreadable: path=%s error=%s", path, exc)
        return self._image


def _left_entries(bundle: ContentBundle | None, item_id: str) -> tuple[MatchEntry, ...]:
    if bundle is None:
        return ()
    for item in bundle.items:
        if item.id == item_id and isinstance(item.key, ColumnMatchKey):
            return item.key.left
    return ()


def _digit_from_key(key: int) -> int | None:
    if pygame.K_1 <= key <= pygame.K_9:
        return key - pygame.K_1
    if pygame.K_KP1 <= key <= pygame.K_KP9:
        return key - pygame.K_KP1
    return None


def _short_answer_hint(item: Item, text: str) -> str | None:
    """Feedback for a wrong flexible short answer: how close the best reference was."""

    if item.kind is not ItemKind.SHORT_ANSWER or not isinstance(item.key, ShortAnswerKey):
        return None
    if item.key.comparison_mode is not ComparisonMode.FLEXIBLE or not text.strip():
        return None
    pct = int(best_similarity(text, item.key.accepted) * 100 + 0.5)
    return f"Incorrect ({pct}% match)"


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    settings: AppSettings | None = None,
    config: EngineConfig | None = None,
) -> int:
    settings = settings or AppSettings.from_env()
    pygame.init()

    pygame.display.set_caption("Quizplay")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)
    repository = JsonContentRepository(settings.content_dir)
    store = SqliteResultsStore(settings.db_path)
    notifier = LoggingRewardNotifier()
    real_clock = RealClock()

    def open_content(content_id: str) -> None:
        session = Session(
            clock=real_clock,
            seed=_new_seed(),
            config=config,
            results_store=store,
            reward_notifier=notifier,
            user_id=settings.user_id,
        )
        try:
            session.load(repository, content_id)
        except EngineError as exc:
            report_open_failure(content_id, exc)
            return
        app.push(SessionScreen(app, session=session, clock=real_clock, content_dir=settings.content_dir))

    def report_open_failure(content_id: str, exc: EngineError) -> None:
        if isinstance(exc, RepositoryUnavailable):
            app.push(MessageScreen(app, "Content unavailable", f"{exc}. Try again later."))
            return
        logger.warning("content_open_failed: content_id=%s error=%s", content_id, exc)
        app.push(MessageScreen(app, "Cannot open content", str(exc)))

    def open_action(content_id: str) -> Callable[[], None]:
        return lambda: open_content(content_id)

    events_book: EvaluationEventBook | None = None
    if settings.events_path is not None and settings.events_path.is_file():
        try:
            events_book = EvaluationEventBook.from_json(settings.events_path)
        except ConfigurationError as exc:
            logger.warning("evaluation_events_skipped: file=%s error=%s", settings.events_path, exc)

    def open_event(code: str) -> None:
        assert events_book is not None
        try:
            session = start_event_session(
                events_book,
                code,
                now=dt.datetime.now(dt.timezone.utc),
                repository=repository,
                clock=real_clock,
                seed=_new_seed(),
                config=config,
                results_store=store,
                reward_notifier=notifier,
                user_id=settings.user_id,
            )
        except EventNotFound:
            app.push(MessageScreen(app, "Unknown code", f"No evaluation uses the code {normalize_access_code(code)}."))
            return
        except EventNotOpen as exc:
            message = "This evaluation has not started yet." if exc.reason == "not_started" else "This evaluation has ended."
            app.push(MessageScreen(app, "Evaluation closed", message))
            return
        except EngineError as exc:
            report_open_failure(normalize_access_code(code), exc)
            return
        # The session replaces the code entry screen.
        app.replace(SessionScreen(app, session=session, clock=real_clock, content_dir=settings.content_dir))

    summaries = repository.list_contents()
    logger.info("content_listed: dir=%s count=%s", settings.content_dir, len(summaries))
    items = [MenuItem(f"{s.title} ({s.experience.value.replace('_', ' ')})", open_action(s.content_id)) for s in summaries]
    if not items:
        items.append(
            MenuItem(
                "No content found",
                lambda: app.push(MessageScreen(app, "No content", f"Add content JSON files to {settings.content_dir}")),
            )
        )
    if events_book is not None:
        items.append(MenuItem("Enter access code", lambda: app.push(AccessCodeScreen(app, on_submit=open_event))))
    items.append(MenuItem("Quit", app.quit))
    app.push(MenuScreen(app, "Main Menu", items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0
