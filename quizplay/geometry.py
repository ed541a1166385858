"""Layout helpers shared by the column-match, word-wheel and hotspot views.

Pure math, no pygame: rectangles are plain tuples-in-dataclasses so the same
functions serve the renderer and the tests. Which pairs are *correct* is the
evaluators' business; these functions only say where things are drawn and
which configured point a click lands on.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum

from .items import HotspotPoint


@dataclass(frozen=True, slots=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class Rect:
    x: float
    y: float
    w: float
    h: float

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    @property
    def center(self) -> Point:
        return Point(self.x + self.w / 2.0, self.y + self.h / 2.0)

    def contains(self, p: Point) -> bool:
        return self.x <= p.x <= self.right and self.y <= p.y <= self.bottom


class ColumnSide(StrEnum):
    LEFT = "left"
    RIGHT = "right"


def connector_anchor(entry: Rect, container: Rect, side: ColumnSide) -> Point:
    """Anchor where a connection line meets an entry, relative to ``container``.

    Vertical midpoint of the entry; horizontally the edge facing the other
    column (right edge for left-column entries, left edge for right-column ones).
    """

    x = entry.right if side is ColumnSide.LEFT else entry.x
    return Point(x - container.x, entry.y + entry.h / 2.0 - container.y)


def connection_curve(start: Point, end: Point, *, segments: int = 24) -> list[Point]:
    """Cubic Bezier from ``start`` to ``end`` with horizontal tangents at both ends."""

    if segments < 1:
        raise ValueError("segments must be >= 1")
    mid_x = (start.x + end.x) / 2.0
    c1 = Point(mid_x, start.y)
    c2 = Point(mid_x, end.y)
    out: list[Point] = []
    for i in range(segments + 1):
        t = i / segments
        u = 1.0 - t
        x = u**3 * start.x + 3 * u * u * t * c1.x + 3 * u * t * t * c2.x + t**3 * end.x
        y = u**3 * start.y + 3 * u * u * t * c1.y + 3 * u * t * t * c2.y + t**3 * end.y
        out.append(Point(x, y))
    return out


def wheel_positions(count: int, *, radius: float, center: Point) -> list[Point]:
    """Index 0 sits at 12 o'clock; indices advance clockwise on screen."""

    if count <= 0:
        return []
    out = []
    for i in range(count):
        angle = (i / count) * 2.0 * math.pi - math.pi / 2.0
        out.append(Point(center.x + math.cos(angle) * radius, center.y + math.sin(angle) * radius))
    return out


def contain_rect(intrinsic_w: float, intrinsic_h: float, box: Rect) -> Rect:
    """Rect the image occupies when scaled to fit ``box`` with its aspect ratio kept."""

    if intrinsic_w <= 0 or intrinsic_h <= 0:
        raise ValueError("intrinsic size must be positive")
    scale = min(box.w / intrinsic_w, box.h / intrinsic_h)
    w = intrinsic_w * scale
    h = intrinsic_h * scale
    return Rect(box.x + (box.w - w) / 2.0, box.y + (box.h - h) / 2.0, w, h)


def click_to_percent(click: Point, box: Rect, *, intrinsic_w: float, intrinsic_h: float) -> Point | None:
    """Map a click inside ``box`` to percent-of-image space; None in the letterbox bars."""

    image = contain_rect(intrinsic_w, intrinsic_h, box)
    if image.w <= 0 or image.h <= 0 or not image.contains(click):
        return None
    return Point((click.x - image.x) / image.w * 100.0, (click.y - image.y) / image.h * 100.0)


def percent_to_screen(point_pct: Point, box: Rect, *, intrinsic_w: float, intrinsic_h: float) -> Point:
    image = contain_rect(intrinsic_w, intrinsic_h, box)
    return Point(image.x + point_pct.x / 100.0 * image.w, image.y + point_pct.y / 100.0 * image.h)


def hit_test(point_pct: Point, points: Iterable[HotspotPoint], *, tolerance_pct: float = 5.0) -> HotspotPoint | None:
    """Nearest configured point within ``tolerance_pct`` on both axes, or None."""

    best: HotspotPoint | None = None
    best_d = math.inf
    for p in points:
        dx = abs(point_pct.x - p.x_pct)
        dy = abs(point_pct.y - p.y_pct)
        if dx >= tolerance_pct or dy >= tolerance_pct:
            continue
        d = math.hypot(dx, dy)
        if d < best_d:
            best, best_d = p, d
    return best


def stack_rects(count: int, column: Rect, *, gap: float, min_h: float = 30.0) -> list[Rect]:
    """Evenly stacked rows inside ``column``; used for both match columns."""

    if count <= 0:
        return []
    row_h = max(min_h, (column.h - gap * (count - 1)) / count)
    return [Rect(column.x, column.y + i * (row_h + gap), column.w, row_h) for i in range(count)]


def index_at(rects: Sequence[Rect], p: Point) -> int | None:
    for i, r in enumerate(rects):
        if r.contains(p):
            return i
    return None
