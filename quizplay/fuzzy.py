"""Short-answer matching.

``exact`` mode compares trimmed, case-folded strings. ``flexible`` mode accepts
a response whose Levenshtein similarity to any reference reaches the threshold
(0.80 by default): one typo on a five letter word still passes, a wrong word
does not.
"""

from __future__ import annotations

from collections.abc import Iterable

from .items import ComparisonMode

DEFAULT_SIMILARITY_THRESHOLD = 0.80


def normalize_answer(text: str) -> str:
    return (text or "").strip().lower()


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance (insert/delete/substitute, unit cost).

    Uses the full (len(b)+1) x (len(a)+1) matrix; answers are short.
    """

    rows = len(b) + 1
    cols = len(a) + 1
    matrix = [[0] * cols for _ in range(rows)]
    for i in range(rows):
        matrix[i][0] = i
    for j in range(cols):
        matrix[0][j] = j

    for i in range(1, rows):
        for j in range(1, cols):
            cost = 0 if b[i - 1] == a[j - 1] else 1
            matrix[i][j] = min(
                matrix[i - 1][j] + 1,
                matrix[i][j - 1] + 1,
                matrix[i - 1][j - 1] + cost,
            )
    return matrix[rows - 1][cols - 1]


def similarity(a: str, b: str) -> float:
    """Return (L - distance) / L with L the longer length; 1.0 for two empty strings."""

    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - levenshtein(a, b)) / longest


def matches_short_answer(
    response: str,
    references: Iterable[str],
    mode: ComparisonMode,
    *,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> bool:
    answer = normalize_answer(response)
    targets = [normalize_answer(r) for r in references]

    if mode is ComparisonMode.EXACT:
        return answer in targets
    return any(similarity(answer, t) >= threshold for t in targets)


def best_similarity(response: str, references: Iterable[str]) -> float:
    answer = normalize_answer(response)
    scores = [similarity(answer, normalize_answer(r)) for r in references]
    return max(scores, default=0.0)
