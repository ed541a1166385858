from __future__ import annotations

import pytest

from quizplay.results import normalize_score


@pytest.mark.parametrize(
    ("raw", "maximum", "expected"),
    [
        (40, 50, 80),
        (1, 3, 33),
        (2, 3, 67),
        (1, 2, 50),
        (1, 8, 13),
        (0, 50, 0),
        (0, 0, 0),
        (60, 50, 100),
        (-5, 50, 0),
    ],
)
def test_normalize_score_rounds_half_up_and_clamps(raw: int, maximum: int, expected: int) -> None:
    assert normalize_score(raw, maximum) == expected
