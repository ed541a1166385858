from __future__ import annotations

import pytest

from quizplay.config import AppSettings, EngineConfig
from quizplay.errors import ConfigurationError, ContentEmpty
from quizplay.items import ColumnMatchKey, Experience, ItemKind, content_bundle_from_dict


def _quiz(**overrides):
    data = {
        "id": "capitals",
        "title": "Capitals",
        "experience": "quiz",
        "items": [
            {
                "id": "q2",
                "kind": "true_false",
                "order_index": 2,
                "options": [{"id": "t", "text": "True", "is_correct": True}, {"id": "f", "text": "False"}],
            },
            {"id": "q1", "kind": "short_answer", "order_index": 1, "accepted": ["Madrid"], "points": 5},
        ],
    }
    data.update(overrides)
    return data


def test_bundle_parses_and_sorts_by_order_index() -> None:
    bundle = content_bundle_from_dict(_quiz(lives=2, time_limit_s=30, pass_threshold=70))
    assert [i.id for i in bundle.items] == ["q1", "q2"]
    assert bundle.experience is Experience.QUIZ
    assert bundle.max_score == 15
    assert (bundle.lives_budget, bundle.time_limit_s, bundle.pass_threshold) == (2, 30, 70)


def test_column_match_max_score_counts_pairs() -> None:
    bundle = content_bundle_from_dict(
        {
            "id": "animals",
            "experience": "column_match",
            "items": [
                {
                    "id": "m1",
                    "kind": "column_match",
                    "points": 4,
                    "left": [{"id": "l1", "text": "dog", "match_id": "a"}, {"id": "l2", "text": "cat", "match_id": "b"}],
                    "right": [{"id": "r1", "text": "perro", "match_id": "a"}, {"id": "r2", "text": "gato", "match_id": "b"}],
                }
            ],
        }
    )
    assert isinstance(bundle.items[0].key, ColumnMatchKey)
    assert bundle.max_score == 8


def test_zero_items_is_content_empty() -> None:
    with pytest.raises(ContentEmpty):
        content_bundle_from_dict(_quiz(items=[]))


@pytest.mark.parametrize(
    "items",
    [
        [{"id": "q", "kind": "multiple_choice", "options": [{"id": "a"}, {"id": "b"}]}],
        [{"id": "q", "kind": "multiple_choice", "options": [{"id": "a", "is_correct": True}]}],
        [{"id": "q", "kind": "short_answer", "accepted": []}],
        [{"id": "q", "kind": "word_wheel", "initial_letter": "AB", "correct_sentence": "x"}],
        [{"id": "q", "kind": "short_answer", "accepted": ["x"], "points": 0}],
        [{"id": "q", "kind": "short_answer", "accepted": ["x"]}, {"id": "q", "kind": "short_answer", "accepted": ["y"]}],
        [{"id": "q", "kind": "word_order", "words": ["a"], "correct_sentence": "a"}],
    ],
)
def test_invalid_items_are_rejected(items) -> None:
    with pytest.raises(ConfigurationError):
        content_bundle_from_dict(_quiz(items=items))


def test_hotspot_content_needs_image_and_percent_coordinates() -> None:
    items = [{"id": "A", "kind": "image_hotspot", "x": 10, "y": 20, "lives_cost": 2}]
    with pytest.raises(ConfigurationError):
        content_bundle_from_dict({"id": "map", "experience": "image_hotspot", "items": items})
    bundle = content_bundle_from_dict(
        {"id": "map", "experience": "image_hotspot", "image": {"url": "map.png", "width": 400, "height": 200}, "items": items}
    )
    (point,) = bundle.hotspot_points()
    assert (point.id, point.x_pct, point.y_pct, point.lives_cost) == ("A", 10.0, 20.0, 2)
    with pytest.raises(ConfigurationError):
        content_bundle_from_dict(
            {
                "id": "map",
                "experience": "image_hotspot",
                "image": {"url": "map.png", "width": 400, "height": 200},
                "items": [{"id": "A", "kind": "image_hotspot", "x": 120, "y": 20}],
            }
        )


def test_word_order_accepts_space_separated_bank() -> None:
    bundle = content_bundle_from_dict(
        {
            "id": "wo",
            "experience": "word_order",
            "items": [{"id": "w", "kind": "word_order", "words": "sleeps The cat", "correct_sentence": "The cat sleeps"}],
        }
    )
    assert bundle.items[0].key.words == ("sleeps", "The", "cat")
    assert bundle.items[0].kind is ItemKind.WORD_ORDER


def test_engine_config_validation() -> None:
    assert EngineConfig().pass_threshold == 60
    with pytest.raises(ValueError):
        EngineConfig(pass_threshold=101)
    with pytest.raises(ValueError):
        EngineConfig(similarity_threshold=0.0)
    with pytest.raises(ValueError):
        EngineConfig(default_lives=0)


def test_app_settings_from_env(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("QUIZPLAY_CONTENT_DIR", str(tmp_path / "content"))
    monkeypatch.setenv("QUIZPLAY_DB_PATH", str(tmp_path / "r.sqlite3"))
    monkeypatch.setenv("QUIZPLAY_USER_ID", "learner-7")
    monkeypatch.setenv("QUIZPLAY_LOG_LEVEL", "debug")
    monkeypatch.setenv("QUIZPLAY_EVENTS_PATH", str(tmp_path / "ev.json"))
    settings = AppSettings.from_env()
    assert settings.content_dir == tmp_path / "content"
    assert settings.db_path == tmp_path / "r.sqlite3"
    assert settings.user_id == "learner-7"
    assert settings.log_level == "DEBUG"
    assert settings.events_path == tmp_path / "ev.json"


def test_app_settings_defaults(monkeypatch) -> None:
    for name in ("QUIZPLAY_CONTENT_DIR", "QUIZPLAY_DB_PATH", "QUIZPLAY_USER_ID", "QUIZPLAY_LOG_LEVEL", "QUIZPLAY_EVENTS_PATH"):
        monkeypatch.delenv(name, raising=False)
    settings = AppSettings.from_env()
    assert settings.content_dir == AppSettings.default_data_dir() / "content"
    assert settings.events_path == AppSettings.default_data_dir() / "events.json"
    assert settings.user_id is None
    assert settings.log_level == "INFO"
