from __future__ import annotations

import json

import pytest

from quizplay.content import InMemoryContentRepository, JsonContentRepository
from quizplay.errors import ConfigurationError, ContentEmpty, ContentNotFound, RepositoryUnavailable
from quizplay.items import Experience, content_bundle_from_dict

QUIZ = {
    "id": "capitals",
    "title": "Capitals",
    "items": [
        {
            "id": "q1",
            "kind": "multiple_choice",
            "options": [{"id": "a", "text": "Paris", "is_correct": True}, {"id": "b", "text": "Rome"}],
        }
    ],
}


def _write(directory, name: str, payload) -> None:
    text = payload if isinstance(payload, str) else json.dumps(payload)
    (directory / f"{name}.json").write_text(text, encoding="utf-8")


def test_load_items_reads_document(tmp_path) -> None:
    _write(tmp_path, "capitals", QUIZ)
    bundle = JsonContentRepository(tmp_path).load_items("capitals")
    assert bundle.title == "Capitals"
    assert bundle.experience is Experience.QUIZ
    assert len(bundle.items) == 1


def test_missing_directory_is_unavailable(tmp_path) -> None:
    repo = JsonContentRepository(tmp_path / "nope")
    with pytest.raises(RepositoryUnavailable):
        repo.load_items("capitals")
    assert repo.list_contents() == []


def test_unknown_and_unsafe_ids_are_not_found(tmp_path) -> None:
    repo = JsonContentRepository(tmp_path)
    with pytest.raises(ContentNotFound):
        repo.load_items("missing")
    with pytest.raises(ContentNotFound):
        repo.load_items("../etc/passwd")


def test_broken_documents_raise_and_are_skipped_in_listing(tmp_path) -> None:
    _write(tmp_path, "capitals", QUIZ)
    _write(tmp_path, "broken", "{not json")
    _write(tmp_path, "empty", {"id": "empty", "items": []})
    _write(tmp_path, "renamed", dict(QUIZ, id="other"))
    repo = JsonContentRepository(tmp_path)

    with pytest.raises(ConfigurationError):
        repo.load_items("broken")
    with pytest.raises(ContentEmpty):
        repo.load_items("empty")
    with pytest.raises(ConfigurationError):
        repo.load_items("renamed")
    assert [s.content_id for s in repo.list_contents()] == ["capitals"]


def test_in_memory_repository() -> None:
    repo = InMemoryContentRepository([content_bundle_from_dict(QUIZ)])
    assert repo.load_items("capitals").content_id == "capitals"
    with pytest.raises(ContentNotFound):
        repo.load_items("other")
