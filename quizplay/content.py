from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .errors import ConfigurationError, ContentNotFound, RepositoryUnavailable
from .items import ContentBundle, Experience, content_bundle_from_dict

logger = logging.getLogger(__name__)


class ContentRepository(Protocol):
    def load_items(self, content_id: str) -> ContentBundle:
        """Resolve a content id.

        Raises ContentNotFound, ContentEmpty (zero items) or RepositoryUnavailable.
        """
        ...


@dataclass(frozen=True, slots=True)
class ContentSummary:
    content_id: str
    title: str
    experience: Experience


class JsonContentRepository:
    """One ``<content_id>.json`` document per piece of content in a directory."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def load_items(self, content_id: str) -> ContentBundle:
        path = self._path_for(content_id)
        if not self._directory.is_dir():
            raise RepositoryUnavailable(f"content directory missing: {self._directory}")
        if not path.is_file():
            raise ContentNotFound(content_id)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise RepositoryUnavailable(f"could not read {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"{content_id}: invalid JSON ({exc})") from exc

        if isinstance(raw, dict):
            raw.setdefault("id", content_id)
        bundle = content_bundle_from_dict(raw)
        if bundle.content_id != content_id:
            raise ConfigurationError(f"{path.name}: id {bundle.content_id!r} does not match file name")
        logger.debug("content_loaded: content_id=%s items=%s", content_id, len(bundle.items))
        return bundle

    def list_contents(self) -> list[ContentSummary]:
        """Every parseable document, sorted by title. Broken files are logged and skipped."""

        if not self._directory.is_dir():
            return []
        out: list[ContentSummary] = []
        for path in sorted(self._directory.glob("*.json")):
            try:
                bundle = self.load_items(path.stem)
            except ConfigurationError as exc:
                logger.warning("content_skipped: file=%s error=%s", path.name, exc)
                continue
            out.append(ContentSummary(bundle.content_id, bundle.title, bundle.experience))
        out.sort(key=lambda s: s.title.lower())
        return out

    def _path_for(self, content_id: str) -> Path:
        safe = content_id.strip()
        if not safe or "/" in safe or "\\" in safe or safe.startswith("."):
            raise ContentNotFound(content_id)
        return self._directory / f"{safe}.json"


class InMemoryContentRepository:
    def __init__(self, bundles: list[ContentBundle] | None = None) -> None:
        self._bundles = {b.content_id: b for b in (bundles or [])}

    def add(self, bundle: ContentBundle) -> None:
        self._bundles[bundle.content_id] = bundle

    def load_items(self, content_id: str) -> ContentBundle:
        try:
            return self._bundles[content_id]
        except KeyError:
            raise ContentNotFound(content_id) from None
