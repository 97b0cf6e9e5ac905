"""Catalog payload decoding: API page JSON, JSON arrays and NDJSON files.

Accepted shapes:

* a page object ``{"page": 1, "results": [{...}, ...]}``
* a bare JSON array of movie objects
* newline-delimited JSON, one movie object per line

Genre lists use the ``{"genres": [{"id": 28, "name": "Action"}, ...]}`` shape.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterator

from ..errors import CatalogFormatError
from ..models import DEFAULT_IMAGE_BASE_URL, Genre, Movie


class TmdbParser:
    """Decode catalog payloads into :class:`Movie` values."""

    def __init__(self, image_base_url: str = DEFAULT_IMAGE_BASE_URL) -> None:
        self._image_base_url = image_base_url

    @property
    def name(self) -> str:
        return "tmdb"

    def parse_movie(self, payload: Any) -> Movie:
        if not isinstance(payload, dict) or "id" not in payload:
            raise CatalogFormatError(f"Not a movie object: {payload!r:.80}")
        try:
            return Movie.from_dict(payload, image_base_url=self._image_base_url)
        except (TypeError, ValueError) as exc:
            raise CatalogFormatError(f"Invalid movie object: {exc}") from exc

    def parse_page(self, payload: Any) -> list[Movie]:
        """Decode a page object or a bare array of movie objects."""
        if isinstance(payload, dict):
            results = payload.get("results")
            if not isinstance(results, list):
                raise CatalogFormatError("Page object has no 'results' list")
            return [self.parse_movie(item) for item in results]
        if isinstance(payload, list):
            return [self.parse_movie(item) for item in payload]
        raise CatalogFormatError(f"Unsupported catalog payload: {type(payload).__name__}")

    def parse_text(self, text: str) -> list[Movie]:
        """Decode a whole document: JSON page / array, falling back to NDJSON."""
        stripped = text.strip()
        if not stripped:
            return []
        try:
            payload = json.loads(stripped)
        except json.JSONDecodeError:
            return list(self._parse_lines(stripped.splitlines()))
        # A one-line NDJSON file is a single movie object
        if isinstance(payload, dict) and "results" not in payload and "id" in payload:
            return [self.parse_movie(payload)]
        return self.parse_page(payload)

    def _parse_lines(self, lines: list[str]) -> Iterator[Movie]:
        for lineno, line in enumerate(lines, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError as exc:
                raise CatalogFormatError(f"Line {lineno}: {exc.msg}") from exc
            yield self.parse_movie(payload)

    def parse_file(self, path: str | Path) -> list[Movie]:
        with open(path, encoding="utf-8", errors="replace") as f:
            return self.parse_text(f.read())


def parse_genres(payload: Any) -> list[Genre]:
    """Decode a genre-list payload (object with ``genres`` or a bare array)."""
    items = payload.get("genres") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise CatalogFormatError("Genre payload has no 'genres' list")
    try:
        return [Genre.from_dict(item) for item in items]
    except (KeyError, TypeError, ValueError) as exc:
        raise CatalogFormatError(f"Invalid genre object: {exc}") from exc


def load_genres(path: str | Path) -> dict[int, str]:
    """Read a genre-list file into an ``{id: name}`` lookup."""
    with open(path, encoding="utf-8") as f:
        try:
            payload = json.load(f)
        except json.JSONDecodeError as exc:
            raise CatalogFormatError(f"{path}: {exc.msg}") from exc
    return {g.id: g.name for g in parse_genres(payload)}
