"""Movie and genre value types shared by every moviedb module."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"


@dataclass(frozen=True)
class Genre:
    id: int
    name: str

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Genre":
        return cls(id=int(payload["id"]), name=str(payload.get("name") or ""))


@dataclass(frozen=True)
class Movie:
    """A single catalog movie.

    Instances are read-only once decoded.  ``id`` is the identity key:
    two movies with the same id compare (and hash) equal regardless of the
    other fields, so a refreshed copy replaces a stale one in sets.

    Attributes:
        id:         Stable catalog identifier.
        title:      Display title.
        year:       Release year as text; empty when the release date is unknown.
        overview:   Plot summary.
        poster_url: Absolute poster URI, or None when the catalog has no image.
        genre_ids:  Identifiers of the movie's genres (see :class:`Genre`).
    """

    id: int
    title: str = field(compare=False)
    year: str = field(default="", compare=False)
    overview: str = field(default="", compare=False)
    poster_url: str | None = field(default=None, compare=False)
    genre_ids: frozenset[int] = field(default_factory=frozenset, compare=False)

    @classmethod
    def from_dict(
        cls,
        payload: dict[str, Any],
        image_base_url: str = DEFAULT_IMAGE_BASE_URL,
    ) -> "Movie":
        """Build a Movie from a catalog API object or from :meth:`to_dict` output.

        API objects carry ``release_date`` (``YYYY-MM-DD``) and a relative
        ``poster_path``; the pre-decoded form carries ``year`` and
        ``poster_url`` directly.
        """
        if "year" in payload:
            year = str(payload.get("year") or "")
        else:
            year = str(payload.get("release_date") or "")[:4]

        poster_url = payload.get("poster_url")
        poster_path = payload.get("poster_path")
        if poster_url is None and poster_path:
            poster_url = f"{image_base_url.rstrip('/')}/{str(poster_path).lstrip('/')}"

        return cls(
            id=int(payload["id"]),
            title=str(payload.get("title") or ""),
            year=year,
            overview=str(payload.get("overview") or ""),
            poster_url=poster_url,
            genre_ids=frozenset(int(g) for g in payload.get("genre_ids") or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "year": self.year,
            "overview": self.overview,
            "poster_url": self.poster_url,
            "genre_ids": sorted(self.genre_ids),
        }
