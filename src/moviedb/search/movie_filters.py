"""Domain filters over :class:`~moviedb.models.Movie`.

Each builder is pure: the same argument always yields a filter with the
same behaviour, and the returned filter captures only immutable values.
"""
from __future__ import annotations

import unicodedata
from typing import Iterable

from ..models import Movie
from .filter import Filter, match_all


def fold_text(text: str) -> str:
    """Normalise text for case- and diacritic-insensitive comparison.

    ``"Amélie"`` and ``"AMELIE"`` both fold to ``"amelie"``.
    """
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def search_terms(query: str) -> tuple[str, ...]:
    """Split a raw search query into folded terms (empty for blank input)."""
    return tuple(fold_text(term) for term in query.strip().split())


def by_title(query: str) -> Filter[Movie]:
    """Match movies whose title contains every whitespace-separated term.

    Matching is substring containment, case- and diacritic-insensitive, and
    independent of term order: ``"Mat Rev"`` matches "The Matrix
    Revolutions".  A blank query has no terms and matches every movie.
    """
    terms = search_terms(query)
    if not terms:
        return match_all()

    def _title_contains_all(movie: Movie) -> bool:
        title = fold_text(movie.title)
        return all(term in title for term in terms)

    return Filter(_title_contains_all)


def by_year(year: str) -> Filter[Movie]:
    """Match movies whose year text equals year exactly."""

    def _same_year(movie: Movie) -> bool:
        return movie.year == year

    return Filter(_same_year)


def by_genre_ids(genre_ids: Iterable[int]) -> Filter[Movie]:
    """Match movies sharing at least one genre with genre_ids."""
    wanted = frozenset(genre_ids)

    def _shares_genre(movie: Movie) -> bool:
        return not wanted.isdisjoint(movie.genre_ids)

    return Filter(_shares_genre)
