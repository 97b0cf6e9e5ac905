"""Named requests for the movie catalog API."""
from __future__ import annotations

from .request import HTTPMethod, Request


def popular_movies(page: int, language: str | None = None) -> Request:
    """One page of the popular-movies listing (pages start at 1)."""
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    items = [("page", str(page))]
    if language:
        items.append(("language", language))
    return Request("movie/popular", HTTPMethod.GET, tuple(items))


def search_movies(query: str, page: int = 1) -> Request:
    """Server-side keyword search."""
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    return Request("search/movie", HTTPMethod.GET, (("query", query), ("page", str(page))))


def movie_genres(language: str | None = None) -> Request:
    items = (("language", language),) if language else None
    return Request("genre/movie/list", HTTPMethod.GET, items)


def with_api_key(request: Request, api_key: str) -> Request:
    """Append the ``api_key`` query item when a key is configured."""
    if not api_key:
        return request
    return request.with_query([("api_key", api_key)])
