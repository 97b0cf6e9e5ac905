"""Transport collaborators that need no network.

``FileCatalogTransport`` pages through a local catalog file, which lets the
CLI and tests drive a :class:`~moviedb.pipeline.query_pipeline.QueryPipeline`
end to end.  ``CachingTransport`` puts a :class:`PageCache` in front of any
transport.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from ..api.request import RequestDescriptor
from ..cache.redis_cache import PageCache, make_cache_key
from ..errors import FetchError
from ..models import Movie
from ..parsers.tmdb import TmdbParser
from .query_pipeline import Transport

logger = logging.getLogger(__name__)


def page_number(descriptor: RequestDescriptor) -> int:
    """Read the 1-based ``page`` query item (default 1)."""
    raw = descriptor.query().get("page", "1")
    try:
        page = int(raw)
    except ValueError as exc:
        raise FetchError(f"Invalid page parameter {raw!r}", url=descriptor.url) from exc
    if page < 1:
        raise FetchError(f"Invalid page parameter {raw!r}", url=descriptor.url)
    return page


class FileCatalogTransport:
    """Serve fixed-size pages of a catalog held in memory or on disk.

    Args:
        movies:     Full catalog, in listing order.
        page_size:  Movies per page.
    """

    def __init__(self, movies: Sequence[Movie], page_size: int = 20) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        self._movies = list(movies)
        self._page_size = page_size
        self.requests: list[RequestDescriptor] = []

    @classmethod
    def from_file(cls, path: str | Path, page_size: int = 20, parser: TmdbParser | None = None) -> "FileCatalogTransport":
        return cls((parser or TmdbParser()).parse_file(path), page_size=page_size)

    async def __call__(self, descriptor: RequestDescriptor) -> list[Movie]:
        self.requests.append(descriptor)
        page = page_number(descriptor)
        start = (page - 1) * self._page_size
        return self._movies[start:start + self._page_size]

    @property
    def total_pages(self) -> int:
        return -(-len(self._movies) // self._page_size)


class CachingTransport:
    """Serve pages from a :class:`PageCache`, falling back to the wrapped transport."""

    def __init__(self, transport: Transport, cache: PageCache) -> None:
        self._transport = transport
        self._cache = cache
        self.hits = 0
        self.misses = 0

    async def __call__(self, descriptor: RequestDescriptor) -> list[Movie]:
        key = make_cache_key(descriptor.url, descriptor.query())
        cached = self._cache.get(key)
        if cached is not None:
            self.hits += 1
            logger.debug("Cache hit [%s] %s", descriptor.short_id, descriptor.url)
            return cached

        self.misses += 1
        movies = list(await self._transport(descriptor))
        self._cache.set(key, movies)
        return movies
