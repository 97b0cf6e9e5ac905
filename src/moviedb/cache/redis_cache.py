"""Redis-backed catalog page cache.

Caches decoded catalog pages (list[Movie]) under a content-addressed key
derived from the request URL and query, so a page fetched once is served
without another round-trip until its TTL expires.

Key schema:
    moviedb:cache:{sha256(url + params)}

TTL defaults to 300 seconds (5 minutes). Set MOVIEDB_CACHE_TTL in the
environment to override.

Usage::

    from moviedb.cache.redis_cache import PageCache, make_cache_key

    cache = PageCache(url="redis://localhost:6379/0", ttl=600)
    key = make_cache_key(descriptor.url, descriptor.query())

    movies = cache.get(key)
    if movies is None:
        movies = await transport(descriptor)
        cache.set(key, movies)
"""
from __future__ import annotations

import hashlib
import json
import logging
from typing import Any

from ..models import Movie

logger = logging.getLogger(__name__)

KEY_PREFIX = "moviedb:cache:"


def make_cache_key(url: str, params: dict[str, Any]) -> str:
    """Derive a stable cache key from a request URL and its query parameters.

    The ``api_key`` parameter is left out so rotating keys keeps the cache.
    """
    params = {k: v for k, v in params.items() if k != "api_key"}
    raw = json.dumps({"url": url.split("?", 1)[0], "params": params}, sort_keys=True)
    digest = hashlib.sha256(raw.encode()).hexdigest()[:32]
    return f"{KEY_PREFIX}{digest}"


class PageCache:
    """Redis-backed cache for decoded catalog pages.

    Degrades to a no-op when Redis is unavailable; callers never need to
    handle cache errors.

    Args:
        url:  Redis connection URL (redis://host:port/db).
        ttl:  Time-to-live in seconds for cached pages (default: 300).
    """

    def __init__(self, url: str = "redis://localhost:6379/0", ttl: int = 300) -> None:
        self._url = url
        self._ttl = ttl
        self._client: Any = None
        self._connect()

    def _connect(self) -> None:
        try:
            import redis

            self._client = redis.Redis.from_url(self._url, decode_responses=True)
            self._client.ping()
            logger.debug("Redis cache connected: %s", self._url)
        except Exception as exc:
            logger.warning("Redis unavailable, page cache disabled: %s", exc)
            self._client = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: str) -> list[Movie] | None:
        """Return the cached page for key, or None on miss / error."""
        if self._client is None:
            return None
        try:
            raw = self._client.get(key)
            if raw is None:
                return None
            return [Movie.from_dict(item) for item in json.loads(raw)]
        except Exception as exc:
            logger.warning("Cache get failed for key %r: %s", key, exc)
            return None

    def set(self, key: str, movies: list[Movie]) -> bool:
        """Serialize and store a page under key with the configured TTL.

        Returns True on success, False on error.
        """
        if self._client is None:
            return False
        try:
            payload = json.dumps([m.to_dict() for m in movies])
            self._client.setex(key, self._ttl, payload)
            return True
        except Exception as exc:
            logger.warning("Cache set failed for key %r: %s", key, exc)
            return False

    def flush(self) -> int:
        """Drop every cached page. Returns how many keys were removed."""
        if self._client is None:
            return 0
        try:
            keys = list(self._client.scan_iter(match=f"{KEY_PREFIX}*"))
            return self._client.delete(*keys) if keys else 0
        except Exception as exc:
            logger.warning("Page cache flush failed: %s", exc)
            return 0

    @property
    def available(self) -> bool:
        """True when the Redis connection is healthy."""
        return self._client is not None
