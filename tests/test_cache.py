"""Tests for the Redis page cache and the non-network transports (no live Redis required)."""
from __future__ import annotations

import asyncio
import json
from unittest.mock import MagicMock, patch

import pytest

from moviedb.api.endpoints import popular_movies
from moviedb.api.request import Request
from moviedb.cache.redis_cache import PageCache, make_cache_key
from moviedb.errors import FetchError
from moviedb.models import Movie
from moviedb.pipeline.transports import CachingTransport, FileCatalogTransport, page_number

BASE_URL = "https://api.example.com/"


class TestMakeCacheKey:
    def test_deterministic(self) -> None:
        k1 = make_cache_key("https://x.test/movie/popular", {"page": "1"})
        k2 = make_cache_key("https://x.test/movie/popular", {"page": "1"})
        assert k1 == k2

    def test_different_params_different_keys(self) -> None:
        k1 = make_cache_key("https://x.test/movie/popular", {"page": "1"})
        k2 = make_cache_key("https://x.test/movie/popular", {"page": "2"})
        assert k1 != k2

    def test_different_urls_different_keys(self) -> None:
        assert make_cache_key("https://x.test/a", {}) != make_cache_key("https://x.test/b", {})

    def test_key_prefix(self) -> None:
        assert make_cache_key("https://x.test/a", {}).startswith("moviedb:cache:")

    def test_params_order_independent(self) -> None:
        k1 = make_cache_key("https://x.test/a", {"b": "2", "a": "1"})
        k2 = make_cache_key("https://x.test/a", {"a": "1", "b": "2"})
        assert k1 == k2

    def test_api_key_ignored(self) -> None:
        k1 = make_cache_key("https://x.test/a?page=1&api_key=old", {"page": "1", "api_key": "old"})
        k2 = make_cache_key("https://x.test/a?page=1&api_key=new", {"page": "1", "api_key": "new"})
        assert k1 == k2


class TestPageCacheNoRedis:
    """Tests that pass even when Redis is not running."""

    def _disabled_cache(self) -> PageCache:
        with patch("moviedb.cache.redis_cache.PageCache._connect"):
            cache = PageCache()
            cache._client = None
        return cache

    def test_available_false_when_no_redis(self) -> None:
        assert not self._disabled_cache().available

    def test_get_returns_none_when_disabled(self) -> None:
        assert self._disabled_cache().get("any-key") is None

    def test_set_returns_false_when_disabled(self) -> None:
        assert self._disabled_cache().set("any-key", []) is False

    def test_flush_returns_zero_when_disabled(self) -> None:
        assert self._disabled_cache().flush() == 0

    def test_connect_failure_disables_cache(self) -> None:
        with patch("redis.Redis.from_url", side_effect=ConnectionError("refused")):
            cache = PageCache(url="redis://nowhere:6379/0")
        assert not cache.available


class TestPageCacheMocked:
    """Tests using a mocked Redis client."""

    def _cache_with_mock_redis(self) -> tuple[PageCache, MagicMock]:
        mock_redis = MagicMock()
        mock_redis.ping.return_value = True
        with patch("moviedb.cache.redis_cache.PageCache._connect"):
            cache = PageCache()
            cache._client = mock_redis
        return cache, mock_redis

    def test_get_returns_movies(self) -> None:
        cache, mock_redis = self._cache_with_mock_redis()
        mock_redis.get.return_value = json.dumps([
            {"id": 603, "title": "The Matrix", "year": "1999", "overview": "", "poster_url": None,
             "genre_ids": [28, 878]},
        ])
        result = cache.get("test-key")
        assert result == [Movie(id=603, title="The Matrix")]
        assert result[0].year == "1999"
        assert result[0].genre_ids == frozenset({28, 878})

    def test_get_returns_none_on_cache_miss(self) -> None:
        cache, mock_redis = self._cache_with_mock_redis()
        mock_redis.get.return_value = None
        assert cache.get("missing-key") is None

    def test_set_calls_setex_with_ttl(self) -> None:
        cache, mock_redis = self._cache_with_mock_redis()
        cache._ttl = 300
        assert cache.set("test-key", [Movie(id=1, title="a", year="2000")]) is True
        mock_redis.setex.assert_called_once()
        key, ttl, payload = mock_redis.setex.call_args[0]
        assert key == "test-key"
        assert ttl == 300
        assert json.loads(payload)[0]["year"] == "2000"

    def test_flush_deletes_matching_keys(self) -> None:
        cache, mock_redis = self._cache_with_mock_redis()
        mock_redis.scan_iter.return_value = iter(["moviedb:cache:abc", "moviedb:cache:def"])
        mock_redis.delete.return_value = 2
        assert cache.flush() == 2
        mock_redis.scan_iter.assert_called_once_with(match="moviedb:cache:*")
        mock_redis.delete.assert_called_once_with("moviedb:cache:abc", "moviedb:cache:def")

    def test_flush_with_nothing_cached(self) -> None:
        cache, mock_redis = self._cache_with_mock_redis()
        mock_redis.scan_iter.return_value = iter([])
        assert cache.flush() == 0
        mock_redis.delete.assert_not_called()

    def test_flush_handles_redis_error_gracefully(self) -> None:
        cache, mock_redis = self._cache_with_mock_redis()
        mock_redis.scan_iter.side_effect = Exception("Redis error")
        assert cache.flush() == 0

    def test_get_handles_redis_error_gracefully(self) -> None:
        cache, mock_redis = self._cache_with_mock_redis()
        mock_redis.get.side_effect = Exception("Redis error")
        assert cache.get("bad-key") is None

    def test_set_handles_redis_error_gracefully(self) -> None:
        cache, mock_redis = self._cache_with_mock_redis()
        mock_redis.setex.side_effect = Exception("Redis error")
        assert cache.set("bad-key", []) is False


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------

class TestFileCatalogTransport:
    def test_pages(self, make_movies) -> None:
        transport = FileCatalogTransport(make_movies(25), page_size=10)

        async def scenario() -> list[list[Movie]]:
            return [await transport(popular_movies(p).build(BASE_URL)) for p in (1, 2, 3, 4)]

        pages = asyncio.run(scenario())
        assert [len(p) for p in pages] == [10, 10, 5, 0]
        assert pages[1][0].id == 11
        assert transport.total_pages == 3
        assert len(transport.requests) == 4

    def test_from_file(self, tmp_catalog_file, api_page) -> None:
        transport = FileCatalogTransport.from_file(tmp_catalog_file(api_page), page_size=1)
        assert transport.total_pages == 2

    def test_invalid_page_size(self) -> None:
        with pytest.raises(ValueError):
            FileCatalogTransport([], page_size=0)

    @pytest.mark.parametrize("raw", ["abc", "0", "-1"])
    def test_invalid_page_parameter(self, raw: str) -> None:
        descriptor = Request("movie/popular", query_items=[("page", raw)]).build(BASE_URL)
        with pytest.raises(FetchError):
            page_number(descriptor)

    def test_missing_page_defaults_to_first(self) -> None:
        assert page_number(Request("movie/popular").build(BASE_URL)) == 1


class TestCachingTransport:
    def _cache(self) -> tuple[PageCache, dict[str, list[Movie]]]:
        store: dict[str, list[Movie]] = {}
        cache = MagicMock(spec=PageCache)
        cache.get.side_effect = store.get
        cache.set.side_effect = lambda key, movies: store.__setitem__(key, movies) or True
        return cache, store

    def test_miss_then_hit(self, make_movies) -> None:
        inner = FileCatalogTransport(make_movies(5), page_size=5)
        cache, store = self._cache()
        transport = CachingTransport(inner, cache)

        async def scenario() -> tuple[list[Movie], list[Movie]]:
            first = await transport(popular_movies(1).build(BASE_URL))
            second = await transport(popular_movies(1).build(BASE_URL))
            return first, second

        first, second = asyncio.run(scenario())
        assert first == second
        assert len(inner.requests) == 1
        assert (transport.hits, transport.misses) == (1, 1)
        assert len(store) == 1

    def test_failures_not_cached(self) -> None:
        async def broken(descriptor):
            raise FetchError("down", url=descriptor.url)

        cache, store = self._cache()
        transport = CachingTransport(broken, cache)

        async def scenario() -> None:
            with pytest.raises(FetchError):
                await transport(popular_movies(1).build(BASE_URL))

        asyncio.run(scenario())
        assert store == {}
