"""Refresh / pagination / search coordination for a movie list.

The pipeline owns the only mutable state in moviedb: the movies accumulated
for the current refresh cycle.  Every mutation happens on the owning asyncio
loop, so the loop is the single writer; public inputs may be called from any
thread and are posted to it with ``call_soon_threadsafe``.

Flow::

    refresh() ──► Throttle ──► new cycle, fetch page 1 ─┐
    next_page(n) ─► RemoveDuplicates ─► Throttle ──► fetch page k ─┤
                                                               ▼
                         transport(RequestDescriptor) ──► page buffer
                                                               │ (page order)
                                                               ▼
    set_search_text(t) ─────────────────────────► values / filtered_values

Usage::

    async def transport(descriptor: RequestDescriptor) -> list[Movie]:
        ...

    async with QueryPipeline(transport) as pipeline:
        pipeline.values.connect(render_list)
        pipeline.error.connect(lambda exc: show_alert())
        pipeline.refresh()
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence

from ..api.endpoints import popular_movies, with_api_key
from ..api.request import Request, RequestDescriptor
from ..models import Movie
from ..search.movie_filters import by_title
from .signals import Signal
from .throttle import RemoveDuplicates, Throttle

logger = logging.getLogger(__name__)

Transport = Callable[[RequestDescriptor], Awaitable[Sequence[Movie]]]
RequestFactory = Callable[[int], Request]


def default_request_factory(page: int) -> Request:
    """Popular movies in the configured language, carrying the configured API key."""
    from ..config import settings

    return with_api_key(popular_movies(page, settings.language or None), settings.api_key)


class QueryPipeline:
    """Merge refresh, next-page and search-text triggers into movie lists.

    Args:
        transport:          Async callable executing one descriptor and
                            returning the decoded page.  Any exception it
                            raises counts as a failed fetch.
        base_url:           Catalog API base URL.  Checked eagerly: an
                            unusable URL raises ConfigurationError here.
        request_factory:    Maps a 1-based page index to a Request.  Defaults
                            to popular movies with the configured language
                            and API key.
        throttle_interval:  Trailing-edge window in seconds for refresh and
                            next-page triggers.
        loop:               Owning loop; defaults to the running loop.

    Outputs (``Signal`` instances):
        values:          Movies accumulated in the current cycle.
        filtered_values: ``values`` filtered by title while search text is set.
        is_refreshing:   True when a refresh fetch starts, False when it ends.
        error:           The exception of each failed fetch.
        is_empty:        Whether there is nothing to show; de-duplicated.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        base_url: str | None = None,
        request_factory: RequestFactory | None = None,
        throttle_interval: float | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if base_url is None or throttle_interval is None:
            from ..config import settings

            base_url = settings.api_base_url if base_url is None else base_url
            if throttle_interval is None:
                throttle_interval = settings.throttle_interval

        self._transport = transport
        self._base_url = base_url
        self._request_factory = request_factory or default_request_factory
        # Fail fast on a bad base URL rather than on the first trigger
        self._request_factory(1).build(base_url)

        self._loop = loop or asyncio.get_running_loop()

        self.values: Signal[list[Movie]] = Signal("values")
        self.filtered_values: Signal[list[Movie]] = Signal("filtered_values")
        self.is_refreshing: Signal[bool] = Signal("is_refreshing")
        self.error: Signal[Exception] = Signal("error")
        self.is_empty: Signal[bool] = Signal("is_empty")

        self._refresh_throttle: Throttle[None] = Throttle(
            throttle_interval, self._start_cycle, self._loop, name="refresh"
        )
        self._next_page_throttle: Throttle[int] = Throttle(
            throttle_interval, self._request_next_page, self._loop, name="next_page"
        )
        self._page_counts: RemoveDuplicates[int] = RemoveDuplicates()

        self._generation = 0
        self._movies: list[Movie] = []
        self._movie_ids: set[int] = set()
        self._next_page = 1
        self._applied_through = 0
        self._completed: dict[int, list[Movie]] = {}
        self._failed_pages: set[int] = set()
        self._in_flight: dict[int, asyncio.Task] = {}
        self._refreshing = False
        self._search_text: str | None = None
        self._last_empty: bool | None = None
        self._closed = False

    # ------------------------------------------------------------------
    # Inputs (thread-safe)
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """Restart from page 1 (pull-to-refresh, first appearance)."""
        self._post(self._refresh_throttle.submit, None)

    def next_page(self, count: int) -> None:
        """Request the page after the count items currently displayed."""
        self._post(self._submit_next_page, count)

    def set_search_text(self, text: str | None) -> None:
        """Set the active search; None or "" clears it."""
        self._post(self._apply_search_text, text)

    def _post(self, handler: Callable, arg: object) -> None:
        if self._closed:
            logger.debug("Pipeline closed, ignoring %s", getattr(handler, "__name__", handler))
            return
        self._loop.call_soon_threadsafe(self._dispatch, handler, arg)

    def _dispatch(self, handler: Callable, arg: object) -> None:
        if not self._closed:
            handler(arg)

    # ------------------------------------------------------------------
    # Trigger handling (loop thread only)
    # ------------------------------------------------------------------

    def _submit_next_page(self, count: int) -> None:
        if not self._page_counts.accept(count):
            logger.debug("Duplicate next-page trigger for count %d ignored", count)
            return
        self._next_page_throttle.submit(count)

    def _start_cycle(self, _trigger: None = None) -> None:
        self._generation += 1
        logger.debug("Refresh accepted, starting cycle %d", self._generation)

        for task in self._in_flight.values():
            task.cancel()
        self._in_flight.clear()
        self._next_page_throttle.cancel()
        self._page_counts.reset()

        self._movies = []
        self._movie_ids = set()
        self._completed.clear()
        self._failed_pages.clear()
        self._applied_through = 0
        self._next_page = 2

        self._set_refreshing(True)
        self._start_fetch(1)

    def _request_next_page(self, count: int) -> None:
        if self._failed_pages:
            page = min(self._failed_pages)
            self._failed_pages.discard(page)
        else:
            page = self._next_page
            self._next_page += 1

        if page in self._in_flight:
            logger.debug("Page %d already in flight", page)
            return
        logger.debug("Next page accepted at count %d: page %d", count, page)
        if page == 1:
            self._set_refreshing(True)
        self._start_fetch(page)

    def _apply_search_text(self, text: str | None) -> None:
        self._search_text = text
        if text:
            self._publish_filtered()

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def _start_fetch(self, page: int) -> None:
        descriptor = self._request_factory(page).build(self._base_url)
        logger.debug("Fetching page %d [%s] %s", page, descriptor.short_id, descriptor.url)
        task = self._loop.create_task(self._fetch(self._generation, page, descriptor))
        self._in_flight[page] = task

    async def _fetch(self, generation: int, page: int, descriptor: RequestDescriptor) -> None:
        try:
            movies = list(await self._transport(descriptor))
        except Exception as exc:
            if generation != self._generation:
                logger.debug("Discarding failure of superseded page %d [%s]", page, descriptor.short_id)
                return
            self._on_fetch_failed(page, descriptor, exc)
            return

        if generation != self._generation:
            logger.debug("Discarding late page %d of cycle %d", page, generation)
            return

        self._in_flight.pop(page, None)
        logger.debug("Page %d [%s] delivered %d movies", page, descriptor.short_id, len(movies))
        self._completed[page] = movies
        self._apply_completed_pages()
        if page == 1 and self._refreshing:
            self._set_refreshing(False)

    def _on_fetch_failed(self, page: int, descriptor: RequestDescriptor, exc: Exception) -> None:
        self._in_flight.pop(page, None)
        logger.warning("Fetch of page %d failed [%s]: %s", page, descriptor.short_id, exc)
        self._failed_pages.add(page)
        # Let the same item count trigger a retry
        self._page_counts.reset()
        if page == 1 and self._refreshing:
            self._set_refreshing(False)
        self.error.emit(exc)
        self._publish_empty(not self._movies)

    def _apply_completed_pages(self) -> None:
        applied = False
        while self._applied_through + 1 in self._completed:
            page = self._applied_through + 1
            for movie in self._completed.pop(page):
                if movie.id not in self._movie_ids:
                    self._movie_ids.add(movie.id)
                    self._movies.append(movie)
            self._applied_through = page
            applied = True

        if applied:
            self.values.emit(list(self._movies))
            if self._search_text:
                self._publish_filtered()
            self._publish_empty(not self._movies)

    # ------------------------------------------------------------------
    # Output helpers
    # ------------------------------------------------------------------

    def _publish_filtered(self) -> None:
        self.filtered_values.emit(by_title(self._search_text or "").run_filter(self._movies))

    def _publish_empty(self, empty: bool) -> None:
        if empty != self._last_empty:
            self._last_empty = empty
            self.is_empty.emit(empty)

    def _set_refreshing(self, refreshing: bool) -> None:
        self._refreshing = refreshing
        self.is_refreshing.emit(refreshing)

    # ------------------------------------------------------------------
    # State snapshots
    # ------------------------------------------------------------------

    @property
    def current_values(self) -> list[Movie]:
        return list(self._movies)

    @property
    def current_filtered_values(self) -> list[Movie]:
        """Filtered movies, or all movies when no search is active."""
        if not self._search_text:
            return list(self._movies)
        return by_title(self._search_text).run_filter(self._movies)

    @property
    def refreshing(self) -> bool:
        return self._refreshing

    @property
    def pages_loaded(self) -> int:
        return self._applied_through

    @property
    def cycle(self) -> int:
        return self._generation

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def wait_idle(self, poll: float = 0.005) -> None:
        """Wait until no trigger is pending and no fetch is in flight."""
        while True:
            await asyncio.sleep(0)
            tasks = list(self._in_flight.values())
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
                continue
            if self._refresh_throttle.active or self._next_page_throttle.active:
                await asyncio.sleep(poll)
                continue
            return

    def close(self) -> None:
        """Cancel pending work and disconnect every observer."""
        if self._closed:
            return
        self._closed = True
        self._generation += 1
        self._refresh_throttle.cancel()
        self._next_page_throttle.cancel()
        for task in self._in_flight.values():
            task.cancel()
        self._in_flight.clear()
        for signal in (self.values, self.filtered_values, self.is_refreshing, self.error, self.is_empty):
            signal.disconnect_all()
        logger.debug("Pipeline closed")

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "QueryPipeline":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"QueryPipeline(cycle={self._generation}, pages={self._applied_through}, "
            f"movies={len(self._movies)})"
        )
