"""Rate limiting primitives for pipeline triggers."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

_MISSING = object()


class Throttle(Generic[T]):
    """Trailing-edge throttle bound to an asyncio loop.

    The first value submitted opens a window of ``interval`` seconds.  Values
    submitted while the window is open replace the pending one.  When the
    window elapses the latest pending value is passed to ``action`` exactly
    once; the next submission opens a new window.

    Must be used from the loop's thread.
    """

    def __init__(
        self,
        interval: float,
        action: Callable[[T], None],
        loop: asyncio.AbstractEventLoop,
        name: str = "throttle",
    ) -> None:
        if interval < 0:
            raise ValueError(f"interval must be >= 0, got {interval}")
        self.interval = interval
        self.name = name
        self._action = action
        self._loop = loop
        self._pending: object = _MISSING
        self._handle: asyncio.TimerHandle | None = None
        self._dropped = 0

    def submit(self, value: T) -> None:
        if self._pending is not _MISSING:
            self._dropped += 1
            logger.debug("Throttle %s: superseding pending trigger", self.name)
        self._pending = value
        if self._handle is None:
            self._handle = self._loop.call_later(self.interval, self._flush)

    def _flush(self) -> None:
        self._handle = None
        value, self._pending = self._pending, _MISSING
        if value is _MISSING:
            return
        logger.debug("Throttle %s: firing (dropped %d)", self.name, self._dropped)
        self._dropped = 0
        self._action(value)  # type: ignore[arg-type]

    def cancel(self) -> None:
        """Drop the pending value and close the window."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._pending = _MISSING
        self._dropped = 0

    @property
    def active(self) -> bool:
        """True while a window is open."""
        return self._handle is not None

    def __repr__(self) -> str:
        return f"Throttle({self.name!r}, interval={self.interval}, active={self.active})"


class RemoveDuplicates(Generic[T]):
    """Reject a value equal to the previously accepted one."""

    def __init__(self) -> None:
        self._last: object = _MISSING

    def accept(self, value: T) -> bool:
        if self._last is not _MISSING and self._last == value:
            return False
        self._last = value
        return True

    def reset(self) -> None:
        self._last = _MISSING
