"""Callback-based output streams with explicit teardown."""
from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Signal(Generic[T]):
    """A named stream of values delivered synchronously to connected callbacks.

    Usage::

        values = Signal("values")
        disconnect = values.connect(lambda movies: print(len(movies)))
        values.emit(movies)
        disconnect()

    Callback exceptions propagate to the emitter.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._callbacks: list[Callable[[T], None]] = []

    def connect(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register callback; return a function that unregisters it."""
        self._callbacks.append(callback)

        def _disconnect() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _disconnect

    def emit(self, value: T) -> None:
        logger.debug("Signal %s: emitting to %d observers", self.name, len(self._callbacks))
        for callback in list(self._callbacks):
            callback(value)

    def disconnect_all(self) -> None:
        self._callbacks.clear()

    def __len__(self) -> int:
        return len(self._callbacks)

    def __repr__(self) -> str:
        return f"Signal({self.name!r}, observers={len(self._callbacks)})"
