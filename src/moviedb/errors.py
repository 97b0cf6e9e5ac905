"""Exception hierarchy for moviedb."""
from __future__ import annotations


class MovieDbError(Exception):
    """Base class for all moviedb errors."""


class ConfigurationError(MovieDbError):
    """A base URL, path or setting cannot produce a valid request.

    Raised at construction time and never caught inside the package: it
    signals a programming or deployment mistake, not a runtime condition.
    """


class FetchError(MovieDbError):
    """A transport failed to deliver a page (I/O, timeout or decode)."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class CatalogFormatError(FetchError):
    """A catalog payload could not be decoded into movies."""
