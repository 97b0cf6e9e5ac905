"""Transport-independent request construction.

A :class:`Request` names an endpoint (path, method, query items).  Building
it against a base URL produces a :class:`RequestDescriptor`, the fully
resolved description an external transport executes.  Nothing here performs
network I/O.

Usage::

    request = Request("movie/popular", query_items=[("page", "2")])
    descriptor = request.build("https://api.themoviedb.org/3/")
    descriptor.url  # 'https://api.themoviedb.org/3/movie/popular?page=2'
"""
from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from typing import Iterable
from urllib.parse import quote, urlencode, urlsplit, urlunsplit

from ..errors import ConfigurationError

QueryItems = tuple[tuple[str, str], ...]


class HTTPMethod(str, enum.Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"


def _new_correlation_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class RequestDescriptor:
    """A resolved, not-yet-executed request.

    ``correlation_id`` exists for log correlation only; it takes no part in
    equality or hashing, so two builds of the same request compare equal.
    """

    url: str
    method: HTTPMethod
    query_items: QueryItems = ()
    correlation_id: str = field(default_factory=_new_correlation_id, compare=False)

    @property
    def short_id(self) -> str:
        return self.correlation_id[:8]

    def query(self) -> dict[str, str]:
        """Query items as a dict (last value wins for repeated keys)."""
        return dict(self.query_items)


@dataclass(frozen=True)
class Request:
    """An endpoint description that can be resolved against any base URL.

    Attributes:
        path:         Relative path appended to the base URL (non-empty, no
                      query or fragment).
        method:       HTTP method.
        query_items:  Ordered key/value pairs, or None for no query.
    """

    path: str
    method: HTTPMethod = HTTPMethod.GET
    query_items: QueryItems | None = None
    uuid: str = field(default_factory=_new_correlation_id, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not self.path or not self.path.strip("/"):
            raise ConfigurationError("Request path must not be empty")
        if "?" in self.path or "#" in self.path:
            raise ConfigurationError(f"Request path must not carry a query or fragment, got {self.path!r}")
        if self.query_items is not None:
            object.__setattr__(
                self,
                "query_items",
                tuple((str(k), str(v)) for k, v in self.query_items),
            )

    @property
    def uuid_short(self) -> str:
        return self.uuid[:8]

    def with_query(self, items: Iterable[tuple[str, str]]) -> "Request":
        """Return a copy with items appended to the query."""
        return Request(
            path=self.path,
            method=self.method,
            query_items=(self.query_items or ()) + tuple(items),
        )

    def build(self, base_url: str) -> RequestDescriptor:
        """Resolve against base_url.

        Raises:
            ConfigurationError: base_url is not an absolute http(s) URL, or
                already carries a query or fragment.
        """
        try:
            parts = urlsplit(base_url)
        except ValueError as exc:
            raise ConfigurationError(f"Malformed base URL {base_url!r}: {exc}") from exc

        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ConfigurationError(
                f"Base URL must be an absolute http(s) URL, got {base_url!r}"
            )
        if parts.query or parts.fragment:
            raise ConfigurationError(
                f"Base URL must not carry a query or fragment, got {base_url!r}"
            )

        path = f"{parts.path.rstrip('/')}/{self.path.lstrip('/')}"
        items = self.query_items or ()
        query = urlencode(items, quote_via=quote, safe="")
        url = urlunsplit((parts.scheme, parts.netloc, path, query, ""))
        return RequestDescriptor(url=url, method=self.method, query_items=items)
