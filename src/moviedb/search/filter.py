"""Composable, immutable predicate filters.

A :class:`Filter` wraps exactly one predicate.  Every combinator returns a
new Filter; nothing is mutated in place, so a filter can be shared between
threads and re-run any number of times with identical results.

Usage::

    adults = Filter(lambda p: p.age >= 18)
    named = Filter(lambda p: bool(p.name))

    both = adults & named                       # Strategy.AND
    either = adults.merge(named, Strategy.OR)
    by_row = adults.contramap(lambda row: row.person)

    results = both.run_filter(people)
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, TypeVar

T = TypeVar("T")
U = TypeVar("U")

Predicate = Callable[[T], bool]


class Strategy(enum.Enum):
    """How :meth:`Filter.merge` combines two predicates."""

    AND = "and"
    OR = "or"


@dataclass(frozen=True, slots=True)
class Filter(Generic[T]):
    predicate: Callable[[T], bool]

    def matches(self, item: T) -> bool:
        """Return True if the predicate accepts item."""
        return self.predicate(item)

    def run_filter(self, items: Iterable[T]) -> list[T]:
        """Return the items the predicate accepts, in their original order.

        Exceptions raised by the predicate propagate to the caller unchanged.
        """
        predicate = self.predicate
        return [item for item in items if predicate(item)]

    def contramap(self, f: Callable[[U], T]) -> "Filter[U]":
        """Adapt this filter to another item type via the projection f."""
        predicate = self.predicate
        return Filter(lambda u: predicate(f(u)))

    def merge(self, other: "Filter[T]", strategy: Strategy = Strategy.AND) -> "Filter[T]":
        """Combine with other using logical AND or OR on the same item."""
        left, right = self.predicate, other.predicate
        if strategy is Strategy.AND:
            return Filter(lambda t: left(t) and right(t))
        if strategy is Strategy.OR:
            return Filter(lambda t: left(t) or right(t))
        raise ValueError(f"Unknown merge strategy: {strategy!r}")

    # Operator sugar for merge / negation
    def __and__(self, other: "Filter[T]") -> "Filter[T]":
        return self.merge(other, Strategy.AND)

    def __or__(self, other: "Filter[T]") -> "Filter[T]":
        return self.merge(other, Strategy.OR)

    def __invert__(self) -> "Filter[T]":
        predicate = self.predicate
        return Filter(lambda t: not predicate(t))

    @classmethod
    def combine(cls, *filters: "Filter[T]", strategy: Strategy = Strategy.AND) -> "Filter[T]":
        """Fold filters with one strategy.

        With no filters, AND yields a match-all filter and OR a match-none
        filter (the identities of each operation).
        """
        if not filters:
            identity = strategy is Strategy.AND
            return cls(lambda _t: identity)
        combined = filters[0]
        for f in filters[1:]:
            combined = combined.merge(f, strategy)
        return combined

    def __repr__(self) -> str:
        name = getattr(self.predicate, "__qualname__", type(self.predicate).__name__)
        return f"Filter({name})"


def match_all() -> Filter:
    """A filter that accepts every item."""
    return Filter(lambda _t: True)
