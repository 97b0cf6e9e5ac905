"""Shared pytest fixtures for moviedb tests."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from moviedb.models import Movie


@pytest.fixture()
def movies() -> list[Movie]:
    return [
        Movie(id=603, title="The Matrix", year="1999", genre_ids=frozenset({28, 878})),
        Movie(id=604, title="The Matrix Reloaded", year="2003", genre_ids=frozenset({28, 878})),
        Movie(id=605, title="The Matrix Revolutions", year="2003", genre_ids=frozenset({28, 878, 53})),
        Movie(id=194, title="Amélie", year="2001", genre_ids=frozenset({35, 10749})),
        Movie(id=129, title="Spirited Away", year="2001", genre_ids=frozenset({16, 10751, 14})),
        Movie(id=680, title="Pulp Fiction", year="1994", genre_ids=frozenset({53, 80})),
    ]


@pytest.fixture()
def make_movies():
    """Return a factory producing n distinct movies starting at start_id."""

    def _make(n: int, start_id: int = 1, prefix: str = "Movie") -> list[Movie]:
        return [
            Movie(id=i, title=f"{prefix} {i}", year="2020", genre_ids=frozenset({i % 5}))
            for i in range(start_id, start_id + n)
        ]

    return _make


@pytest.fixture()
def api_page() -> dict[str, Any]:
    """A catalog API page payload in the popular-movies shape."""
    return {
        "page": 1,
        "total_pages": 1,
        "results": [
            {
                "id": 603,
                "title": "The Matrix",
                "release_date": "1999-03-30",
                "overview": "A hacker learns the truth.",
                "poster_path": "/f89U3ADr1oiB1s9GkdPOEpXUk5H.jpg",
                "genre_ids": [28, 878],
            },
            {
                "id": 1,
                "title": "Untitled",
                "release_date": "",
                "overview": "",
                "poster_path": None,
                "genre_ids": [],
            },
        ],
    }


@pytest.fixture()
def tmp_catalog_file(tmp_path: Path):
    """Return a factory that writes a JSON catalog file."""

    def _make(payload: Any, name: str = "catalog.json") -> Path:
        p = tmp_path / name
        p.write_text(json.dumps(payload), encoding="utf-8")
        return p

    return _make
