"""Rich-powered tables for movie lists and request descriptors."""
from __future__ import annotations

from typing import Mapping, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from ..api.request import RequestDescriptor
from ..models import Movie

_console = Console()


def genre_names(movie: Movie, genres: Mapping[int, str] | None = None) -> str:
    """Comma-separated genre names, falling back to ids when unknown."""
    lookup = genres or {}
    return ", ".join(lookup.get(g, str(g)) for g in sorted(movie.genre_ids))


def print_movies_table(
    movies: Sequence[Movie],
    title: str = "Movies",
    genres: Mapping[int, str] | None = None,
    max_rows: int = 100,
    console: Console | None = None,
) -> None:
    """Render movies as a Rich table.

    Args:
        movies:    Movies in display order.
        title:     Table title shown in the header.
        genres:    Optional ``{id: name}`` lookup for the genre column.
        max_rows:  Hard cap; longer lists are truncated with a notice.
    """
    out = console or _console
    if not movies:
        out.print("[yellow]No movies to display.[/yellow]")
        return

    table = Table(title=title, box=box.ROUNDED, show_lines=False)
    table.add_column("#", style="dim", width=4)
    table.add_column("Id", justify="right", style="cyan")
    table.add_column("Title", overflow="fold", max_width=50)
    table.add_column("Year", width=6)
    table.add_column("Genres", overflow="fold", max_width=40)

    for rank, movie in enumerate(movies[:max_rows], start=1):
        table.add_row(str(rank), str(movie.id), movie.title, movie.year or "-", genre_names(movie, genres))

    out.print(table)
    if len(movies) > max_rows:
        out.print(f"[dim]... and {len(movies) - max_rows} more movies (use --limit to adjust)[/dim]")


def print_request(descriptor: RequestDescriptor, console: Console | None = None) -> None:
    """Render a resolved request as a two-column table."""
    out = console or _console
    table = Table(title="Request", box=box.MINIMAL_DOUBLE_HEAD)
    table.add_column("Field", style="bold")
    table.add_column("Value", overflow="fold")
    table.add_row("method", descriptor.method.value)
    table.add_row("url", descriptor.url)
    for key, value in descriptor.query_items:
        table.add_row(f"query.{key}", value)
    table.add_row("correlation_id", descriptor.correlation_id)
    out.print(table)
