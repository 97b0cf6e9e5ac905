"""moviedb command line entry point.

Commands:
    moviedb search  <file> [query]  Filter a catalog file by title, year, genre
    moviedb request <path>          Resolve a catalog API request
    moviedb browse  <file>          Page through a catalog file with the query pipeline
                                    (optionally through the Redis page cache)
"""
from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.logging import RichHandler

from .config import settings
from .errors import CatalogFormatError, ConfigurationError
from .models import Movie
from .parsers.tmdb import TmdbParser, load_genres

if TYPE_CHECKING:
    from .cache.redis_cache import PageCache

console = Console()
err_console = Console(stderr=True)

# ── Helpers ─────────────────────────────────────────────────────────────────


def _load_catalog(file: Path) -> list[Movie]:
    try:
        return TmdbParser(image_base_url=settings.image_base_url).parse_file(file)
    except CatalogFormatError as exc:
        err_console.print(f"[red]Cannot read catalog {file.name}:[/red] {exc}")
        sys.exit(1)


def _load_genre_names(genres_file: Path | None) -> dict[int, str]:
    if genres_file is None:
        return {}
    try:
        return load_genres(genres_file)
    except CatalogFormatError as exc:
        err_console.print(f"[red]Cannot read genres {genres_file.name}:[/red] {exc}")
        sys.exit(1)


def _parse_param(raw: str) -> tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise click.BadParameter(f"Expected key=value, got {raw!r}", param_hint="--param")
    return key, value


def _echo_movies(movies: list[Movie]) -> None:
    for movie in movies:
        click.echo(json.dumps(movie.to_dict(), ensure_ascii=False))


# ── CLI root ─────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version="1.0.0", prog_name="moviedb")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """moviedb: movie catalog filtering and paging toolkit."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


# ── search ───────────────────────────────────────────────────────────────────


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("query", required=False, default="")
@click.option("--year", "-y", default="", help="Exact release year.")
@click.option("--genre", "-g", "genre_ids", multiple=True, type=int, help="Genre id (repeatable).")
@click.option("--any", "match_any", is_flag=True, help="Match any criterion instead of all.")
@click.option("--genres", "genres_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Genre list JSON used to name genres in table output.")
@click.option(
    "--output", "-o", "output_fmt", default="table",
    type=click.Choice(["table", "json"], case_sensitive=False),
    help="Output format.",
    show_default=True,
)
@click.option("--limit", "-n", default=0, type=int, help="Max movies to display (0 = all).")
def search(
    file: Path,
    query: str,
    year: str,
    genre_ids: tuple[int, ...],
    match_any: bool,
    genres_file: Path | None,
    output_fmt: str,
    limit: int,
) -> None:
    """Filter movies in a catalog file.

    The title query matches when every word appears in the title, ignoring
    case and accents.

    \b
    Examples:
      moviedb search popular.json "mat rev"
      moviedb search popular.json --year 1999
      moviedb search popular.json --genre 28 --genre 878 --output json
      moviedb search popular.json matrix --year 2003 --any
    """
    from .search.filter import Filter, Strategy
    from .search.movie_filters import by_genre_ids, by_title, by_year

    criteria: list[Filter[Movie]] = []
    if query.strip():
        criteria.append(by_title(query))
    if year:
        criteria.append(by_year(year))
    if genre_ids:
        criteria.append(by_genre_ids(genre_ids))

    strategy = Strategy.OR if match_any and criteria else Strategy.AND
    movie_filter = Filter.combine(*criteria, strategy=strategy)

    movies = movie_filter.run_filter(_load_catalog(file))
    if limit:
        movies = movies[:limit]

    if not movies:
        err_console.print("[yellow]No movies match.[/yellow]")
        return

    if output_fmt == "json":
        _echo_movies(movies)
        return

    from .visualization.tables import print_movies_table

    print_movies_table(
        movies,
        title=f"Matches in {file.name}",
        genres=_load_genre_names(genres_file),
        max_rows=limit or 100,
        console=console,
    )
    console.print(f"[dim]{len(movies)} match{'es' if len(movies) != 1 else ''} in {file.name}[/dim]")


# ── request ──────────────────────────────────────────────────────────────────


@main.command()
@click.argument("path")
@click.option("--param", "-p", "params", multiple=True, help="Query item as key=value (repeatable, ordered).")
@click.option(
    "--method", "-m", default="GET",
    type=click.Choice(["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"], case_sensitive=False),
    show_default=True,
)
@click.option("--base-url", default=None, help="API base URL (default: MOVIEDB_API_BASE_URL).")
@click.option(
    "--output", "-o", "output_fmt", default="table",
    type=click.Choice(["table", "json"], case_sensitive=False),
    show_default=True,
)
def request(path: str, params: tuple[str, ...], method: str, base_url: str | None, output_fmt: str) -> None:
    """Resolve a catalog API request without sending it.

    \b
    Examples:
      moviedb request movie/popular --param page=2
      moviedb request search/movie -p query=matrix -p page=1 --output json
    """
    from .api.request import HTTPMethod, Request

    items = tuple(_parse_param(p) for p in params)
    try:
        descriptor = Request(path, HTTPMethod(method.upper()), items or None).build(
            base_url or settings.api_base_url
        )
    except ConfigurationError as exc:
        raise click.BadParameter(str(exc)) from exc

    if output_fmt == "json":
        click.echo(json.dumps({
            "method": descriptor.method.value,
            "url": descriptor.url,
            "query": [list(item) for item in descriptor.query_items],
            "correlation_id": descriptor.correlation_id,
        }))
        return

    from .visualization.tables import print_request

    print_request(descriptor, console=console)


# ── browse ───────────────────────────────────────────────────────────────────


async def _browse(
    movies: list[Movie],
    pages: int,
    page_size: int,
    search_text: str,
    throttle_ms: int,
    cache: PageCache | None = None,
) -> tuple[list[Movie], list[Movie], list[Exception], int]:
    from .pipeline.query_pipeline import QueryPipeline, Transport
    from .pipeline.transports import CachingTransport, FileCatalogTransport

    catalog = FileCatalogTransport(movies, page_size=page_size)
    transport: Transport = catalog if cache is None else CachingTransport(catalog, cache)
    errors: list[Exception] = []

    async with QueryPipeline(transport, throttle_interval=throttle_ms / 1000.0) as pipeline:
        pipeline.error.connect(errors.append)

        pipeline.refresh()
        await pipeline.wait_idle()
        for _ in range(pages - 1):
            pipeline.next_page(len(pipeline.current_values))
            await pipeline.wait_idle()

        if search_text:
            pipeline.set_search_text(search_text)
            await pipeline.wait_idle()

        return (
            pipeline.current_values,
            pipeline.current_filtered_values,
            errors,
            len(catalog.requests),
        )


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--pages", "-p", default=1, type=click.IntRange(min=1), help="Pages to load.", show_default=True)
@click.option("--page-size", default=None, type=click.IntRange(min=1),
              help="Movies per page (default: MOVIEDB_PAGE_SIZE).")
@click.option("--search", "-s", "search_text", default="", help="Title search applied to the loaded movies.")
@click.option("--throttle-ms", default=0, type=click.IntRange(min=0), show_default=True,
              help="Trigger throttle window in milliseconds.")
@click.option("--cache", "use_cache", is_flag=True,
              help="Serve pages through the Redis page cache (MOVIEDB_REDIS_URL, MOVIEDB_CACHE_TTL).")
@click.option("--clear-cache", is_flag=True, help="Drop cached pages first; implies --cache.")
@click.option(
    "--output", "-o", "output_fmt", default="table",
    type=click.Choice(["table", "json"], case_sensitive=False),
    show_default=True,
)
def browse(
    file: Path,
    pages: int,
    page_size: int | None,
    search_text: str,
    throttle_ms: int,
    use_cache: bool,
    clear_cache: bool,
    output_fmt: str,
) -> None:
    """Page through a catalog file the way the list screen does.

    \b
    Examples:
      moviedb browse popular.json --pages 3
      moviedb browse popular.json --pages 2 --page-size 10 --search "star"
      moviedb browse popular.json --pages 3 --cache
    """
    movies = _load_catalog(file)

    cache = None
    if use_cache or clear_cache:
        from .cache.redis_cache import PageCache

        cache = PageCache(url=settings.redis_url, ttl=settings.cache_ttl)
        if not cache.available:
            err_console.print("[yellow]Redis unavailable, browsing without the page cache.[/yellow]")
        elif clear_cache:
            err_console.print(f"[dim]Cleared {cache.flush()} cached pages[/dim]")

    values, filtered, errors, fetches = asyncio.run(
        _browse(movies, pages, page_size or settings.page_size, search_text, throttle_ms, cache)
    )

    for exc in errors:
        err_console.print(f"[red]Fetch failed:[/red] {exc}")

    shown = filtered if search_text else values
    if output_fmt == "json":
        _echo_movies(shown)
        return

    from .visualization.tables import print_movies_table

    title = f"Search {search_text!r}" if search_text else f"{file.name}"
    print_movies_table(shown, title=title, console=console)
    console.print(f"[dim]{len(values)} movies loaded in {fetches} fetches[/dim]")


if __name__ == "__main__":
    main()
