# ABOUTME: The `audioshelf series` command group for series views and batch rating.
# ABOUTME: Lists series with completion/rating stats, shows one series, and applies ratings.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from audioshelf.cli.commands.ls_cmd import render_rating
from audioshelf.cli.options import db_option
from audioshelf.core.query import RatingFilter
from audioshelf.core.ratings import ApplyMode, batch_apply_series
from audioshelf.core.series import SeriesFilters, SeriesSort, get_series, series_stats
from audioshelf.core.store import BookStatus
from audioshelf.db.catalog import LibraryCatalog
from audioshelf.db.connection import DEFAULT_DB_PATH, open_library
from audioshelf.formatters import format_duration

console = Console()


@click.group("series")
def series() -> None:
    """Browse series and apply ratings across them."""


@series.command("ls")
@db_option
@click.option("-s", "--search", default=None, help="Match series name or any book in it.")
@click.option(
    "--rating",
    "rating_filter",
    type=click.Choice([f.value for f in RatingFilter]),
    default=None,
    help="Rating coverage of the series' books.",
)
@click.option(
    "--completion",
    type=click.Choice([s.value for s in BookStatus]),
    default=None,
    help="Only series with this overall status.",
)
@click.option(
    "--sort",
    "sort_spec",
    default=None,
    help="FIELD-DIRECTION, e.g. completion_percent-desc (default: name, standalone last).",
)
def series_ls(
    db_path: Path | None,
    search: str | None,
    rating_filter: str | None,
    completion: str | None,
    sort_spec: str | None,
) -> None:
    """List series with completion and rating statistics."""
    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        records = LibraryCatalog(conn).get_all()
    finally:
        conn.close()

    filters = SeriesFilters(search=search, rating_filter=rating_filter, completion_status=completion)
    sort = SeriesSort.parse(sort_spec) if sort_spec else None
    groups = series_stats(records, filters, sort)

    if not groups:
        console.print("[yellow]No series in the library.[/yellow]")
        return

    table = Table()
    table.add_column("Series", style="bold")
    table.add_column("Key", style="dim")
    table.add_column("Books", justify="right")
    table.add_column("Length", justify="right")
    table.add_column("Done", justify="right")
    table.add_column("Rated", justify="right")
    table.add_column("Avg", justify="right")
    table.add_column("Status")

    for group in groups:
        avg = f"{group.avg_book_rating:.1f}" if group.avg_book_rating is not None else "-"
        table.add_row(
            group.name,
            group.key,
            str(group.book_count),
            format_duration(group.total_duration_seconds),
            f"{group.completion_percent:.0f}%",
            f"{group.rated_count}/{group.book_count}",
            avg,
            group.completion_status.value,
        )

    console.print(table)
    console.print(f"\n[dim]{len(groups)} series[/dim]")


@series.command("show")
@click.argument("key")
@db_option
def series_show(key: str, db_path: Path | None) -> None:
    """Show the books of one series in reading order."""
    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        records = LibraryCatalog(conn).get_all()
    finally:
        conn.close()

    group = get_series(records, key)
    if group is None:
        console.print(f"[red]Series '{key}' not found.[/red]")
        raise SystemExit(1)

    console.print(
        f"[bold]{group.name}[/bold]  {group.book_count} book(s), "
        f"{format_duration(group.total_duration_seconds)}, "
        f"{group.completion_percent:.0f}% finished"
    )

    table = Table()
    table.add_column("#", justify="right")
    table.add_column("ID", style="dim", width=4)
    table.add_column("Title", style="bold")
    table.add_column("Narrator")
    table.add_column("Status")
    table.add_column("Rating")
    for book in group.books:
        table.add_row(
            book.series_position or "",
            str(book.id),
            book.title,
            book.narrator or "",
            BookStatus(book.status).value,
            render_rating(book.book_rating),
        )
    console.print(table)


@series.command("apply")
@click.argument("key")
@db_option
@click.option("--status", type=click.Choice([s.value for s in BookStatus]), default=None)
@click.option("--rating", "book_rating", type=click.IntRange(1, 5), default=None)
@click.option("--narrator-rating", type=click.IntRange(1, 5), default=None)
@click.option(
    "--overwrite",
    is_flag=True,
    default=False,
    help="Replace existing values instead of only filling unset ones.",
)
def series_apply(
    key: str,
    db_path: Path | None,
    status: str | None,
    book_rating: int | None,
    narrator_rating: int | None,
    overwrite: bool,
) -> None:
    """Apply a status or ratings to every book in a series."""
    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        catalog = LibraryCatalog(conn)
        result = batch_apply_series(
            catalog,
            catalog.get_all(),
            key,
            status=status,
            book_rating=book_rating,
            narrator_rating=narrator_rating,
            mode=ApplyMode.OVERWRITE if overwrite else ApplyMode.MISSING_ONLY,
        )
    except (ValueError, LookupError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc
    finally:
        conn.close()

    console.print(
        f"Updated {result.books} book(s): {result.statuses_set} status, "
        f"{result.book_ratings_set} book rating(s), "
        f"{result.narrator_ratings_set} narrator rating(s)."
    )
