# ABOUTME: The `audioshelf ls` command for listing cataloged audiobooks.
# ABOUTME: Filters and sorts the catalog with the query engine and prints a Rich table.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from audioshelf.cli.options import db_option
from audioshelf.core.query import BookFilters, BookSort, RatingFilter, query_books
from audioshelf.core.store import BookStatus
from audioshelf.db.catalog import LibraryCatalog
from audioshelf.db.connection import DEFAULT_DB_PATH, open_library
from audioshelf.formatters import format_duration

console = Console()

_STATUS_STYLES = {
    BookStatus.NOT_STARTED: "dim",
    BookStatus.IN_PROGRESS: "yellow",
    BookStatus.FINISHED: "green",
}


def render_rating(rating: int | None) -> str:
    return "★" * rating if rating else "[dim]-[/dim]"


@click.command("ls")
@db_option
@click.option("-s", "--search", default=None, help="Match title, author, series, or narrator.")
@click.option(
    "--status",
    "statuses",
    multiple=True,
    type=click.Choice([s.value for s in BookStatus]),
    help="Only books with this status (repeatable).",
)
@click.option(
    "--rating",
    "rating_filter",
    type=click.Choice([RatingFilter.FULLY_RATED.value, RatingFilter.UNRATED.value]),
    default=None,
    help="Only fully rated or not-yet-rated books.",
)
@click.option(
    "--series",
    "series_key",
    default=None,
    help='Only books in this series ("standalone" for books without one).',
)
@click.option(
    "--sort",
    "sort_spec",
    default="title-asc",
    show_default=True,
    help="FIELD-DIRECTION, e.g. book_rating-desc or series_position-asc.",
)
@click.option(
    "--missing",
    is_flag=True,
    default=False,
    help="Only books no longer found on disk.",
)
def ls(
    db_path: Path | None,
    search: str | None,
    statuses: tuple[str, ...],
    rating_filter: str | None,
    series_key: str | None,
    sort_spec: str,
    missing: bool,
) -> None:
    """List audiobooks in the library catalog."""
    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        records = LibraryCatalog(conn).get_all()
    finally:
        conn.close()

    filters = BookFilters(
        search=search,
        statuses=statuses or None,
        rating_filter=rating_filter,
        series_key=series_key,
    )
    books = query_books(records, filters, BookSort.parse(sort_spec))
    if missing:
        books = [b for b in books if b.missing_from_source]

    if not books:
        if records:
            console.print("[yellow]No matching books.[/yellow]")
        else:
            console.print("[yellow]No books in the library.[/yellow]")
        return

    table = Table()
    table.add_column("ID", style="dim", width=4)
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Narrator")
    table.add_column("Series")
    table.add_column("Length", justify="right")
    table.add_column("Status")
    table.add_column("Rating")

    for book in books:
        series_display = book.series or ""
        if book.series and book.series_position:
            series_display = f"{book.series} #{book.series_position}"
        title = book.title
        if book.missing_from_source:
            title = f"{title} [red](missing)[/red]"

        status = BookStatus(book.status)
        table.add_row(
            str(book.id),
            title,
            book.author or "[dim]unknown[/dim]",
            book.narrator or "",
            series_display,
            format_duration(book.duration_seconds),
            f"[{_STATUS_STYLES[status]}]{status.value}[/{_STATUS_STYLES[status]}]",
            render_rating(book.book_rating),
        )

    console.print(table)
    console.print(f"\n[dim]{len(books)} book(s)[/dim]")
