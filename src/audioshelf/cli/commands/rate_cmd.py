# ABOUTME: The `audioshelf rate` command for updating a book's user fields.
# ABOUTME: Sets status, book rating, narrator ratings, tags, and notes by book ID.

from pathlib import Path

import click
from rich.console import Console

from audioshelf.cli.options import db_option
from audioshelf.core.query import narrator_names
from audioshelf.core.store import BookStatus
from audioshelf.db.catalog import LibraryCatalog
from audioshelf.db.connection import DEFAULT_DB_PATH, open_library

console = Console()


def _parse_narrator_rating(value: str) -> tuple[str, int | None]:
    """Parse NAME=RATING, where an empty RATING clears the narrator's rating."""
    name, sep, rating = value.rpartition("=")
    if not sep or not name.strip():
        raise click.BadParameter(f"Expected NAME=RATING, got {value!r}")
    if not rating.strip():
        return name.strip(), None
    try:
        return name.strip(), int(rating)
    except ValueError as exc:
        raise click.BadParameter(f"Rating for {name.strip()!r} must be a number") from exc


@click.command("rate")
@click.argument("book_id", type=int)
@db_option
@click.option("--status", type=click.Choice([s.value for s in BookStatus]), default=None)
@click.option("--rating", "book_rating", type=click.IntRange(1, 5), default=None)
@click.option("--clear-rating", is_flag=True, default=False, help="Remove the book rating.")
@click.option(
    "--narrator",
    "narrator_ratings",
    multiple=True,
    help='Rate a narrator as NAME=RATING (repeatable; "NAME=" clears).',
)
@click.option("--tags", default=None, help="Free-form tags (empty string clears).")
@click.option("--notes", default=None, help="Free-form notes (empty string clears).")
def rate(
    book_id: int,
    db_path: Path | None,
    status: str | None,
    book_rating: int | None,
    clear_rating: bool,
    narrator_ratings: tuple[str, ...],
    tags: str | None,
    notes: str | None,
) -> None:
    """Set status, ratings, tags, or notes for a book."""
    if clear_rating and book_rating is not None:
        raise click.UsageError("--rating and --clear-rating are mutually exclusive.")

    parsed = [_parse_narrator_rating(v) for v in narrator_ratings]

    fields: dict[str, object] = {}
    if status is not None:
        fields["status"] = status
    if book_rating is not None:
        fields["book_rating"] = book_rating
    elif clear_rating:
        fields["book_rating"] = None
    if tags is not None:
        fields["tags"] = tags or None
    if notes is not None:
        fields["notes"] = notes or None

    if not fields and not parsed:
        console.print("[yellow]Nothing to update.[/yellow]")
        return

    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        catalog = LibraryCatalog(conn)
        record = catalog.get_by_id(book_id)
        if record is None:
            console.print(f"[red]Book {book_id} not found.[/red]")
            raise SystemExit(1)
        known = narrator_names(record.narrator)
        unknown = [name for name, _ in parsed if name not in known]
        if unknown:
            listed = ", ".join(known) or "none"
            console.print(
                f"[red]Not a narrator of this book: {', '.join(unknown)}. "
                f"Narrators: {listed}.[/red]"
            )
            raise SystemExit(1)
        catalog.set_user_fields(book_id, **fields)
        for name, rating in parsed:
            catalog.set_narrator_rating(book_id, name, rating)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc
    finally:
        conn.close()

    console.print(f"Updated [bold]{record.title}[/bold].")
