# ABOUTME: The `audioshelf covers` command group for cover art maintenance.
# ABOUTME: Extracts embedded covers for books already in the catalog.

from pathlib import Path

import click
from rich.console import Console

from audioshelf.cli.options import covers_dir_option, db_option
from audioshelf.core.covers import DEFAULT_COVERS_DIR, CoverWriter, extract_covers
from audioshelf.db.catalog import LibraryCatalog
from audioshelf.db.connection import DEFAULT_DB_PATH, open_library

console = Console()


@click.group("covers")
def covers() -> None:
    """Manage cover images for cataloged books."""


@covers.command("extract")
@click.argument("book_ids", nargs=-1, type=int)
@click.option("--overwrite", is_flag=True, help="Replace covers that were already extracted.")
@db_option
@covers_dir_option
def covers_extract(
    book_ids: tuple[int, ...],
    overwrite: bool,
    db_path: Path | None,
    covers_dir: Path | None,
) -> None:
    """Extract embedded covers for the given books, or every book when none are given."""
    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        catalog = LibraryCatalog(conn)
        if book_ids:
            records = []
            for book_id in book_ids:
                record = catalog.get_by_id(book_id)
                if record is None:
                    console.print(f"[red]Book {book_id} not found.[/red]")
                    raise SystemExit(1)
                records.append(record)
        else:
            records = catalog.get_all()

        writer = CoverWriter(covers_dir or DEFAULT_COVERS_DIR)
        result = extract_covers(catalog, records, writer, overwrite=overwrite)
    finally:
        conn.close()

    console.print(
        f"Processed {result.processed} book(s): {result.extracted} extracted, "
        f"{result.skipped} skipped, {result.errors} error(s)"
    )
