# ABOUTME: The `audioshelf info` command for displaying a single catalog record.
# ABOUTME: Shows descriptive metadata, user fields, and per-narrator ratings by ID.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from audioshelf.cli.commands.ls_cmd import render_rating
from audioshelf.cli.options import db_option
from audioshelf.core.query import narrator_names
from audioshelf.db.catalog import LibraryCatalog
from audioshelf.db.connection import DEFAULT_DB_PATH, open_library
from audioshelf.formatters import format_duration, format_file_size

console = Console()


@click.command("info")
@click.argument("book_id", type=int)
@db_option
def info(book_id: int, db_path: Path | None) -> None:
    """Show detailed metadata for a book by ID."""
    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        record = LibraryCatalog(conn).get_by_id(book_id)
    finally:
        conn.close()

    if record is None:
        console.print(f"[red]Book {book_id} not found.[/red]")
        raise SystemExit(1)

    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("Field", style="bold", width=14)
    table.add_column("Value")

    table.add_row("ID", str(record.id))
    table.add_row("Title", record.title)
    table.add_row("Author", record.author or "unknown")
    if record.narrator:
        table.add_row("Narrator", record.narrator)
    if record.series:
        series_str = record.series
        if record.series_position:
            series_str = f"{record.series} #{record.series_position}"
        table.add_row("Series", series_str)
    table.add_row("Length", format_duration(record.duration_seconds))
    table.add_row("Size", format_file_size(record.total_size_bytes))
    table.add_row("Files", str(record.file_count or 0))
    table.add_row("Kind", record.kind)
    table.add_row("Status", record.status.value)
    table.add_row("Rating", render_rating(record.book_rating))
    if record.tags:
        table.add_row("Tags", record.tags)
    if record.notes:
        table.add_row("Notes", record.notes)
    table.add_row("Path", str(record.path))
    if record.missing_from_source:
        table.add_row("", "[red]missing from source[/red]")
    if record.cover_image_path:
        table.add_row("Cover", record.cover_image_path)
    table.add_row("Source", record.source.value)
    table.add_row("Added", record.date_added)
    table.add_row("Updated", record.date_updated)

    console.print(table)

    names = narrator_names(record.narrator)
    if names:
        console.print("\n[bold]Narrator ratings[/bold]")
        for name in names:
            console.print(f"  {name}: {render_rating(record.narrator_ratings.get(name))}")
