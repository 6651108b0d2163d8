# ABOUTME: The `audioshelf needs-rating` command listing finished books awaiting ratings.
# ABOUTME: Shows which books lack a book rating and which narrators are still unrated.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from audioshelf.cli.options import db_option
from audioshelf.core.ratings import needs_rating as find_needs_rating
from audioshelf.db.catalog import LibraryCatalog
from audioshelf.db.connection import DEFAULT_DB_PATH, open_library

console = Console()


@click.command("needs-rating")
@db_option
def needs_rating(db_path: Path | None) -> None:
    """List finished books that are not fully rated."""
    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        items = find_needs_rating(LibraryCatalog(conn).get_all())
    finally:
        conn.close()

    if not items:
        console.print("[green]All finished books are rated.[/green]")
        return

    table = Table()
    table.add_column("ID", style="dim", width=4)
    table.add_column("Title", style="bold")
    table.add_column("Book rating")
    table.add_column("Unrated narrators")
    for item in items:
        table.add_row(
            str(item.record.id),
            item.record.title,
            "[yellow]missing[/yellow]" if item.needs_book_rating else "ok",
            ", ".join(item.unrated_narrators),
        )

    console.print(table)
    console.print(f"\n[dim]{len(items)} book(s) need rating[/dim]")
