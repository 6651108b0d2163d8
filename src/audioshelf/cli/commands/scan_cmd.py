# ABOUTME: The `audioshelf scan` command for previewing audiobook candidates.
# ABOUTME: Walks a directory tree and shows what an import would catalog, without writing.

import json as json_lib
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from audioshelf.cli.options import build_scan_config, db_option, scan_options
from audioshelf.core.candidates import candidate_to_dict
from audioshelf.core.scanner import InvalidRootError, ScanResult, mark_existing, scan_directory
from audioshelf.db.catalog import LibraryCatalog
from audioshelf.db.connection import open_library
from audioshelf.formatters import format_duration, format_file_size

console = Console()


@click.command("scan")
@click.argument("path", type=click.Path(path_type=Path))
@scan_options
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    default=False,
    help="Output candidates as JSON (usable as an import review file).",
)
@db_option
def scan(
    path: Path,
    max_depth: int,
    recursive: bool,
    extensions: str,
    audiobook_extensions: str,
    representative: str,
    workers: int,
    json_output: bool,
    db_path: Path | None,
) -> None:
    """Scan a directory tree and list audiobook candidates."""
    config = build_scan_config(extensions, audiobook_extensions, representative, workers)
    try:
        result = scan_directory(path, recursive=recursive, max_depth=max_depth, config=config)
    except InvalidRootError as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc

    if db_path is not None:
        conn = open_library(db_path)
        try:
            mark_existing(result, LibraryCatalog(conn))
        finally:
            conn.close()

    if json_output:
        _print_json(result)
        return

    _print_rich(result)


def _print_json(result: ScanResult) -> None:
    data = {
        "scan_root": str(result.scan_root),
        "scanned_directory_count": result.scanned_directory_count,
        "warnings": result.warnings,
        "candidates": [candidate_to_dict(c) for c in result.candidates],
    }
    click.echo(json_lib.dumps(data, indent=2))


def _print_rich(result: ScanResult) -> None:
    if not result.candidates:
        console.print(
            f"[dim]0 candidate(s) in {result.scanned_directory_count} folder(s) scanned[/dim]"
        )
    else:
        table = Table(title="Audiobook Candidates")
        table.add_column("Type", style="dim")
        table.add_column("Title", style="bold")
        table.add_column("Author")
        table.add_column("Series")
        table.add_column("Duration", justify="right")
        table.add_column("Size", justify="right")
        table.add_column("Notes", style="yellow")

        for candidate in result.candidates:
            series = candidate.series or ""
            if series and candidate.series_position:
                series = f"{series} #{candidate.series_position}"
            notes = list(candidate.warnings)
            if candidate.exists_in_catalog:
                notes.append("in catalog")
            table.add_row(
                candidate.kind.value,
                candidate.title,
                candidate.author or "[dim]unknown[/dim]",
                series,
                format_duration(candidate.duration_seconds),
                format_file_size(candidate.total_size_bytes),
                "; ".join(notes),
            )

        console.print(table)
        console.print(
            f"\n[bold]{result.total_candidates} candidate(s) in "
            f"{result.scanned_directory_count} folder(s) scanned.[/bold]"
        )

    pending = result.pending_decisions
    if pending:
        console.print(
            f"\n[yellow]{len(pending)} folder(s) with multiple .m4b files "
            "need a decision (--multipart single|multiple on import):[/yellow]"
        )
        for candidate in pending:
            console.print(f"  {candidate.path} [{candidate.part_count} parts]")

    if result.warnings:
        console.print(f"\n[yellow]{len(result.warnings)} warning(s):[/yellow]")
        for warning in result.warnings:
            console.print(f"  [dim]{warning}[/dim]")
