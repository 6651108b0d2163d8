# ABOUTME: The `audioshelf import` command for scanning and cataloging audiobooks.
# ABOUTME: Scans a directory (or loads a reviewed JSON file) and commits candidates to the DB.

import json as json_lib
from pathlib import Path

import click
from rich.console import Console

from audioshelf.cli.options import build_scan_config, covers_dir_option, db_option, scan_options
from audioshelf.core.candidates import (
    BookCandidate,
    UserDecision,
    candidate_from_dict,
    merge_multipart_candidate,
)
from audioshelf.core.committer import (
    CommitResult,
    PendingDecisionError,
    commit_candidates,
    cover_fn_for,
    reconcile_full_scan,
)
from audioshelf.core.covers import DEFAULT_COVERS_DIR, CoverWriter
from audioshelf.core.scanner import InvalidRootError, scan_directory
from audioshelf.db.catalog import LibraryCatalog
from audioshelf.db.connection import DEFAULT_DB_PATH, open_library

console = Console()


def _load_review_file(review_path: Path) -> list[BookCandidate]:
    """Read candidates from a JSON file written by `audioshelf scan --json`."""
    data = json_lib.loads(review_path.read_text(encoding="utf-8"))
    items = data["candidates"] if isinstance(data, dict) else data
    return [candidate_from_dict(item) for item in items]


def _apply_decision(candidate: BookCandidate, decision: UserDecision) -> BookCandidate:
    if decision is UserDecision.SINGLE_BOOK:
        return merge_multipart_candidate(candidate)
    candidate.user_decision = decision
    return candidate


def _resolve_decisions(
    candidates: list[BookCandidate], multipart: str | None, ask: bool
) -> list[BookCandidate]:
    """Settle undecided multi-.m4b folders from --multipart or interactive prompts."""
    resolved = []
    for candidate in candidates:
        if candidate.needs_decision:
            if multipart is not None:
                candidate = _apply_decision(candidate, UserDecision(multipart))
            elif ask:
                console.print(
                    f"\n[bold]{candidate.path}[/bold] holds {candidate.part_count} .m4b files:"
                )
                for part in candidate.part_paths:
                    console.print(f"  [dim]{part.name}[/dim]")
                choice = click.prompt(
                    "Import as one book or as separate books?",
                    type=click.Choice([UserDecision.SINGLE_BOOK.value, UserDecision.MULTIPLE_BOOKS.value]),
                    default=UserDecision.SINGLE_BOOK.value,
                )
                candidate = _apply_decision(candidate, UserDecision(choice))
        resolved.append(candidate)
    return resolved


def _print_summary(result: CommitResult) -> None:
    parts = []
    if result.inserted:
        parts.append(f"[green]{result.inserted} added[/green]")
    if result.updated:
        parts.append(f"[cyan]{result.updated} updated[/cyan]")
    if result.skipped:
        parts.append(f"[yellow]{result.skipped} skipped[/yellow]")
    if result.errors:
        parts.append(f"[red]{result.errors} error(s)[/red]")
    if result.covers_extracted:
        parts.append(f"{result.covers_extracted} cover(s)")
    if result.marked_missing:
        parts.append(f"[yellow]{result.marked_missing} missing from source[/yellow]")

    console.print(", ".join(parts) if parts else "[dim]Nothing to import.[/dim]")

    failed = [item for item in result.items if item.error]
    if failed:
        console.print(f"\n[yellow]{len(failed)} book(s) could not be imported:[/yellow]")
        for item in failed:
            console.print(f"  [dim]{item.path}:[/dim] {item.error}")

    if result.cover_errors:
        console.print(f"[yellow]{result.cover_errors} cover(s) could not be extracted.[/yellow]")


@click.command("import")
@click.argument("path", required=False, type=click.Path(path_type=Path))
@scan_options
@click.option(
    "--review",
    "review_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Commit candidates from a reviewed JSON file instead of scanning.",
)
@click.option(
    "--multipart",
    type=click.Choice([UserDecision.SINGLE_BOOK.value, UserDecision.MULTIPLE_BOOKS.value]),
    default=None,
    help="How to import folders with several .m4b files: one book, or one book per file.",
)
@click.option(
    "--ask",
    is_flag=True,
    default=False,
    help="Prompt for each folder with several .m4b files.",
)
@click.option(
    "--mark-missing",
    is_flag=True,
    default=False,
    help="Treat this as a full re-scan and flag cataloged books that were not found.",
)
@click.option(
    "--covers/--no-covers",
    default=True,
    help="Extract embedded cover art (default: on).",
)
@covers_dir_option
@db_option
def import_command(
    path: Path | None,
    max_depth: int,
    recursive: bool,
    extensions: str,
    audiobook_extensions: str,
    representative: str,
    workers: int,
    review_path: Path | None,
    multipart: str | None,
    ask: bool,
    mark_missing: bool,
    covers: bool,
    covers_dir: Path | None,
    db_path: Path | None,
) -> None:
    """Scan a directory for audiobooks and catalog them in the library."""
    if path is None and review_path is None:
        raise click.UsageError("Give a PATH to scan or --review FILE.")

    config = build_scan_config(extensions, audiobook_extensions, representative, workers)

    if review_path is not None:
        try:
            candidates = _load_review_file(review_path)
        except (ValueError, KeyError, TypeError) as exc:
            console.print(f"[red]Invalid review file: {exc}[/red]")
            raise SystemExit(1) from exc
    else:
        try:
            scan_result = scan_directory(
                path, recursive=recursive, max_depth=max_depth, config=config
            )
        except InvalidRootError as exc:
            console.print(f"[red]{exc}[/red]")
            raise SystemExit(1) from exc
        candidates = scan_result.candidates
        for warning in scan_result.warnings:
            console.print(f"[dim]{warning}[/dim]")

    if not candidates:
        console.print("[yellow]No audiobooks found.[/yellow]")
        return

    console.print(f"Found [bold]{len(candidates)}[/bold] audiobook candidate(s)\n")
    candidates = _resolve_decisions(candidates, multipart, ask)

    cover_fn = cover_fn_for(CoverWriter(covers_dir or DEFAULT_COVERS_DIR)) if covers else None

    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        catalog = LibraryCatalog(conn)
        commit = reconcile_full_scan if mark_missing else commit_candidates
        result = commit(candidates, catalog, config=config, cover_fn=cover_fn)
    except PendingDecisionError as exc:
        console.print(f"[red]{exc}[/red]")
        for pending in exc.paths:
            console.print(f"  {pending}")
        console.print("[dim]Use --multipart single|multiple or --ask.[/dim]")
        raise SystemExit(1) from exc
    finally:
        conn.close()

    _print_summary(result)
