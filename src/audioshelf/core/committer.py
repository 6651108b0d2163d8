# ABOUTME: Reconciliation of reviewed book candidates into the catalog.
# ABOUTME: Upserts by path, expands multi-part folders, extracts covers, flags missing books.

import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from audioshelf.core.candidates import (
    BookCandidate,
    ScanConfig,
    UserDecision,
    split_multipart_candidate,
)
from audioshelf.core.covers import CoverWriteError, CoverWriter, extract_cover_for_book
from audioshelf.core.store import RecordStore
from audioshelf.formats.audio import MutagenTagExtractor, TagExtractor

logger = logging.getLogger(__name__)

# Callback that stores a book's cover: (record_id, book_path) -> relative path or None
CoverFn = Callable[[int, Path], str | None]


class PendingDecisionError(Exception):
    """Raised when ambiguous multi-part candidates reach commit without a decision."""

    def __init__(self, paths: list[Path]) -> None:
        self.paths = paths
        super().__init__(
            f"{len(paths)} folder(s) with multiple .m4b files require a user "
            "decision before import"
        )


@dataclass
class CommitItemResult:
    """Outcome for one reviewed candidate."""

    path: Path
    status: str = "skipped"
    record_ids: list[int] = field(default_factory=list)
    covers_extracted: int = 0
    cover_error: str | None = None
    error: str | None = None


@dataclass
class CommitResult:
    """Summary of a commit. Per-item failures are counted, never raised."""

    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    covers_extracted: int = 0
    cover_errors: int = 0
    marked_missing: int = 0
    items: list[CommitItemResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.items)


def cover_fn_for(writer: CoverWriter) -> CoverFn:
    """Build a cover callback that extracts embedded art and stores it with writer."""

    def cover_fn(record_id: int, book_path: Path) -> str | None:
        return extract_cover_for_book(record_id, book_path, writer)

    return cover_fn


def _check_decisions(candidates: list[BookCandidate]) -> None:
    pending = [c.path for c in candidates if c.needs_decision]
    if pending:
        raise PendingDecisionError(pending)


def _store_cover(
    store: RecordStore,
    record_id: int,
    book: BookCandidate,
    cover_fn: CoverFn | None,
    item: CommitItemResult,
    result: CommitResult,
) -> None:
    """Extract the cover when the metadata says one is embedded. Failures are non-fatal."""
    if cover_fn is None or not book.has_embedded_cover:
        return
    try:
        relative_path = cover_fn(record_id, book.path)
    except (CoverWriteError, OSError) as exc:
        logger.warning("Error extracting cover for book %s: %s", record_id, exc)
        item.cover_error = str(exc)
        result.cover_errors += 1
        return

    if relative_path is None:
        return
    store.set_cover_path(record_id, relative_path)
    item.covers_extracted += 1
    result.covers_extracted += 1


def _upsert(
    store: RecordStore,
    book: BookCandidate,
    cover_fn: CoverFn | None,
    item: CommitItemResult,
    result: CommitResult,
) -> bool:
    """Upsert one book and its cover. Returns True if a record was inserted."""
    outcome = store.upsert(book.path, book.record_fields())
    item.record_ids.append(outcome.id)
    if outcome.was_insert:
        result.inserted += 1
    else:
        result.updated += 1
    _store_cover(store, outcome.id, book, cover_fn, item, result)
    return outcome.was_insert


def commit_candidates(
    candidates: list[BookCandidate],
    store: RecordStore,
    *,
    extractor: TagExtractor | None = None,
    config: ScanConfig | None = None,
    cover_fn: CoverFn | None = None,
) -> CommitResult:
    """Commit reviewed candidates to the catalog.

    The whole batch is rejected up front if any ambiguous candidate is still
    undecided. Otherwise each selected candidate is upserted by path; a
    folder resolved as multiple books is expanded into one record per part.
    Per-item failures are recorded on the result and processing continues.

    Args:
        candidates: Reviewed candidates, typically from scan_directory.
        store: The record store to write to.
        extractor: Tag reader used to re-read parts of split folders.
        config: Scan configuration used when re-reading parts.
        cover_fn: Optional callback that stores a cover for a new record.

    Returns:
        CommitResult with inserted/updated/skipped/error counts.

    Raises:
        PendingDecisionError: If any ambiguous candidate has no decision.
    """
    _check_decisions(candidates)

    extractor = extractor or MutagenTagExtractor()
    result = CommitResult()

    for candidate in candidates:
        item = CommitItemResult(path=candidate.path)
        result.items.append(item)

        if not candidate.selected:
            result.skipped += 1
            continue

        try:
            if (
                candidate.ambiguous_multi_part
                and candidate.user_decision is UserDecision.MULTIPLE_BOOKS
            ):
                parts = split_multipart_candidate(candidate, extractor, config)
                inserted = [_upsert(store, part, cover_fn, item, result) for part in parts]
                item.status = "inserted" if any(inserted) else "updated"
            else:
                inserted = _upsert(store, candidate, cover_fn, item, result)
                item.status = "inserted" if inserted else "updated"
        except (OSError, sqlite3.Error, ValueError) as exc:
            logger.warning("Error processing book %s: %s", candidate.path, exc)
            item.status = "error"
            item.error = str(exc)
            result.errors += 1

    return result


def reconcile_full_scan(
    candidates: list[BookCandidate],
    store: RecordStore,
    *,
    extractor: TagExtractor | None = None,
    config: ScanConfig | None = None,
    cover_fn: CoverFn | None = None,
) -> CommitResult:
    """Commit a complete re-scan and flag cataloged books that were not seen.

    Every candidate path counts as observed, including unselected candidates
    and the individual parts of multi-part folders.
    """
    result = commit_candidates(
        candidates, store, extractor=extractor, config=config, cover_fn=cover_fn
    )

    observed: set[Path] = set()
    for candidate in candidates:
        observed.add(candidate.path)
        observed.update(candidate.part_paths)

    result.marked_missing = store.mark_missing(observed)
    logger.info("%d cataloged book(s) missing from source", result.marked_missing)
    return result
