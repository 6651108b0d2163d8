# ABOUTME: Integration tests for the scan -> review -> commit -> query pipeline.
# ABOUTME: Uses a real temp directory tree and SQLite catalog with a scripted tag extractor.

import shutil
from pathlib import Path

import pytest

from audioshelf.core.candidates import UserDecision, merge_multipart_candidate
from audioshelf.core.committer import (
    PendingDecisionError,
    commit_candidates,
    reconcile_full_scan,
)
from audioshelf.core.query import BookFilters, query_books
from audioshelf.core.scanner import scan_directory
from audioshelf.core.series import get_series
from audioshelf.core.store import BookStatus


def _decide(candidates, decision: UserDecision):
    resolved = []
    for candidate in candidates:
        if candidate.needs_decision:
            if decision is UserDecision.SINGLE_BOOK:
                candidate = merge_multipart_candidate(candidate)
            else:
                candidate.user_decision = decision
        resolved.append(candidate)
    return resolved


class TestImportPipeline:
    """Scanning a library and committing it to the catalog."""

    def test_undecided_scan_cannot_be_committed(self, audiobook_tree: Path, extractor, catalog):
        result = scan_directory(audiobook_tree, extractor=extractor)

        with pytest.raises(PendingDecisionError):
            commit_candidates(result.candidates, catalog, extractor=extractor)

        assert catalog.get_all() == []

    def test_full_import_with_split(self, audiobook_tree: Path, extractor, catalog):
        dune = audiobook_tree / "Frank Herbert" / "Dune"
        extractor.set(
            dune / "02.mp3", title="Dune", author="Frank Herbert",
            narrator="Scott Brick", duration_seconds=40000,
        )
        extractor.set(dune / "01.mp3", duration_seconds=35600)

        scan = scan_directory(audiobook_tree, extractor=extractor)
        candidates = _decide(scan.candidates, UserDecision.MULTIPLE_BOOKS)
        result = commit_candidates(candidates, catalog, extractor=extractor)

        assert result.errors == 0
        assert result.inserted == 5
        records = catalog.get_all()
        titles = sorted(r.title for r in records)
        assert titles == ["Dune", "The Final Empire", "loose", "part1", "part2"]

        dune_record = catalog.get_by_path(dune)
        assert dune_record.author == "Frank Herbert"
        assert dune_record.duration_seconds == 75600
        assert dune_record.file_count == 2

        mistborn = get_series(records, "Mistborn")
        assert mistborn.book_count == 1
        assert mistborn.books[0].series_position == "1"

    def test_reimport_updates_and_preserves_user_fields(
        self, audiobook_tree: Path, extractor, catalog
    ):
        scan = scan_directory(audiobook_tree, extractor=extractor)
        commit_candidates(
            _decide(scan.candidates, UserDecision.SINGLE_BOOK), catalog, extractor=extractor
        )
        saga = catalog.get_by_path(audiobook_tree / "Saga")
        catalog.set_user_fields(saga.id, status="finished", book_rating=5)

        rescan = scan_directory(audiobook_tree, extractor=extractor)
        result = commit_candidates(
            _decide(rescan.candidates, UserDecision.SINGLE_BOOK), catalog, extractor=extractor
        )

        assert result.inserted == 0
        assert result.updated == 4
        saga = catalog.get_by_path(audiobook_tree / "Saga")
        assert saga.status is BookStatus.FINISHED
        assert saga.book_rating == 5
        assert saga.file_count == 2

    def test_missing_detection_round_trip(self, audiobook_tree: Path, extractor, catalog):
        scan = scan_directory(audiobook_tree, extractor=extractor)
        reconcile_full_scan(
            _decide(scan.candidates, UserDecision.SINGLE_BOOK), catalog, extractor=extractor
        )

        moved = audiobook_tree.parent / "Dune (moved)"
        shutil.move(str(audiobook_tree / "Frank Herbert" / "Dune"), moved)
        rescan = scan_directory(audiobook_tree, extractor=extractor)
        result = reconcile_full_scan(
            _decide(rescan.candidates, UserDecision.SINGLE_BOOK), catalog, extractor=extractor
        )

        assert result.marked_missing == 1
        flagged = [r for r in catalog.get_all() if r.missing_from_source]
        assert [r.title for r in flagged] == ["Dune"]

        shutil.move(str(moved), audiobook_tree / "Frank Herbert" / "Dune")
        rescan = scan_directory(audiobook_tree, extractor=extractor)
        result = reconcile_full_scan(
            _decide(rescan.candidates, UserDecision.SINGLE_BOOK), catalog, extractor=extractor
        )

        assert result.marked_missing == 0
        assert not any(r.missing_from_source for r in catalog.get_all())

    def test_query_after_import(self, audiobook_tree: Path, extractor, catalog):
        scan = scan_directory(audiobook_tree, extractor=extractor)
        commit_candidates(
            _decide(scan.candidates, UserDecision.SINGLE_BOOK), catalog, extractor=extractor
        )

        records = catalog.get_all()
        found = query_books(records, BookFilters(search="empire"))
        assert [r.title for r in found] == ["The Final Empire"]

        standalone = query_books(records, BookFilters(series_key="standalone"))
        assert [r.title for r in standalone] == ["Dune", "loose", "Saga"]
