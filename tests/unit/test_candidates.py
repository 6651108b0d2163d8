# ABOUTME: Unit tests for book candidate builders.
# ABOUTME: Covers single files, multi-file folders, ambiguous .m4b folders, split and merge.

from pathlib import Path

import pytest

from audioshelf.core.candidates import (
    DECISION_REQUIRED_SUFFIX,
    SHORT_DURATION_WARNING,
    SMALL_FILE_WARNING,
    BookCandidate,
    CandidateKind,
    RepresentativePolicy,
    ScanConfig,
    UserDecision,
    build_folder_candidate,
    build_single_file_candidate,
    candidate_from_dict,
    candidate_to_dict,
    merge_multipart_candidate,
    split_multipart_candidate,
)


class TestSingleFileCandidate:
    """build_single_file_candidate should describe one audio file."""

    def test_non_audio_returns_none(self, tmp_path: Path, extractor):
        path = tmp_path / "cover.jpg"
        path.write_bytes(b"jpg")
        assert build_single_file_candidate(path, extractor) is None

    def test_uses_tags(self, tmp_path: Path, extractor, audio_file):
        path = audio_file(tmp_path / "dune.m4b")
        extractor.set(
            path, title="Dune", author="Frank Herbert", narrator="Scott Brick",
            duration_seconds=75600, has_cover=True,
        )

        candidate = build_single_file_candidate(path, extractor)

        assert candidate.kind is CandidateKind.SINGLE_FILE
        assert candidate.title == "Dune"
        assert candidate.author == "Frank Herbert"
        assert candidate.narrator == "Scott Brick"
        assert candidate.duration_seconds == 75600
        assert candidate.has_embedded_cover is True
        assert candidate.file_count == 1
        assert candidate.total_size_bytes == 1024

    def test_title_falls_back_to_name_heuristics(self, tmp_path: Path, extractor, audio_file):
        path = audio_file(tmp_path / "Mistborn - Book 2 - The Well of Ascension.m4b")

        candidate = build_single_file_candidate(path, extractor)

        assert candidate.title == "The Well of Ascension"
        assert candidate.series == "Mistborn"
        assert candidate.series_position == "2"

    def test_tag_series_wins_over_name(self, tmp_path: Path, extractor, audio_file):
        path = audio_file(tmp_path / "Mistborn - Book 2 - Well.m4b")
        extractor.set(path, series="The Mistborn Saga", series_position="2.0")

        candidate = build_single_file_candidate(path, extractor)

        assert candidate.series == "The Mistborn Saga"
        assert candidate.series_position == "2.0"

    def test_short_and_small_warnings(self, tmp_path: Path, extractor, audio_file):
        path = audio_file(tmp_path / "sample.mp3", 100)
        extractor.set(path, duration_seconds=120)

        candidate = build_single_file_candidate(path, extractor)

        assert SHORT_DURATION_WARNING in candidate.warnings
        assert SMALL_FILE_WARNING in candidate.warnings

    def test_no_warnings_above_thresholds(self, tmp_path: Path, extractor, audio_file):
        path = audio_file(tmp_path / "book.m4b", 2000)
        extractor.set(path, duration_seconds=36000)
        config = ScanConfig(small_file_bytes=1000)

        candidate = build_single_file_candidate(path, extractor, config)

        assert candidate.warnings == []

    def test_unknown_duration_is_not_short(self, tmp_path: Path, extractor, audio_file):
        path = audio_file(tmp_path / "book.m4b")
        candidate = build_single_file_candidate(path, extractor)
        assert SHORT_DURATION_WARNING not in candidate.warnings


class TestFolderCandidate:
    """build_folder_candidate should resolve one book per folder."""

    def test_empty_file_list_returns_none(self, tmp_path: Path, extractor):
        assert build_folder_candidate(tmp_path, [], extractor) is None

    def test_largest_file_supplies_metadata(self, tmp_path: Path, extractor, audio_file):
        book = tmp_path / "Dune"
        small = audio_file(book / "01.mp3", 100)
        large = audio_file(book / "02.mp3", 500)
        extractor.set(small, title="Chapter 1", author="Wrong", duration_seconds=600)
        extractor.set(large, title="Dune", author="Frank Herbert", duration_seconds=1200)

        candidate = build_folder_candidate(book, [large, small], extractor)

        assert candidate.kind is CandidateKind.FOLDER
        assert candidate.path == book
        assert candidate.title == "Dune"
        assert candidate.author == "Frank Herbert"
        assert candidate.duration_seconds == 1800
        assert candidate.total_size_bytes == 600
        assert candidate.file_count == 2
        assert candidate.ambiguous_multi_part is False

    def test_size_tie_goes_to_first_by_name(self, tmp_path: Path, extractor, audio_file):
        book = tmp_path / "Book"
        a = audio_file(book / "a.mp3", 300)
        b = audio_file(book / "b.mp3", 300)
        extractor.set(a, author="First")
        extractor.set(b, author="Second")

        candidate = build_folder_candidate(book, [b, a], extractor)

        assert candidate.author == "First"

    def test_first_policy(self, tmp_path: Path, extractor, audio_file):
        book = tmp_path / "Book"
        a = audio_file(book / "a.mp3", 10)
        b = audio_file(book / "b.mp3", 999)
        extractor.set(a, author="First")
        extractor.set(b, author="Largest")
        config = ScanConfig(representative_policy=RepresentativePolicy.FIRST)

        candidate = build_folder_candidate(book, [a, b], extractor, config)

        assert candidate.author == "First"

    def test_no_durations_is_unknown(self, tmp_path: Path, extractor, audio_file):
        book = tmp_path / "Book"
        files = [audio_file(book / "a.mp3"), audio_file(book / "b.mp3")]
        candidate = build_folder_candidate(book, files, extractor)
        assert candidate.duration_seconds is None

    def test_single_m4b_is_authoritative(self, tmp_path: Path, extractor, audio_file):
        book = tmp_path / "Dune"
        m4b = audio_file(book / "dune.m4b", 100)
        extra = audio_file(book / "bonus.mp3", 5000)
        extractor.set(m4b, title="Dune", duration_seconds=75600)
        extractor.set(extra, title="Interview", duration_seconds=900)

        candidate = build_folder_candidate(book, [m4b, extra], extractor)

        assert candidate.title == "Dune"
        assert candidate.duration_seconds == 75600
        assert candidate.file_count == 2
        assert candidate.total_size_bytes == 5100

    def test_single_m4b_without_duration_sums_all(self, tmp_path: Path, extractor, audio_file):
        book = tmp_path / "Dune"
        m4b = audio_file(book / "dune.m4b")
        extra = audio_file(book / "bonus.mp3")
        extractor.set(extra, duration_seconds=900)

        candidate = build_folder_candidate(book, [m4b, extra], extractor)

        assert candidate.duration_seconds == 900

    def test_multiple_m4b_is_ambiguous(self, tmp_path: Path, extractor, audio_file):
        book = tmp_path / "Saga"
        p2 = audio_file(book / "part2.m4b")
        p1 = audio_file(book / "part1.m4b")
        extractor.set(p1, title="Saga Part 1", author="Author", duration_seconds=100)
        extractor.set(p2, title="Saga Part 2", duration_seconds=200)

        candidate = build_folder_candidate(book, [p2, p1], extractor)

        assert candidate.ambiguous_multi_part is True
        assert candidate.part_paths == [p1, p2]
        assert candidate.part_count == 2
        assert candidate.title == "Saga Part 1"
        assert candidate.author == "Author"
        assert candidate.duration_seconds == 300
        assert candidate.user_decision is UserDecision.UNSET
        assert candidate.needs_decision is True
        assert f"Multiple .m4b files (2): {DECISION_REQUIRED_SUFFIX}" in candidate.warnings

    def test_name_heuristics_apply_to_folder_name(self, tmp_path: Path, extractor, audio_file):
        book = tmp_path / "Stormlight - 01 - The Way of Kings"
        files = [audio_file(book / "01.mp3")]

        candidate = build_folder_candidate(book, files, extractor)

        assert candidate.title == "The Way of Kings"
        assert candidate.series == "Stormlight"
        assert candidate.series_position == "01"

    def test_parallel_extraction_keeps_order(self, tmp_path: Path, extractor, audio_file):
        book = tmp_path / "Book"
        files = [audio_file(book / f"{i:02d}.mp3", 100 + i) for i in range(6)]
        for i, path in enumerate(files):
            extractor.set(path, author=f"Author {i}", duration_seconds=10)

        candidate = build_folder_candidate(book, files, extractor, ScanConfig(workers=4))

        assert candidate.author == "Author 5"
        assert candidate.duration_seconds == 60


@pytest.fixture
def ambiguous(tmp_path: Path, extractor, audio_file) -> BookCandidate:
    book = tmp_path / "Saga"
    parts = [audio_file(book / "part1.m4b"), audio_file(book / "part2.m4b")]
    extractor.set(parts[0], title="Part One", author="Author", narrator="Reader")
    extractor.set(parts[1], title="Part Two", narrator="Other Reader")
    return build_folder_candidate(book, parts, extractor)


class TestSplitAndMerge:
    """Resolving an ambiguous folder as one book or many."""

    def test_split_creates_one_candidate_per_part(self, ambiguous, extractor):
        parts = split_multipart_candidate(ambiguous, extractor)

        assert len(parts) == ambiguous.part_count
        assert [p.path for p in parts] == ambiguous.part_paths
        assert all(p.kind is CandidateKind.SINGLE_FILE for p in parts)
        assert [p.title for p in parts] == ["Part One", "Part Two"]

    def test_split_parts_inherit_missing_fields(self, ambiguous, extractor):
        parts = split_multipart_candidate(ambiguous, extractor)

        assert parts[1].author == "Author"
        assert parts[1].narrator == "Other Reader"

    def test_split_without_parts_returns_candidate(self, tmp_path: Path, extractor):
        candidate = BookCandidate(path=tmp_path, kind=CandidateKind.FOLDER, title="X")
        assert split_multipart_candidate(candidate, extractor) == [candidate]

    def test_merge_resolves_decision(self, ambiguous):
        merged = merge_multipart_candidate(ambiguous)

        assert merged.user_decision is UserDecision.SINGLE_BOOK
        assert merged.needs_decision is False
        assert not any(DECISION_REQUIRED_SUFFIX in w for w in merged.warnings)
        assert merged.path == ambiguous.path
        assert ambiguous.needs_decision is True


class TestCandidateSerialization:
    """JSON form used for review files."""

    def test_round_trip(self, ambiguous):
        ambiguous.selected = False
        data = candidate_to_dict(ambiguous)

        assert data["kind"] == "Folder"
        assert data["part_count"] == 2
        assert data["user_decision"] == "unset"

        restored = candidate_from_dict(data)
        assert restored == ambiguous

    def test_missing_required_field(self):
        with pytest.raises(ValueError, match="title"):
            candidate_from_dict({"path": "/books/x"})

    def test_relative_paths_are_resolved(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)

        restored = candidate_from_dict(
            {"path": "Saga", "title": "Saga", "part_paths": ["Saga/part1.m4b"]}
        )

        assert restored.path == tmp_path / "Saga"
        assert restored.part_paths == [tmp_path / "Saga" / "part1.m4b"]

    def test_record_fields(self, ambiguous):
        fields = ambiguous.record_fields()
        assert fields["kind"] == "Folder"
        assert set(fields) >= {"title", "author", "duration_seconds", "has_embedded_cover"}
        assert "user_decision" not in fields
