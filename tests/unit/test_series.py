# ABOUTME: Unit tests for the series aggregation engine.
# ABOUTME: Validates per-series statistics, cover selection, filters, and sorting.

import pytest

from audioshelf.core.query import RatingFilter
from audioshelf.core.series import (
    SeriesFilters,
    SeriesSort,
    SeriesSortField,
    get_series,
    select_cover,
    series_stats,
)
from audioshelf.core.store import BookStatus


@pytest.fixture
def library(make_record):
    """Three Mistborn books, one Dune book, and two standalones."""
    return [
        make_record(
            "The Well of Ascension", series="Mistborn", series_position="2",
            status=BookStatus.FINISHED, book_rating=4, duration_seconds=3600,
        ),
        make_record(
            "The Final Empire", series="Mistborn", series_position="1",
            status=BookStatus.FINISHED, book_rating=5, duration_seconds=7200,
        ),
        make_record(
            "The Hero of Ages", series="Mistborn", series_position="3",
            status=BookStatus.IN_PROGRESS, duration_seconds=None,
        ),
        make_record("Dune", series="Dune", series_position="1", book_rating=3),
        make_record("Project Hail Mary", status=BookStatus.FINISHED, book_rating=5),
        make_record("Elantris", series=""),
    ]


class TestSeriesStats:
    """series_stats should group by exact series name with derived statistics."""

    def test_groups_sorted_by_name_standalone_last(self, library):
        groups = series_stats(library)
        assert [g.key for g in groups] == ["Dune", "Mistborn", "standalone"]
        assert groups[-1].name == "Standalone Books"
        assert groups[-1].is_standalone

    def test_mistborn_statistics(self, library):
        mistborn = get_series(library, "Mistborn")

        assert mistborn.book_count == 3
        assert mistborn.finished_count == 2
        assert mistborn.in_progress_count == 1
        assert mistborn.not_started_count == 0
        assert mistborn.total_duration_seconds == 10800
        assert mistborn.rated_count == 2
        assert mistborn.avg_book_rating == pytest.approx(4.5)
        assert mistborn.unrated_count == 1
        assert mistborn.completion_percent == pytest.approx(200 / 3)
        assert mistborn.completion_status is BookStatus.IN_PROGRESS

    def test_members_in_reading_order(self, library):
        mistborn = get_series(library, "Mistborn")
        assert [b.series_position for b in mistborn.books] == ["1", "2", "3"]

    def test_standalone_members_by_title(self, library):
        standalone = get_series(library, "standalone")
        assert [b.title for b in standalone.books] == ["Elantris", "Project Hail Mary"]

    def test_completion_status(self, make_record):
        finished = [make_record(series="S", status=BookStatus.FINISHED)]
        untouched = [make_record(series="S"), make_record(series="S")]
        assert series_stats(finished)[0].completion_status is BookStatus.FINISHED
        assert series_stats(untouched)[0].completion_status is BookStatus.NOT_STARTED

    def test_no_ratings_average_is_none(self, make_record):
        group = series_stats([make_record(series="S")])[0]
        assert group.avg_book_rating is None
        assert group.rated_count == 0

    def test_idempotent(self, library):
        first = series_stats(library)
        second = series_stats(library)
        assert first == second

    def test_unknown_series(self, library):
        assert get_series(library, "Wheel of Time") is None

    def test_series_names_are_exact(self, make_record):
        records = [make_record(series="Mistborn"), make_record(series="mistborn")]
        assert len(series_stats(records)) == 2


class TestSelectCover:
    """The representative cover comes from the earliest book that has one."""

    def test_lowest_position_with_cover(self, make_record):
        books = [
            make_record(series_position="1"),
            make_record(series_position="3", cover_image_path="covers/3.jpg"),
            make_record(series_position="2", cover_image_path="covers/2.jpg"),
        ]
        assert select_cover(books) == books[2].id

    def test_standalone_uses_date_added(self, make_record):
        books = [
            make_record(date_added="2024-05-01T00:00:00", cover_image_path="covers/a.jpg"),
            make_record(date_added="2024-01-01T00:00:00", cover_image_path="covers/b.jpg"),
        ]
        assert select_cover(books, standalone=True) == books[1].id

    def test_no_covers(self, make_record):
        assert select_cover([make_record(), make_record()]) is None

    def test_group_carries_cover(self, make_record):
        records = [make_record(series="S", series_position="1", cover_image_path="covers/9.jpg")]
        assert series_stats(records)[0].cover_record_id == records[0].id


class TestSeriesFilters:
    """Series-level filters."""

    def test_search_matches_series_or_member(self, library):
        by_name = series_stats(library, SeriesFilters(search="mist"))
        by_book = series_stats(library, SeriesFilters(search="hail mary"))
        assert [g.key for g in by_name] == ["Mistborn"]
        assert [g.key for g in by_book] == ["standalone"]

    def test_rating_coverage(self, library):
        fully = series_stats(library, SeriesFilters(rating_filter=RatingFilter.FULLY_RATED))
        partly = series_stats(library, SeriesFilters(rating_filter="partlyRated"))
        assert [g.key for g in fully] == ["Dune"]
        assert [g.key for g in partly] == ["Mistborn", "standalone"]

    def test_unrated_coverage(self, make_record):
        records = [make_record(series="S"), make_record(series="T", book_rating=2)]
        unrated = series_stats(records, SeriesFilters(rating_filter=RatingFilter.UNRATED))
        assert [g.key for g in unrated] == ["S"]

    def test_completion_filter(self, library):
        groups = series_stats(library, SeriesFilters(completion_status="not_started"))
        assert [g.key for g in groups] == ["Dune"]


class TestSeriesSort:
    """Series sorting by whitelisted fields."""

    def test_book_count_descending(self, library):
        groups = series_stats(library, sort=SeriesSort.parse("book_count-desc"))
        assert [g.key for g in groups] == ["Mistborn", "standalone", "Dune"]

    def test_average_rating_nulls_last(self, make_record):
        records = [
            make_record(series="Low", book_rating=1),
            make_record(series="Unrated"),
            make_record(series="High", book_rating=5),
        ]
        ascending = series_stats(records, sort=SeriesSort.parse("avg_book_rating-asc"))
        descending = series_stats(records, sort=SeriesSort.parse("avgBookRating-desc"))
        assert [g.key for g in ascending] == ["Low", "High", "Unrated"]
        assert [g.key for g in descending] == ["High", "Low", "Unrated"]

    def test_unknown_field_falls_back_to_name(self):
        assert SeriesSort.parse("isbn-desc").resolve() == (SeriesSortField.NAME, False)
