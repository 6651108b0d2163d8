# ABOUTME: Series aggregation engine: group catalog records by series with derived statistics.
# ABOUTME: Completion, rating coverage, and representative cover selection. Pure, no I/O.

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from audioshelf.core.query import (
    STANDALONE_KEY,
    STANDALONE_NAME,
    RatingFilter,
    SortDirection,
    is_fully_rated,
    matches_search,
    position_key,
    series_key,
    sort_nulls_last,
    text_key,
)
from audioshelf.core.store import BookStatus
from audioshelf.db.mapping import CatalogRecord


class SeriesSortField(str, Enum):
    NAME = "name"
    BOOK_COUNT = "book_count"
    TOTAL_DURATION_SECONDS = "total_duration_seconds"
    AVG_BOOK_RATING = "avg_book_rating"
    COMPLETION_PERCENT = "completion_percent"


_FIELD_ALIASES = {
    "seriesName": SeriesSortField.NAME,
    "bookCount": SeriesSortField.BOOK_COUNT,
    "totalDurationSeconds": SeriesSortField.TOTAL_DURATION_SECONDS,
    "avgBookRating": SeriesSortField.AVG_BOOK_RATING,
    "completionPercent": SeriesSortField.COMPLETION_PERCENT,
}


@dataclass
class SeriesGroup:
    """A series (or the standalone bucket) with statistics over its books."""

    key: str
    name: str
    books: list[CatalogRecord] = field(default_factory=list)
    book_count: int = 0
    not_started_count: int = 0
    in_progress_count: int = 0
    finished_count: int = 0
    total_duration_seconds: int = 0
    rated_count: int = 0
    avg_book_rating: float | None = None
    unrated_count: int = 0
    completion_status: BookStatus = BookStatus.NOT_STARTED
    completion_percent: float = 0.0
    cover_record_id: int | None = None

    @property
    def is_standalone(self) -> bool:
        return self.key == STANDALONE_KEY


@dataclass(frozen=True)
class SeriesFilters:
    search: str | None = None
    rating_filter: RatingFilter | str | None = None
    completion_status: BookStatus | str | None = None


@dataclass(frozen=True)
class SeriesSort:
    """A requested series sort. Unknown fields or directions fall back to name ascending."""

    field: str = SeriesSortField.NAME.value
    direction: str = SortDirection.ASC.value

    @classmethod
    def parse(cls, text: str) -> "SeriesSort":
        field_name, _, direction = text.rpartition("-")
        if not field_name:
            return cls(field=text)
        return cls(field=field_name, direction=direction)

    def resolve(self) -> tuple[SeriesSortField, bool]:
        field_name = _FIELD_ALIASES.get(self.field, self.field)
        try:
            sort_field = SeriesSortField(field_name)
            direction = SortDirection(self.direction)
        except ValueError:
            return SeriesSortField.NAME, False
        return sort_field, direction is SortDirection.DESC


def _completion_status(books: list[CatalogRecord]) -> BookStatus:
    statuses = {BookStatus(b.status) for b in books}
    if statuses == {BookStatus.FINISHED}:
        return BookStatus.FINISHED
    if not books or statuses == {BookStatus.NOT_STARTED}:
        return BookStatus.NOT_STARTED
    return BookStatus.IN_PROGRESS


def select_cover(books: list[CatalogRecord], standalone: bool = False) -> int | None:
    """Pick the record whose cover represents the group.

    Members are ordered by series position (unknown positions last), then
    date added; the standalone group uses date added only. The first member
    with a stored cover wins.
    """
    ordered = sort_nulls_last(books, lambda b: b.date_added or None)
    if not standalone:
        ordered = sort_nulls_last(ordered, lambda b: position_key(b.series_position))
    for book in ordered:
        if book.cover_image_path:
            return book.id
    return None


def build_group(key: str, books: list[CatalogRecord]) -> SeriesGroup:
    """Compute statistics for one group of records."""
    standalone = key == STANDALONE_KEY
    group = SeriesGroup(
        key=key,
        name=STANDALONE_NAME if standalone else key,
        books=list(books),
        book_count=len(books),
    )

    ratings: list[int] = []
    for book in books:
        status = BookStatus(book.status)
        if status is BookStatus.FINISHED:
            group.finished_count += 1
        elif status is BookStatus.IN_PROGRESS:
            group.in_progress_count += 1
        else:
            group.not_started_count += 1

        group.total_duration_seconds += book.duration_seconds or 0
        if book.book_rating is not None:
            ratings.append(book.book_rating)
        if not is_fully_rated(book):
            group.unrated_count += 1

    group.rated_count = len(ratings)
    group.avg_book_rating = sum(ratings) / len(ratings) if ratings else None
    group.completion_status = _completion_status(books)
    group.completion_percent = (
        group.finished_count / group.book_count * 100 if group.book_count else 0.0
    )
    group.cover_record_id = select_cover(books, standalone=standalone)
    return group


def group_by_series(records: list[CatalogRecord]) -> list[SeriesGroup]:
    """Partition records by exact series name, in first-seen order."""
    buckets: dict[str, list[CatalogRecord]] = {}
    for record in records:
        buckets.setdefault(series_key(record), []).append(record)
    return [build_group(key, books) for key, books in buckets.items()]


def _rating_coverage(group: SeriesGroup) -> RatingFilter:
    if group.book_count > 0 and group.rated_count == group.book_count:
        return RatingFilter.FULLY_RATED
    if group.rated_count == 0:
        return RatingFilter.UNRATED
    return RatingFilter.PARTLY_RATED


def filter_series(groups: list[SeriesGroup], filters: SeriesFilters) -> list[SeriesGroup]:
    """Apply series-level search, rating coverage, and completion filters."""
    result = list(groups)

    if filters.search and filters.search.strip():
        search = filters.search.strip()
        needle = search.casefold()
        result = [
            g
            for g in result
            if needle in g.name.casefold() or any(matches_search(b, search) for b in g.books)
        ]

    if filters.rating_filter:
        wanted = RatingFilter(filters.rating_filter)
        result = [g for g in result if _rating_coverage(g) is wanted]

    if filters.completion_status:
        status = BookStatus(filters.completion_status)
        result = [g for g in result if g.completion_status is status]

    return result


_SORT_KEYS: dict[SeriesSortField, Callable[[SeriesGroup], Any]] = {
    SeriesSortField.NAME: lambda g: text_key(g.name),
    SeriesSortField.BOOK_COUNT: lambda g: g.book_count,
    SeriesSortField.TOTAL_DURATION_SECONDS: lambda g: g.total_duration_seconds,
    SeriesSortField.AVG_BOOK_RATING: lambda g: g.avg_book_rating,
    SeriesSortField.COMPLETION_PERCENT: lambda g: g.completion_percent,
}


def sort_series(groups: list[SeriesGroup], sort: SeriesSort | None = None) -> list[SeriesGroup]:
    """Order groups by a whitelisted field, nulls last.

    Without an explicit sort, groups are ordered by name with the standalone
    group at the end.
    """
    if sort is None:
        named = [g for g in groups if not g.is_standalone]
        standalone = [g for g in groups if g.is_standalone]
        return sort_nulls_last(named, _SORT_KEYS[SeriesSortField.NAME]) + standalone

    sort_field, descending = sort.resolve()
    return sort_nulls_last(groups, _SORT_KEYS[sort_field], descending)


def series_stats(
    records: list[CatalogRecord],
    filters: SeriesFilters | None = None,
    sort: SeriesSort | None = None,
) -> list[SeriesGroup]:
    """Group records by series, compute statistics, then filter and sort the groups.

    Group members are ordered by series position, then title.
    """
    ordered = sort_nulls_last(list(records), lambda r: text_key(r.title))
    ordered = sort_nulls_last(ordered, lambda r: position_key(r.series_position))
    groups = group_by_series(ordered)
    if filters:
        groups = filter_series(groups, filters)
    return sort_series(groups, sort)


def get_series(records: list[CatalogRecord], key: str) -> SeriesGroup | None:
    """Return the group for a single series key, or None if it has no books."""
    books = [r for r in records if series_key(r) == key]
    if not books:
        return None
    return series_stats(books)[0]
