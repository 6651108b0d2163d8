# ABOUTME: Catalog query engine: filter and sort an in-memory snapshot of catalog records.
# ABOUTME: Pure functions with null-aware, type-aware comparators. No I/O.

import unicodedata
from collections.abc import Callable, Collection
from dataclasses import dataclass
from enum import Enum
from typing import Any

from audioshelf.core.naming import parse_position
from audioshelf.core.store import BookStatus
from audioshelf.db.mapping import CatalogRecord

STANDALONE_KEY = "standalone"
STANDALONE_NAME = "Standalone Books"

_STATUS_ORDER = {
    BookStatus.NOT_STARTED: 0,
    BookStatus.IN_PROGRESS: 1,
    BookStatus.FINISHED: 2,
}


class RatingFilter(str, Enum):
    FULLY_RATED = "fullyRated"
    PARTLY_RATED = "partlyRated"
    UNRATED = "unrated"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class BookSortField(str, Enum):
    TITLE = "title"
    AUTHOR = "author"
    NARRATOR = "narrator"
    BOOK_RATING = "book_rating"
    DATE_ADDED = "date_added"
    STATUS = "status"
    SERIES = "series"
    SERIES_POSITION = "series_position"


_FIELD_ALIASES = {
    "rating": BookSortField.BOOK_RATING,
    "series_book_number": BookSortField.SERIES_POSITION,
}


def _parse_sort(text: str) -> tuple[str, str]:
    """Split "field-direction" on the last dash."""
    field_name, _, direction = text.rpartition("-")
    if not field_name:
        return text, SortDirection.ASC.value
    return field_name, direction


@dataclass(frozen=True)
class BookSort:
    """A requested sort. Unknown fields or directions fall back to title ascending."""

    field: str = BookSortField.TITLE.value
    direction: str = SortDirection.ASC.value

    @classmethod
    def parse(cls, text: str) -> "BookSort":
        """Parse a "field-direction" string such as "book_rating-desc"."""
        field_name, direction = _parse_sort(text)
        return cls(field=field_name, direction=direction)

    def resolve(self) -> tuple[BookSortField, bool]:
        """Return the whitelisted field and whether to sort descending."""
        field_name = _FIELD_ALIASES.get(self.field, self.field)
        try:
            sort_field = BookSortField(field_name)
            direction = SortDirection(self.direction)
        except ValueError:
            return BookSortField.TITLE, False
        return sort_field, direction is SortDirection.DESC


@dataclass(frozen=True)
class BookFilters:
    """Book-level filters. All given filters must match."""

    search: str | None = None
    statuses: Collection[BookStatus | str] | None = None
    rating_filter: RatingFilter | str | None = None
    series_key: str | None = None


# --- Predicates ---


def narrator_names(narrator: str | None) -> list[str]:
    """Split a narrator field on commas into trimmed, non-empty names."""
    if not narrator:
        return []
    return [name.strip() for name in narrator.split(",") if name.strip()]


def unrated_narrators(record: CatalogRecord) -> list[str]:
    """Narrators of this book who have no rating yet."""
    return [
        name
        for name in narrator_names(record.narrator)
        if record.narrator_ratings.get(name) is None
    ]


def is_fully_rated(record: CatalogRecord) -> bool:
    """A book is fully rated when it has a book rating and every narrator is rated."""
    return record.book_rating is not None and not unrated_narrators(record)


def series_key(record: CatalogRecord) -> str:
    """Grouping key: the exact series name, or "standalone" when there is none."""
    if record.series is None or not record.series.strip():
        return STANDALONE_KEY
    return record.series


def matches_search(record: CatalogRecord, search: str) -> bool:
    """Case-insensitive substring match on title, author, series, or narrator."""
    needle = search.casefold()
    return any(
        value is not None and needle in value.casefold()
        for value in (record.title, record.author, record.series, record.narrator)
    )


def filter_books(records: list[CatalogRecord], filters: BookFilters) -> list[CatalogRecord]:
    """Apply search, status, rating, and series filters in that order."""
    result = list(records)

    if filters.search and filters.search.strip():
        search = filters.search.strip()
        result = [r for r in result if matches_search(r, search)]

    if filters.statuses:
        wanted = {BookStatus(s) for s in filters.statuses}
        result = [r for r in result if BookStatus(r.status) in wanted]

    if filters.rating_filter:
        rating_filter = RatingFilter(filters.rating_filter)
        if rating_filter is RatingFilter.FULLY_RATED:
            result = [r for r in result if is_fully_rated(r)]
        elif rating_filter is RatingFilter.UNRATED:
            result = [r for r in result if not is_fully_rated(r)]

    if filters.series_key:
        result = [r for r in result if series_key(r) == filters.series_key]

    return result


# --- Sorting ---


def _strip_accents(value: str) -> str:
    nfkd = unicodedata.normalize("NFKD", value)
    return "".join(c for c in nfkd if not unicodedata.combining(c))


def text_key(value: str | None) -> tuple[str, str] | None:
    """Case-insensitive, accent-folding sort key. Blank text has no key.

    Accents are folded so "Émile" sorts among the E's; the casefolded
    original breaks ties so ordering stays deterministic.
    """
    if value is None or not value.strip():
        return None
    folded = value.strip().casefold()
    return _strip_accents(folded), folded


def position_key(position: str | None) -> float | None:
    """Series position as a number, or None when missing or unparsable."""
    value = parse_position(position)
    return None if value == float("inf") else value


def sort_nulls_last(
    items: list[Any],
    key: Callable[[Any], Any],
    descending: bool = False,
) -> list[Any]:
    """Stable sort where items whose key is None always go last, in input order."""
    present = [item for item in items if key(item) is not None]
    absent = [item for item in items if key(item) is None]
    present.sort(key=key, reverse=descending)
    return present + absent


def _first_narrator(record: CatalogRecord) -> str | None:
    names = narrator_names(record.narrator)
    return names[0] if names else None


_SORT_KEYS: dict[BookSortField, Callable[[CatalogRecord], Any]] = {
    BookSortField.TITLE: lambda r: text_key(r.title),
    BookSortField.AUTHOR: lambda r: text_key(r.author),
    BookSortField.NARRATOR: lambda r: text_key(_first_narrator(r)),
    BookSortField.BOOK_RATING: lambda r: r.book_rating,
    BookSortField.DATE_ADDED: lambda r: r.date_added or None,
    BookSortField.STATUS: lambda r: _STATUS_ORDER[BookStatus(r.status)],
    BookSortField.SERIES: lambda r: text_key(r.series),
    BookSortField.SERIES_POSITION: lambda r: position_key(r.series_position),
}


def sort_books(records: list[CatalogRecord], sort: BookSort | None = None) -> list[CatalogRecord]:
    """Order records by a whitelisted field.

    Missing values (no rating, no series position, blank text) sort last in
    both directions. Series sorting orders by position within a series.
    """
    sort_field, descending = (sort or BookSort()).resolve()

    ordered = list(records)
    if sort_field is BookSortField.SERIES:
        # Secondary key first; the stable primary sort keeps it within each series
        ordered = sort_nulls_last(ordered, _SORT_KEYS[BookSortField.SERIES_POSITION])
    return sort_nulls_last(ordered, _SORT_KEYS[sort_field], descending)


def query_books(
    records: list[CatalogRecord],
    filters: BookFilters | None = None,
    sort: BookSort | None = None,
) -> list[CatalogRecord]:
    """Filter and sort a snapshot of catalog records.

    Args:
        records: Every catalog record, e.g. from RecordStore.get_all().
        filters: Optional book-level filters.
        sort: Optional sort; defaults to title ascending.

    Returns:
        A new list; the input is not modified.
    """
    filtered = filter_books(records, filters) if filters else list(records)
    return sort_books(filtered, sort)
