# ABOUTME: Rating workflows: the needs-rating queue and series-wide batch apply.
# ABOUTME: Reads snapshots through the query helpers and writes through the RecordStore.

import logging
from dataclasses import dataclass, field
from enum import Enum

from audioshelf.core.query import (
    narrator_names,
    series_key,
    sort_nulls_last,
    text_key,
    unrated_narrators,
)
from audioshelf.core.store import BookStatus, RecordStore, validate_rating
from audioshelf.db.mapping import CatalogRecord

logger = logging.getLogger(__name__)


class ApplyMode(str, Enum):
    MISSING_ONLY = "missingOnly"
    OVERWRITE = "overwrite"


@dataclass
class NeedsRatingItem:
    """A finished book still missing its book rating or some narrator ratings."""

    record: CatalogRecord
    needs_book_rating: bool
    unrated_narrators: list[str] = field(default_factory=list)


def needs_rating(records: list[CatalogRecord]) -> list[NeedsRatingItem]:
    """Finished books that are not fully rated, most recently updated first."""
    finished = [r for r in records if BookStatus(r.status) is BookStatus.FINISHED]
    ordered = sort_nulls_last(finished, lambda r: text_key(r.title))
    ordered = sort_nulls_last(ordered, lambda r: r.date_updated or None, descending=True)

    items = []
    for record in ordered:
        missing = unrated_narrators(record)
        if record.book_rating is None or missing:
            items.append(
                NeedsRatingItem(
                    record=record,
                    needs_book_rating=record.book_rating is None,
                    unrated_narrators=missing,
                )
            )
    return items


@dataclass
class BatchApplyResult:
    books: int = 0
    statuses_set: int = 0
    book_ratings_set: int = 0
    narrator_ratings_set: int = 0


def batch_apply_series(
    store: RecordStore,
    records: list[CatalogRecord],
    key: str,
    *,
    status: BookStatus | str | None = None,
    book_rating: int | None = None,
    narrator_rating: int | None = None,
    mode: ApplyMode | str = ApplyMode.MISSING_ONLY,
) -> BatchApplyResult:
    """Apply a status, book rating, and/or narrator rating to every book in a series.

    In missingOnly mode only unset values are filled: a status counts as
    unset while it is not_started, ratings while they are None. In
    overwrite mode every book gets the given values.

    Raises:
        ValueError: For an invalid mode, status, or rating, or when nothing
            to apply was given.
        LookupError: If the series has no books.
    """
    mode = ApplyMode(mode)
    if status is None and book_rating is None and narrator_rating is None:
        raise ValueError(
            "At least one field (status, book_rating, or narrator_rating) must be provided"
        )
    new_status = BookStatus(status) if status is not None else None
    validate_rating(book_rating)
    validate_rating(narrator_rating)

    books = [r for r in records if series_key(r) == key]
    if not books:
        raise LookupError(f"Series {key!r} not found or has no books")

    overwrite = mode is ApplyMode.OVERWRITE
    result = BatchApplyResult(books=len(books))

    for book in books:
        updates: dict[str, object] = {}
        if new_status is not None and (
            overwrite or BookStatus(book.status) is BookStatus.NOT_STARTED
        ):
            updates["status"] = new_status
            result.statuses_set += 1
        if book_rating is not None and (overwrite or book.book_rating is None):
            updates["book_rating"] = book_rating
            result.book_ratings_set += 1
        if updates:
            store.set_user_fields(book.id, **updates)

        if narrator_rating is None:
            continue
        for name in narrator_names(book.narrator):
            if overwrite or book.narrator_ratings.get(name) is None:
                store.set_narrator_rating(book.id, name, narrator_rating)
                result.narrator_ratings_set += 1

    logger.info("Batch applied to %d book(s) in series %s", len(books), key)
    return result
