# ABOUTME: RecordStore protocol defining the contract for catalog persistence.
# ABOUTME: Ingestion and rating workflows depend on this, not on a concrete database.

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from audioshelf.db.mapping import CatalogRecord


class BookStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class RecordSource(str, Enum):
    """Where a record came from; decides how re-ingestion merges into it."""

    SCANNED = "scanned"
    MANUAL = "manual"


@dataclass(frozen=True)
class UpsertResult:
    id: int
    was_insert: bool


def validate_rating(rating: int | None) -> None:
    """Ratings are whole stars from 1 to 5, or None for unrated."""
    if rating is not None and (isinstance(rating, bool) or rating not in range(1, 6)):
        raise ValueError(f"Rating must be between 1 and 5, got {rating!r}")


@runtime_checkable
class RecordStore(Protocol):
    """Protocol for the catalog record store.

    Records are keyed by a unique, immutable path. `upsert` applies the
    source-aware merge policy; user fields are only written through
    `set_user_fields` (status, book_rating, tags, notes; passing None
    clears a value) and `set_narrator_rating`.
    """

    def get_all(self) -> list["CatalogRecord"]: ...

    def get_by_path(self, path: Path) -> "CatalogRecord | None": ...

    def upsert(self, path: Path, fields: Mapping[str, Any]) -> UpsertResult: ...

    def mark_missing(self, observed_paths: Iterable[Path]) -> int: ...

    def set_user_fields(self, record_id: int, **fields: Any) -> None: ...

    def set_narrator_rating(
        self, record_id: int, narrator_name: str, rating: int | None
    ) -> None: ...

    def set_cover_path(self, record_id: int, relative_path: str) -> None: ...
