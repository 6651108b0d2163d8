# ABOUTME: The CatalogRecord dataclass and conversion from SQLite rows.
# ABOUTME: Narrator ratings are attached to the record that owns them.

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from audioshelf.core.store import BookStatus, RecordSource


@dataclass
class CatalogRecord:
    """A cataloged audiobook: descriptive metadata plus user and storage fields."""

    id: int
    path: Path
    title: str
    kind: str = "Folder"
    author: str | None = None
    narrator: str | None = None
    series: str | None = None
    series_position: str | None = None
    duration_seconds: int | None = None
    total_size_bytes: int | None = None
    file_count: int | None = None
    has_embedded_cover: bool = False
    source: RecordSource = RecordSource.SCANNED
    status: BookStatus = BookStatus.NOT_STARTED
    book_rating: int | None = None
    tags: str | None = None
    notes: str | None = None
    cover_image_path: str | None = None
    missing_from_source: bool = False
    date_added: str = ""
    date_updated: str = ""
    narrator_ratings: dict[str, int | None] = field(default_factory=dict)

    @property
    def is_manual(self) -> bool:
        return self.source is RecordSource.MANUAL

    def as_fields(self) -> dict[str, Any]:
        """Descriptive fields as stored, for merging against incoming metadata."""
        return {
            "kind": self.kind,
            "title": self.title,
            "author": self.author,
            "narrator": self.narrator,
            "series": self.series,
            "series_position": self.series_position,
            "duration_seconds": self.duration_seconds,
            "total_size_bytes": self.total_size_bytes,
            "file_count": self.file_count,
            "has_embedded_cover": self.has_embedded_cover,
        }


def fields_to_row(fields: dict[str, Any]) -> dict[str, Any]:
    """Convert descriptive fields to column values suitable for INSERT/UPDATE."""
    row = dict(fields)
    if "has_embedded_cover" in row:
        row["has_embedded_cover"] = 1 if row["has_embedded_cover"] else 0
    if row.get("series_position") is not None:
        row["series_position"] = str(row["series_position"])
    return row


def row_to_record(row: Any, narrator_ratings: dict[str, int | None] | None = None) -> CatalogRecord:
    """Convert a full books row to a CatalogRecord."""
    return CatalogRecord(
        id=row["id"],
        path=Path(row["path"]),
        kind=row["kind"],
        title=row["title"],
        author=row["author"],
        narrator=row["narrator"],
        series=row["series"],
        series_position=row["series_position"],
        duration_seconds=row["duration_seconds"],
        total_size_bytes=row["total_size_bytes"],
        file_count=row["file_count"],
        has_embedded_cover=bool(row["has_embedded_cover"]),
        source=RecordSource(row["source"]),
        status=BookStatus(row["status"]),
        book_rating=row["book_rating"],
        tags=row["tags"],
        notes=row["notes"],
        cover_image_path=row["cover_image_path"],
        missing_from_source=bool(row["missing_from_source"]),
        date_added=row["date_added"],
        date_updated=row["date_updated"],
        narrator_ratings=dict(narrator_ratings or {}),
    )
