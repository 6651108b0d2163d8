# ABOUTME: SQLite-backed record store for the Audioshelf catalog.
# ABOUTME: Upsert by path with source-aware merge, user fields, narrator ratings, missing flags.

import sqlite3
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from audioshelf.core.merge import MERGEABLE_FIELDS, merge_fields
from audioshelf.core.store import BookStatus, RecordSource, UpsertResult, validate_rating
from audioshelf.db.mapping import CatalogRecord, fields_to_row, row_to_record

_USER_FIELDS = frozenset({"status", "book_rating", "tags", "notes"})

_TOUCH = "date_updated = strftime('%Y-%m-%dT%H:%M:%S', 'now')"


class LibraryCatalog:
    """Wraps a sqlite3 connection and implements the RecordStore protocol."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # --- Reads ---

    def _ratings_for(self, book_ids: list[int]) -> dict[int, dict[str, int | None]]:
        ratings: dict[int, dict[str, int | None]] = {book_id: {} for book_id in book_ids}
        if not book_ids:
            return ratings
        placeholders = ", ".join("?" for _ in book_ids)
        cursor = self._conn.execute(
            "SELECT book_id, narrator_name, rating FROM narrator_ratings "
            f"WHERE book_id IN ({placeholders})",
            book_ids,
        )
        for row in cursor.fetchall():
            ratings[row["book_id"]][row["narrator_name"]] = row["rating"]
        return ratings

    def _records(self, rows: list[Any]) -> list[CatalogRecord]:
        ratings = self._ratings_for([row["id"] for row in rows])
        return [row_to_record(row, ratings[row["id"]]) for row in rows]

    def get_by_id(self, record_id: int) -> CatalogRecord | None:
        """Retrieve a record by its row ID."""
        cursor = self._conn.execute("SELECT * FROM books WHERE id = ?", (record_id,))
        row = cursor.fetchone()
        return self._records([row])[0] if row else None

    def get_by_path(self, path: Path) -> CatalogRecord | None:
        """Retrieve a record by its filesystem path."""
        cursor = self._conn.execute("SELECT * FROM books WHERE path = ?", (str(path),))
        row = cursor.fetchone()
        return self._records([row])[0] if row else None

    def get_all(self) -> list[CatalogRecord]:
        """Return every record in the catalog, ordered by id."""
        cursor = self._conn.execute("SELECT * FROM books ORDER BY id")
        return self._records(cursor.fetchall())

    # --- Ingestion writes ---

    def _insert(self, path: Path, fields: Mapping[str, Any], source: RecordSource) -> int:
        row = fields_to_row({k: v for k, v in fields.items() if k in MERGEABLE_FIELDS})
        row["path"] = str(path)
        row["source"] = source.value
        columns = ", ".join(row.keys())
        placeholders = ", ".join("?" for _ in row)
        cursor = self._conn.execute(
            f"INSERT INTO books ({columns}) VALUES ({placeholders})",
            list(row.values()),
        )
        return cursor.lastrowid  # type: ignore[return-value]

    def upsert(self, path: Path, fields: Mapping[str, Any]) -> UpsertResult:
        """Insert a scanned record, or merge into the existing record at this path.

        Manual records only have empty fields filled; scanned records are
        overwritten. Either way the record is no longer missing from source.
        The record's source and user fields are never changed.

        Returns:
            The record id and whether a new row was inserted.
        """
        existing = self.get_by_path(path)
        if existing is None:
            record_id = self._insert(path, fields, RecordSource.SCANNED)
            self._conn.commit()
            return UpsertResult(id=record_id, was_insert=True)

        merged = fields_to_row(merge_fields(existing.as_fields(), fields, existing.is_manual))
        set_clause = ", ".join(f"{k} = ?" for k in merged)
        if set_clause:
            set_clause += ", "
        set_clause += f"missing_from_source = 0, {_TOUCH}"
        self._conn.execute(
            f"UPDATE books SET {set_clause} WHERE id = ?",
            [*merged.values(), existing.id],
        )
        self._conn.commit()
        return UpsertResult(id=existing.id, was_insert=False)

    def add_manual_book(self, path: Path, fields: Mapping[str, Any]) -> int:
        """Add a hand-entered record. Re-ingestion will only fill its empty fields.

        Raises:
            ValueError: If a record already exists at this path.
        """
        try:
            record_id = self._insert(path, fields, RecordSource.MANUAL)
            self._conn.commit()
        except sqlite3.IntegrityError as exc:
            if "UNIQUE constraint failed: books.path" in str(exc):
                raise ValueError(f"Book at {path} already exists") from exc
            raise
        return record_id

    def mark_missing(self, observed_paths: Iterable[Path]) -> int:
        """Flag every record whose path was not observed; clear the flag on the rest.

        Returns:
            The number of records flagged as missing.
        """
        observed = {str(p) for p in observed_paths}
        cursor = self._conn.execute("SELECT id, path FROM books")
        missing_ids = []
        present_ids = []
        for row in cursor.fetchall():
            if row["path"] in observed:
                present_ids.append((row["id"],))
            else:
                missing_ids.append((row["id"],))

        self._conn.executemany(
            "UPDATE books SET missing_from_source = 1 WHERE id = ?", missing_ids
        )
        self._conn.executemany(
            "UPDATE books SET missing_from_source = 0 WHERE id = ?", present_ids
        )
        self._conn.commit()
        return len(missing_ids)

    def set_cover_path(self, record_id: int, relative_path: str) -> None:
        """Record the stored cover image path for a book."""
        self._update(record_id, {"cover_image_path": relative_path})

    # --- User writes ---

    def _update(self, record_id: int, fields: Mapping[str, Any]) -> None:
        set_clause = ", ".join(f"{k} = ?" for k in fields)
        cursor = self._conn.execute(
            f"UPDATE books SET {set_clause}, {_TOUCH} WHERE id = ?",
            [*fields.values(), record_id],
        )
        self._conn.commit()
        if cursor.rowcount == 0:
            raise ValueError(f"Book with id {record_id} not found")

    def set_user_fields(self, record_id: int, **fields: Any) -> None:
        """Update status, book_rating, tags, or notes. Passing None clears a value.

        Raises:
            ValueError: For unknown fields, an invalid status or rating, or
                a record_id that does not exist.
        """
        if not fields:
            return

        unknown = set(fields) - _USER_FIELDS
        if unknown:
            raise ValueError(f"Not a user field: {', '.join(sorted(unknown))}")

        if "status" in fields:
            if fields["status"] is None:
                raise ValueError("Status cannot be cleared")
            fields["status"] = BookStatus(fields["status"]).value
        if "book_rating" in fields:
            validate_rating(fields["book_rating"])

        self._update(record_id, fields)

    def set_narrator_rating(
        self, record_id: int, narrator_name: str, rating: int | None
    ) -> None:
        """Rate one narrator of a book, or clear the rating with None.

        Raises:
            ValueError: If the rating is out of range or the book doesn't exist.
        """
        validate_rating(rating)
        name = narrator_name.strip()
        if not name:
            raise ValueError("Narrator name cannot be empty")
        if self.get_by_id(record_id) is None:
            raise ValueError(f"Book with id {record_id} not found")

        self._conn.execute(
            "INSERT INTO narrator_ratings (book_id, narrator_name, rating) "
            "VALUES (?, ?, ?) "
            "ON CONFLICT (book_id, narrator_name) DO UPDATE SET rating = excluded.rating",
            (record_id, name, rating),
        )
        self._conn.commit()

    def delete_book(self, record_id: int) -> None:
        """Delete a book and its narrator ratings.

        Raises:
            ValueError: If the record_id does not exist.
        """
        cursor = self._conn.execute("DELETE FROM books WHERE id = ?", (record_id,))
        self._conn.commit()

        if cursor.rowcount == 0:
            raise ValueError(f"Book with id {record_id} not found")
