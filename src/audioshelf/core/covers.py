# ABOUTME: Cover image extraction and normalization for committed audiobooks.
# ABOUTME: Stores embedded art as resized JPEGs and backfills covers for cataloged books.

from __future__ import annotations

import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from PIL import Image, UnidentifiedImageError

from audioshelf.formats.audio import AUDIO_EXTENSIONS, AUDIOBOOK_EXTENSIONS, extract_cover_image

if TYPE_CHECKING:
    from audioshelf.core.store import RecordStore
    from audioshelf.db.mapping import CatalogRecord

logger = logging.getLogger(__name__)

DEFAULT_COVERS_DIR = Path.home() / ".audioshelf" / "covers"

COVER_MAX_SIZE = 600
COVER_JPEG_QUALITY = 82


class CoverWriteError(Exception):
    """Raised when a cover image cannot be decoded or written."""


class CoverWriter:
    """Stores normalized JPEG covers as <covers_dir>/<record_id>.jpg.

    Returned paths are relative to the covers directory's parent, e.g.
    "covers/12.jpg", so the catalog does not depend on where data lives.
    """

    def __init__(self, covers_dir: Path = DEFAULT_COVERS_DIR) -> None:
        self.covers_dir = Path(covers_dir)

    def write_cover(self, record_id: int, image_bytes: bytes) -> str:
        """Resize an image to fit within 600x600 and save it as JPEG.

        Images smaller than the bound are not enlarged.

        Raises:
            CoverWriteError: If the image can't be decoded or the file can't be written.
        """
        try:
            img = Image.open(io.BytesIO(image_bytes))
            img = img.convert("RGB")
        except (UnidentifiedImageError, OSError) as exc:
            raise CoverWriteError(f"Cannot decode cover for book {record_id}: {exc}") from exc

        # thumbnail() only ever shrinks, preserving aspect ratio
        img.thumbnail((COVER_MAX_SIZE, COVER_MAX_SIZE), Image.Resampling.LANCZOS)

        filename = f"{record_id}.jpg"
        try:
            self.covers_dir.mkdir(parents=True, exist_ok=True)
            img.save(self.covers_dir / filename, format="JPEG", quality=COVER_JPEG_QUALITY)
        except OSError as exc:
            raise CoverWriteError(f"Cannot write cover for book {record_id}: {exc}") from exc

        return f"{self.covers_dir.name}/{filename}"


def find_cover_source(book_path: Path) -> Path | None:
    """Pick the audio file to pull a cover from.

    A file is used as-is when it is audio. For a folder, the first .m4b by
    name wins, then the first audio file of any kind.
    """
    if book_path.is_file():
        return book_path if book_path.suffix.lower() in AUDIO_EXTENSIONS else None
    if not book_path.is_dir():
        return None

    files = sorted(p for p in book_path.iterdir() if p.is_file())
    for path in files:
        if path.suffix.lower() in AUDIOBOOK_EXTENSIONS:
            return path
    for path in files:
        if path.suffix.lower() in AUDIO_EXTENSIONS:
            return path
    return None


def extract_cover_for_book(
    record_id: int, book_path: Path, writer: CoverWriter
) -> str | None:
    """Extract and store the embedded cover for a book.

    Returns:
        The stored relative path, or None when no embedded image was found.

    Raises:
        CoverWriteError: If an image was found but could not be stored.
    """
    source = find_cover_source(book_path)
    if source is None:
        logger.info("No audio file found for book %s", record_id)
        return None

    image = extract_cover_image(source)
    if image is None:
        logger.info("No embedded cover in %s", source)
        return None

    relative_path = writer.write_cover(record_id, image)
    logger.debug("Extracted cover for book %s from %s", record_id, source)
    return relative_path


@dataclass
class CoverExtractionResult:
    """Counts from a cover extraction pass over cataloged books."""

    processed: int = 0
    extracted: int = 0
    skipped: int = 0
    errors: int = 0


def extract_covers(
    store: RecordStore,
    records: Iterable[CatalogRecord],
    writer: CoverWriter,
    *,
    overwrite: bool = False,
) -> CoverExtractionResult:
    """Extract covers for books already in the catalog.

    Books that already have a cover are skipped unless overwrite is set, as
    are books with no audio or no embedded image. A cover that cannot be
    stored counts as an error and the pass continues.
    """
    result = CoverExtractionResult()
    for record in records:
        result.processed += 1
        if record.cover_image_path and not overwrite:
            result.skipped += 1
            continue

        try:
            relative_path = extract_cover_for_book(record.id, record.path, writer)
        except CoverWriteError as exc:
            logger.warning("Error extracting cover for book %s: %s", record.id, exc)
            result.errors += 1
            continue

        if relative_path is None:
            result.skipped += 1
            continue

        store.set_cover_path(record.id, relative_path)
        result.extracted += 1
    return result
