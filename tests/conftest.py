# ABOUTME: Shared pytest fixtures for Audioshelf tests.
# ABOUTME: Provides a scriptable tag extractor, audio file builders, records, and a temp catalog.

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from audioshelf.db.catalog import LibraryCatalog
from audioshelf.db.connection import open_library
from audioshelf.db.mapping import CatalogRecord
from audioshelf.metadata.types import AudioMetadata


class FakeExtractor:
    """Tag extractor that returns canned metadata per path and records every call."""

    def __init__(self) -> None:
        self.tags: dict[Path, AudioMetadata] = {}
        self.calls: list[Path] = []

    def set(self, path: Path, **fields: Any) -> None:
        self.tags[Path(path)] = AudioMetadata(**fields)

    def extract(self, path: Path) -> AudioMetadata:
        self.calls.append(Path(path))
        return self.tags.get(Path(path), AudioMetadata())


@pytest.fixture
def extractor() -> FakeExtractor:
    """A FakeExtractor with no tags configured."""
    return FakeExtractor()


@pytest.fixture
def audio_file() -> Callable[..., Path]:
    """Factory writing a placeholder audio file of a given size."""

    def _write(path: Path, size: int = 1024) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\0" * size)
        return path

    return _write


@pytest.fixture
def audiobook_tree(tmp_path: Path, audio_file: Callable[..., Path]) -> Path:
    """Create a small audiobook library.

    Layout:
        Library/
            Frank Herbert/
                Dune/
                    01.mp3
                    02.mp3
                Mistborn - Book 1 - The Final Empire/
                    book.m4b
            Saga/
                part1.m4b
                part2.m4b
            loose.m4b
    """
    root = tmp_path / "Library"
    audio_file(root / "Frank Herbert" / "Dune" / "01.mp3", 2048)
    audio_file(root / "Frank Herbert" / "Dune" / "02.mp3", 4096)
    audio_file(root / "Frank Herbert" / "Mistborn - Book 1 - The Final Empire" / "book.m4b")
    audio_file(root / "Saga" / "part1.m4b")
    audio_file(root / "Saga" / "part2.m4b")
    audio_file(root / "loose.m4b")
    return root


@pytest.fixture
def catalog(tmp_path: Path) -> LibraryCatalog:
    """Provide a LibraryCatalog backed by a temporary database."""
    conn = open_library(tmp_path / "test.db")
    yield LibraryCatalog(conn)
    conn.close()


@pytest.fixture
def make_record() -> Callable[..., CatalogRecord]:
    """Factory for in-memory CatalogRecords with sequential ids."""
    counter = {"id": 0}

    def _make(title: str = "Untitled", **fields: Any) -> CatalogRecord:
        counter["id"] += 1
        fields.setdefault("path", Path(f"/books/{counter['id']}"))
        return CatalogRecord(id=counter["id"], title=title, **fields)

    return _make
