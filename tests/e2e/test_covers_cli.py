# ABOUTME: End-to-end tests for the audioshelf covers command group.
# ABOUTME: Backfills covers for imported books with embedded art stubbed out.

import io
from pathlib import Path

import pytest
from click.testing import CliRunner
from PIL import Image

from audioshelf.cli import cli
from audioshelf.core import covers
from audioshelf.db.catalog import LibraryCatalog
from audioshelf.db.connection import open_library


def _art() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (800, 800), color="blue").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def imported(tmp_path: Path, audio_file) -> tuple[Path, Path]:
    """Two books imported without covers; returns (db_path, covers_dir)."""
    root = tmp_path / "Audiobooks"
    audio_file(root / "Dune" / "01.mp3")
    audio_file(root / "Emma" / "book.m4b")

    db_path = tmp_path / "library.db"
    result = CliRunner().invoke(
        cli, ["import", str(root), "--no-covers", "--db", str(db_path)]
    )
    assert result.exit_code == 0
    return db_path, tmp_path / "covers"


def _records(db_path: Path):
    conn = open_library(db_path)
    try:
        return {r.title: r for r in LibraryCatalog(conn).get_all()}
    finally:
        conn.close()


class TestCoversExtract:
    """E2E tests for audioshelf covers extract."""

    def test_extracts_for_every_book(
        self, imported, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        db_path, covers_dir = imported
        art = _art()
        monkeypatch.setattr(
            covers, "extract_cover_image", lambda path: art if path.suffix == ".m4b" else None
        )

        result = CliRunner().invoke(
            cli, ["covers", "extract", "--db", str(db_path), "--covers-dir", str(covers_dir)]
        )

        assert result.exit_code == 0
        assert "Processed 2 book(s): 1 extracted, 1 skipped, 0 error(s)" in result.output
        emma = _records(db_path)["Emma"]
        assert emma.cover_image_path == f"covers/{emma.id}.jpg"
        assert (covers_dir / f"{emma.id}.jpg").exists()

    def test_selected_ids_and_overwrite(
        self, imported, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        db_path, covers_dir = imported
        monkeypatch.setattr(covers, "extract_cover_image", lambda path: _art())
        emma = _records(db_path)["Emma"]
        runner = CliRunner()
        args = ["covers", "extract", str(emma.id), "--db", str(db_path),
                "--covers-dir", str(covers_dir)]

        first = runner.invoke(cli, args)
        again = runner.invoke(cli, args)
        forced = runner.invoke(cli, [*args, "--overwrite"])

        assert "Processed 1 book(s): 1 extracted" in first.output
        assert "0 extracted, 1 skipped" in again.output
        assert "1 extracted" in forced.output
        assert _records(db_path)["Dune"].cover_image_path is None

    def test_unknown_book(self, imported) -> None:
        db_path, _ = imported
        result = CliRunner().invoke(cli, ["covers", "extract", "999", "--db", str(db_path)])

        assert result.exit_code == 1
        assert "Book 999 not found" in result.output
