# ABOUTME: Opens the Audioshelf catalog database and brings its schema up to date.
# ABOUTME: Creates the base schema on first open and runs numbered migrations after it.

import logging
import sqlite3
from pathlib import Path

from audioshelf.db.schema import MIGRATIONS, SCHEMA_V1

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".audioshelf" / "library.db"


def _has_version_table(conn: sqlite3.Connection) -> bool:
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
    ).fetchone()
    return row is not None


def schema_version(conn: sqlite3.Connection) -> int:
    """Highest schema version recorded in the database, 0 for an empty file."""
    if not _has_version_table(conn):
        return 0
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] or 0


def migrate(conn: sqlite3.Connection) -> list[int]:
    """Run every migration newer than the database and record each version.

    Each step and its version row commit together, so an interrupted upgrade
    resumes from the last completed step.

    Returns:
        The versions applied, in order.
    """
    current = schema_version(conn)
    applied: list[int] = []
    for version, sql in MIGRATIONS:
        if version <= current:
            continue
        logger.info("Migrating catalog schema to version %d", version)
        conn.executescript(
            f"BEGIN;\n{sql}\nINSERT INTO schema_version (version) VALUES ({version});\nCOMMIT;"
        )
        applied.append(version)
    return applied


def open_library(path: Path | None = None) -> sqlite3.Connection:
    """Open or create the Audioshelf catalog database.

    Creates the file and its parent directories when missing, enables WAL
    and foreign keys (narrator ratings cascade with their book), and returns
    rows as sqlite3.Row.

    Args:
        path: Path to the database file. Defaults to ~/.audioshelf/library.db.
    """
    db_path = path or DEFAULT_DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    if not _has_version_table(conn):
        conn.executescript(SCHEMA_V1)

    migrate(conn)
    return conn
