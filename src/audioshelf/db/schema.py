# ABOUTME: SQL DDL statements for the Audioshelf catalog database schema.
# ABOUTME: The base books table plus numbered migrations such as the narrator ratings table.

SCHEMA_V1 = """
-- Core audiobook catalog table, keyed by filesystem path
CREATE TABLE books (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    path                TEXT NOT NULL,
    kind                TEXT NOT NULL DEFAULT 'Folder'
                        CHECK (kind IN ('Folder', 'SingleFile')),
    title               TEXT NOT NULL,
    author              TEXT,
    narrator            TEXT,
    series              TEXT,
    series_position     TEXT,
    duration_seconds    INTEGER,
    total_size_bytes    INTEGER,
    file_count          INTEGER,
    has_embedded_cover  INTEGER NOT NULL DEFAULT 0,
    source              TEXT NOT NULL DEFAULT 'scanned'
                        CHECK (source IN ('scanned', 'manual')),
    status              TEXT NOT NULL DEFAULT 'not_started'
                        CHECK (status IN ('not_started', 'in_progress', 'finished')),
    book_rating         INTEGER CHECK (book_rating IS NULL OR book_rating BETWEEN 1 AND 5),
    tags                TEXT,
    notes               TEXT,
    cover_image_path    TEXT,
    missing_from_source INTEGER NOT NULL DEFAULT 0,
    date_added          TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now')),
    date_updated        TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE UNIQUE INDEX idx_books_path ON books(path);
CREATE INDEX idx_books_series ON books(series) WHERE series IS NOT NULL;
CREATE INDEX idx_books_status ON books(status);
CREATE INDEX idx_books_author ON books(author);

-- Applied schema versions, one row per step
CREATE TABLE schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

INSERT INTO schema_version (version) VALUES (1);
"""

# Per-narrator ratings, owned by a book and removed with it
MIGRATION_V2_NARRATOR_RATINGS = """
CREATE TABLE narrator_ratings (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    book_id       INTEGER NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    narrator_name TEXT NOT NULL,
    rating        INTEGER CHECK (rating IS NULL OR rating BETWEEN 1 AND 5),
    UNIQUE (book_id, narrator_name)
);

CREATE INDEX idx_narrator_ratings_name ON narrator_ratings(narrator_name);
"""

# (version, sql) pairs; each runs once on databases below that version
MIGRATIONS: list[tuple[int, str]] = [
    (2, MIGRATION_V2_NARRATOR_RATINGS),
]

LATEST_SCHEMA_VERSION = MIGRATIONS[-1][0]
