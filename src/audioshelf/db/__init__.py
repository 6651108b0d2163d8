# ABOUTME: Public API for the Audioshelf catalog database layer.
# ABOUTME: Exports connection management, the SQLite record store, and record types.

from audioshelf.db.catalog import LibraryCatalog
from audioshelf.db.connection import DEFAULT_DB_PATH, open_library
from audioshelf.db.mapping import CatalogRecord

__all__ = [
    "DEFAULT_DB_PATH",
    "CatalogRecord",
    "LibraryCatalog",
    "open_library",
]
