# ABOUTME: Directory walker that discovers audiobook candidates on disk.
# ABOUTME: Depth-first, depth-bounded traversal that collects warnings instead of failing.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from audioshelf.core.candidates import (
    BookCandidate,
    ScanConfig,
    build_folder_candidate,
    build_single_file_candidate,
)
from audioshelf.formats.audio import MutagenTagExtractor, TagExtractor

if TYPE_CHECKING:
    from audioshelf.core.store import RecordStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 5


class InvalidRootError(Exception):
    """Raised when the scan root does not exist or is not a directory."""


@dataclass
class ScanResult:
    """Aggregated results from scanning a directory tree for audiobooks."""

    candidates: list[BookCandidate] = field(default_factory=list)
    scanned_directory_count: int = 0
    warnings: list[str] = field(default_factory=list)
    scan_root: Path | None = None

    @property
    def total_candidates(self) -> int:
        return len(self.candidates)

    @property
    def pending_decisions(self) -> list[BookCandidate]:
        """Ambiguous candidates still waiting for a reviewer decision."""
        return [c for c in self.candidates if c.needs_decision]


def _scan_one(
    directory: Path,
    recursive: bool,
    extractor: TagExtractor,
    config: ScanConfig,
) -> tuple[list[Path], list[BookCandidate]]:
    """Process a single directory.

    Returns the subdirectories to descend into and the candidates found at
    this level. Raises OSError if the directory cannot be read.
    """
    entries = sorted(directory.iterdir(), key=lambda p: p.name)
    subdirs = [p for p in entries if p.is_dir()]
    files = [p for p in entries if p.is_file()]

    audiobooks = [p for p in files if config.is_audiobook(p)]
    audio = [p for p in files if config.is_audio(p)]

    candidates: list[BookCandidate] = []

    if subdirs and recursive:
        # A container of sub-books may also hold loose audiobook files
        for path in audiobooks:
            candidate = build_single_file_candidate(path, extractor, config)
            if candidate is not None:
                candidates.append(candidate)
        return subdirs, candidates

    if audio:
        candidate = build_folder_candidate(directory, audio, extractor, config)
        if candidate is not None:
            candidates.append(candidate)
    elif audiobooks:
        for path in audiobooks:
            candidate = build_single_file_candidate(path, extractor, config)
            if candidate is not None:
                candidates.append(candidate)

    return [], candidates


def scan_directory(
    root: Path,
    *,
    recursive: bool = True,
    max_depth: int = DEFAULT_MAX_DEPTH,
    extractor: TagExtractor | None = None,
    config: ScanConfig | None = None,
) -> ScanResult:
    """Walk a directory tree and build audiobook candidates.

    Traversal is depth-first in name order, driven by an explicit stack of
    (directory, depth) pairs. A leaf directory with audio files becomes one
    Folder candidate; a directory with subdirectories is descended into, and
    any .m4b files sitting next to those subdirectories become single-file
    candidates. Directories deeper than max_depth and directories that
    cannot be read are recorded as warnings and skipped.

    Args:
        root: The top-level directory to scan.
        recursive: Descend into subdirectories.
        max_depth: Deepest level visited; the root is depth 0.
        extractor: Tag reader; defaults to mutagen.
        config: Extension lists and heuristics thresholds.

    Returns:
        A ScanResult with candidates, the number of directories scanned,
        and accumulated warnings.

    Raises:
        InvalidRootError: If root does not exist or is not a directory.
    """
    root = Path(root).expanduser().resolve()
    if not root.exists():
        raise InvalidRootError(f"Path does not exist: {root}")
    if not root.is_dir():
        raise InvalidRootError(f"Path is not a directory: {root}")

    extractor = extractor or MutagenTagExtractor()
    config = config or ScanConfig()
    result = ScanResult(scan_root=root)

    # Candidates emitted after a directory's subtree, matching recursive order
    stack: list[tuple[Path, int, list[BookCandidate] | None]] = [(root, 0, None)]

    while stack:
        directory, depth, deferred = stack.pop()

        if deferred is not None:
            result.candidates.extend(deferred)
            continue

        if depth > max_depth:
            result.warnings.append(f"Max depth reached at: {directory}")
            continue

        result.scanned_directory_count += 1
        logger.debug("Scanning %s (depth %d)", directory, depth)

        try:
            subdirs, candidates = _scan_one(directory, recursive, extractor, config)
        except OSError as exc:
            logger.warning("Error scanning folder %s: %s", directory, exc)
            result.warnings.append(f"Error scanning: {directory}")
            continue

        if not subdirs:
            result.candidates.extend(candidates)
            continue

        stack.append((directory, depth, candidates))
        for subdir in reversed(subdirs):
            stack.append((subdir, depth + 1, None))

    return result


def mark_existing(result: ScanResult, store: RecordStore) -> ScanResult:
    """Flag candidates whose path is already in the catalog."""
    for candidate in result.candidates:
        candidate.exists_in_catalog = store.get_by_path(candidate.path) is not None
    return result
