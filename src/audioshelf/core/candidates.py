# ABOUTME: Book candidates produced by ingestion, and the builders that create them.
# ABOUTME: Resolves single files, multi-file folders, and ambiguous multi-.m4b folders.

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any

from audioshelf.core.naming import parse_series_from_name
from audioshelf.formats.audio import (
    AUDIO_EXTENSIONS,
    AUDIOBOOK_EXTENSIONS,
    TagExtractor,
)
from audioshelf.metadata.types import AudioMetadata

logger = logging.getLogger(__name__)

SHORT_DURATION_SECONDS = 600
SMALL_FILE_BYTES = 5 * 1024 * 1024

SHORT_DURATION_WARNING = "Very short duration (<10 min)"
SMALL_FILE_WARNING = "Small file (<5 MB)"
DECISION_REQUIRED_SUFFIX = "user decision required"


class CandidateKind(str, Enum):
    SINGLE_FILE = "SingleFile"
    FOLDER = "Folder"


class UserDecision(str, Enum):
    """Reviewer's choice for a folder holding several .m4b files."""

    UNSET = "unset"
    SINGLE_BOOK = "single"
    MULTIPLE_BOOKS = "multiple"


class RepresentativePolicy(str, Enum):
    """Which file supplies metadata for a folder with no .m4b file."""

    LARGEST = "largest"
    FIRST = "first"


@dataclass
class ScanConfig:
    """Tunable ingestion policy. Defaults match a typical audiobook library."""

    audio_extensions: frozenset[str] = AUDIO_EXTENSIONS
    audiobook_extensions: frozenset[str] = AUDIOBOOK_EXTENSIONS
    short_duration_seconds: int = SHORT_DURATION_SECONDS
    small_file_bytes: int = SMALL_FILE_BYTES
    representative_policy: RepresentativePolicy = RepresentativePolicy.LARGEST
    workers: int = 1

    def is_audio(self, path: Path) -> bool:
        return path.suffix.lower() in self.audio_extensions

    def is_audiobook(self, path: Path) -> bool:
        return path.suffix.lower() in self.audiobook_extensions


@dataclass
class BookCandidate:
    """An audiobook found on disk, awaiting review and commit.

    Never persisted directly: the reviewer toggles `selected` and, for
    ambiguous folders, sets `user_decision` before the committer turns it
    into a catalog record keyed by `path`.
    """

    path: Path
    kind: CandidateKind
    title: str
    author: str | None = None
    narrator: str | None = None
    series: str | None = None
    series_position: str | None = None
    duration_seconds: int | None = None
    total_size_bytes: int = 0
    file_count: int = 0
    has_embedded_cover: bool = False
    ambiguous_multi_part: bool = False
    part_paths: list[Path] = field(default_factory=list)
    user_decision: UserDecision = UserDecision.UNSET
    warnings: list[str] = field(default_factory=list)
    selected: bool = True
    exists_in_catalog: bool = False

    @property
    def part_count(self) -> int:
        return len(self.part_paths)

    @property
    def needs_decision(self) -> bool:
        """Ambiguous folders cannot be committed until the reviewer decides."""
        return self.ambiguous_multi_part and self.user_decision is UserDecision.UNSET

    def record_fields(self) -> dict[str, Any]:
        """Descriptive fields for the catalog record built from this candidate."""
        return {
            "kind": self.kind.value,
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


def _extract_all(
    paths: list[Path], extractor: TagExtractor, workers: int
) -> list[AudioMetadata]:
    """Extract metadata for each path, returned in input order."""
    if workers <= 1 or len(paths) <= 1:
        return [extractor.extract(p) for p in paths]
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(extractor.extract, paths))


def _sum_durations(metas: list[AudioMetadata]) -> int | None:
    """Total duration, or None when no file reported one."""
    durations = [m.duration_seconds for m in metas if m.duration_seconds]
    return sum(durations) if durations else None


def _resolve(
    meta: AudioMetadata, name: str
) -> tuple[str, str | None, str | None]:
    """Resolve title, series, and position: tags first, then the naming heuristics."""
    inferred = parse_series_from_name(name)
    title = meta.title or inferred.title or name
    if meta.series:
        return title, meta.series, meta.series_position
    return title, inferred.series, inferred.position


def build_single_file_candidate(
    path: Path,
    extractor: TagExtractor,
    config: ScanConfig | None = None,
) -> BookCandidate | None:
    """Build a candidate for one audio file, or None if it isn't audio.

    Attaches advisory warnings for files that look too short or too small to
    be a whole audiobook.
    """
    config = config or ScanConfig()
    if not (config.is_audio(path) or config.is_audiobook(path)):
        return None

    size = path.stat().st_size
    meta = extractor.extract(path)
    title, series, position = _resolve(meta, path.stem)

    warnings: list[str] = []
    if meta.duration_seconds and meta.duration_seconds < config.short_duration_seconds:
        warnings.append(SHORT_DURATION_WARNING)
    if size < config.small_file_bytes:
        warnings.append(SMALL_FILE_WARNING)

    return BookCandidate(
        path=path,
        kind=CandidateKind.SINGLE_FILE,
        title=title,
        author=meta.author,
        narrator=meta.narrator,
        series=series,
        series_position=position,
        duration_seconds=meta.duration_seconds,
        total_size_bytes=size,
        file_count=1,
        has_embedded_cover=meta.has_cover,
        warnings=warnings,
    )


def build_folder_candidate(
    directory: Path,
    audio_files: list[Path],
    extractor: TagExtractor,
    config: ScanConfig | None = None,
) -> BookCandidate | None:
    """Build one Folder candidate from the audio files directly inside a directory.

    Three cases, by number of .m4b files:
    - several: ambiguous; the first part previews the metadata, durations
      are summed, and the reviewer must decide single vs. multiple books.
    - one: that file is authoritative; size and count cover every audio file.
    - none: the largest file supplies the metadata and durations are summed.

    Returns None when the directory holds no audio files.
    """
    config = config or ScanConfig()
    files = sorted(audio_files)
    if not files:
        return None

    sizes = {p: p.stat().st_size for p in files}
    total_size = sum(sizes.values())
    preferred = [p for p in files if config.is_audiobook(p)]
    warnings: list[str] = []

    candidate = BookCandidate(
        path=directory,
        kind=CandidateKind.FOLDER,
        title=directory.name,
        total_size_bytes=total_size,
        file_count=len(files),
        warnings=warnings,
    )

    if len(preferred) > 1:
        metas = _extract_all(preferred, extractor, config.workers)
        meta = metas[0]
        candidate.duration_seconds = _sum_durations(metas)
        candidate.ambiguous_multi_part = True
        candidate.part_paths = list(preferred)
        warnings.append(
            f"Multiple .m4b files ({len(preferred)}): {DECISION_REQUIRED_SUFFIX}"
        )
    elif len(preferred) == 1:
        meta = extractor.extract(preferred[0])
        if meta.duration_seconds:
            candidate.duration_seconds = meta.duration_seconds
        else:
            others = [p for p in files if p != preferred[0]]
            candidate.duration_seconds = _sum_durations(
                [meta, *_extract_all(others, extractor, config.workers)]
            )
    else:
        metas = _extract_all(files, extractor, config.workers)
        if config.representative_policy is RepresentativePolicy.LARGEST:
            # max() keeps the first of equal sizes, so ties resolve by name
            index = max(range(len(files)), key=lambda i: sizes[files[i]])
        else:
            index = 0
        meta = metas[index]
        candidate.duration_seconds = _sum_durations(metas)

    title, series, position = _resolve(meta, directory.name)
    candidate.title = title
    candidate.author = meta.author
    candidate.narrator = meta.narrator
    candidate.series = series
    candidate.series_position = position
    candidate.has_embedded_cover = meta.has_cover

    logger.debug("Folder candidate %s (%d audio files)", directory, len(files))
    return candidate


def split_multipart_candidate(
    candidate: BookCandidate,
    extractor: TagExtractor,
    config: ScanConfig | None = None,
) -> list[BookCandidate]:
    """Expand an ambiguous folder into one single-file candidate per part.

    Each part is re-extracted; author, narrator, series, and position fall
    back to the parent's values when a part has none of its own.
    """
    if not candidate.part_paths:
        return [candidate]

    config = config or ScanConfig()
    parts: list[BookCandidate] = []
    for part_path in candidate.part_paths:
        part = build_single_file_candidate(part_path, extractor, config)
        if part is None:
            continue
        part.author = part.author or candidate.author
        part.narrator = part.narrator or candidate.narrator
        part.series = part.series or candidate.series
        part.series_position = part.series_position or candidate.series_position
        parts.append(part)
    return parts


def merge_multipart_candidate(candidate: BookCandidate) -> BookCandidate:
    """Resolve an ambiguous folder as one book split into parts."""
    return replace(
        candidate,
        user_decision=UserDecision.SINGLE_BOOK,
        warnings=[w for w in candidate.warnings if DECISION_REQUIRED_SUFFIX not in w],
    )


def candidate_to_dict(candidate: BookCandidate) -> dict[str, Any]:
    """Serialize a candidate for a JSON review file."""
    return {
        "path": str(candidate.path),
        "kind": candidate.kind.value,
        "title": candidate.title,
        "author": candidate.author,
        "narrator": candidate.narrator,
        "series": candidate.series,
        "series_position": candidate.series_position,
        "duration_seconds": candidate.duration_seconds,
        "total_size_bytes": candidate.total_size_bytes,
        "file_count": candidate.file_count,
        "has_embedded_cover": candidate.has_embedded_cover,
        "ambiguous_multi_part": candidate.ambiguous_multi_part,
        "part_paths": [str(p) for p in candidate.part_paths],
        "part_count": candidate.part_count,
        "user_decision": candidate.user_decision.value,
        "warnings": list(candidate.warnings),
        "selected": candidate.selected,
        "exists_in_catalog": candidate.exists_in_catalog,
    }


def candidate_from_dict(data: dict[str, Any]) -> BookCandidate:
    """Rebuild a reviewed candidate from its JSON form.

    Raises:
        ValueError: If a required key is missing or an enum value is unknown.
    """
    try:
        return BookCandidate(
            path=Path(data["path"]).expanduser().resolve(),
            kind=CandidateKind(data.get("kind", CandidateKind.FOLDER.value)),
            title=data["title"],
            author=data.get("author"),
            narrator=data.get("narrator"),
            series=data.get("series"),
            series_position=data.get("series_position"),
            duration_seconds=data.get("duration_seconds"),
            total_size_bytes=data.get("total_size_bytes") or 0,
            file_count=data.get("file_count") or 0,
            has_embedded_cover=bool(data.get("has_embedded_cover")),
            ambiguous_multi_part=bool(data.get("ambiguous_multi_part")),
            part_paths=[Path(p).expanduser().resolve() for p in data.get("part_paths") or []],
            user_decision=UserDecision(data.get("user_decision") or UserDecision.UNSET.value),
            warnings=list(data.get("warnings") or []),
            selected=bool(data.get("selected", True)),
            exists_in_catalog=bool(data.get("exists_in_catalog")),
        )
    except KeyError as exc:
        raise ValueError(f"Candidate is missing required field {exc}") from exc
