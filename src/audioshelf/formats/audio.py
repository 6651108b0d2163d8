# ABOUTME: Audio file classification and tag extraction using mutagen.
# ABOUTME: Defensive wrapper that turns unreadable files into empty AudioMetadata.

import base64
import logging
import re
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import mutagen
from mutagen.flac import Picture
from mutagen.id3 import ID3

from audioshelf.metadata.types import AudioMetadata

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {".mp3", ".m4a", ".m4b", ".flac", ".ogg", ".opus", ".wma", ".aac"}
)

# The audiobook container format. More than one of these in a folder is ambiguous.
AUDIOBOOK_EXTENSIONS: frozenset[str] = frozenset({".m4b"})

# Per-container tag keys, tried in order: ID3, MP4, Vorbis comment, ASF.
_TAG_KEYS: dict[str, tuple[str, ...]] = {
    "title": ("TIT2", "\xa9nam", "title", "Title"),
    "artist": ("TPE1", "\xa9ART", "artist", "Author"),
    "albumartist": ("TPE2", "aART", "albumartist", "WM/AlbumArtist"),
    "composer": ("TCOM", "\xa9wrt", "composer", "WM/Composer"),
    "comment": ("COMM", "\xa9cmt", "comment", "Description"),
    "series": ("TXXX:SERIES", "MVNM", "----:com.apple.iTunes:SERIES", "\xa9mvn", "series"),
    "series_part": (
        "TXXX:SERIES-PART",
        "MVIN",
        "----:com.apple.iTunes:SERIES-PART",
        "\xa9mvi",
        "series-part",
    ),
}

_NARRATED_BY_RE = re.compile(r"narrat(?:ed|or)\s*(?:by)?:?\s*", re.IGNORECASE)


def _normalize_ext(ext: str) -> str:
    ext = ext.lower()
    return ext if ext.startswith(".") else f".{ext}"


def is_audio_file(
    path: Path | str, extensions: frozenset[str] = AUDIO_EXTENSIONS
) -> bool:
    """Check whether a filename has a recognized audio extension."""
    return Path(path).suffix.lower() in extensions


def is_audiobook_file(
    path: Path | str, extensions: frozenset[str] = AUDIOBOOK_EXTENSIONS
) -> bool:
    """Check whether a filename is in the preferred single-file audiobook format."""
    return Path(path).suffix.lower() in extensions


def parse_extensions(value: str) -> frozenset[str]:
    """Parse a comma-separated extension list like "mp3,.m4b" into a normalized set."""
    return frozenset(_normalize_ext(part.strip()) for part in value.split(",") if part.strip())


@runtime_checkable
class TagExtractor(Protocol):
    """Protocol for tag readers.

    Implementations must never raise: any failure yields an AudioMetadata
    with every field unset.
    """

    def extract(self, path: Path) -> AudioMetadata: ...


def _tag_values(tags: Any, key: str) -> list[str]:
    """Read every text value stored under a key, whatever the tag container."""
    if isinstance(tags, ID3):
        return [str(text) for frame in tags.getall(key) for text in frame.text]
    try:
        values = tags.get(key)
    except (KeyError, ValueError, TypeError):
        return []
    if not values:
        return []
    if isinstance(values, str):
        return [values]
    # MP4 freeform atoms hold raw bytes
    return [
        value.decode("utf-8", "replace") if isinstance(value, bytes) else str(value)
        for value in values
    ]


def _lookup(tags: Any, name: str) -> list[str]:
    """Return the values for a logical tag name, first container key that has any."""
    if tags is None:
        return []
    for key in _TAG_KEYS[name]:
        values = [v.strip() for v in _tag_values(tags, key) if v and v.strip()]
        if values:
            return values
    return []


def _first(tags: Any, name: str) -> str | None:
    values = _lookup(tags, name)
    return values[0] if values else None


def _find_narrator(tags: Any) -> str | None:
    """Narrators live in the composer tag, or in a "Narrated by" comment."""
    composers = _lookup(tags, "composer")
    if composers:
        return ", ".join(composers)

    for comment in _lookup(tags, "comment"):
        if "narrat" in comment.lower():
            return _NARRATED_BY_RE.sub("", comment, count=1).strip() or None
    return None


def _series_position(tags: Any) -> str | None:
    """Position within the series; "2/5" style part numbers keep only the first number."""
    value = _first(tags, "series_part")
    if value is None:
        return None
    return value.split("/", 1)[0].strip() or None


def _cover_bytes(audio: Any) -> bytes | None:
    """Return the first embedded picture's bytes, or None."""
    # FLAC picture blocks
    for pic in getattr(audio, "pictures", None) or []:
        if pic.data:
            return pic.data

    tags = audio.tags
    if tags is None:
        return None

    if isinstance(tags, ID3):
        for frame in tags.getall("APIC"):
            if frame.data:
                return frame.data
        return None

    # MP4 covr atom
    covr = tags.get("covr") if hasattr(tags, "get") else None
    if covr:
        return bytes(covr[0])

    # Ogg Vorbis / Opus base64 picture block
    blocks = tags.get("metadata_block_picture") if hasattr(tags, "get") else None
    if blocks:
        pic = Picture(base64.b64decode(blocks[0]))
        if pic.data:
            return pic.data
    return None


class MutagenTagExtractor:
    """Reads audiobook tags using mutagen.

    Author comes from the artist tag, falling back to album artist. The
    narrator comes from the composer tag or a "Narrated by" comment. Series
    and position come from SERIES/SERIES-PART tags or the movement tags.
    """

    def extract(self, path: Path) -> AudioMetadata:
        try:
            audio = mutagen.File(str(path))
        except Exception as exc:
            logger.warning("Tag extraction failed for %s: %s", path, exc)
            return AudioMetadata()

        if audio is None:
            logger.warning("Unrecognized audio format: %s", path)
            return AudioMetadata()

        try:
            tags = audio.tags
            length = getattr(audio.info, "length", None)
            return AudioMetadata(
                title=_first(tags, "title"),
                author=_first(tags, "artist") or _first(tags, "albumartist"),
                narrator=_find_narrator(tags),
                duration_seconds=round(length) if length else None,
                has_cover=_cover_bytes(audio) is not None,
                series=_first(tags, "series"),
                series_position=_series_position(tags),
            )
        except Exception as exc:
            logger.warning("Tag extraction failed for %s: %s", path, exc)
            return AudioMetadata()


def extract_cover_image(path: Path) -> bytes | None:
    """Extract embedded cover art from an audio file, if present."""
    try:
        audio = mutagen.File(str(path))
        if audio is None:
            return None
        return _cover_bytes(audio)
    except Exception as exc:
        logger.warning("Cover extraction failed for %s: %s", path, exc)
        return None
