# ABOUTME: Source-aware merge of re-ingested metadata into an existing catalog record.
# ABOUTME: Manual records only gain missing values; scanned records are overwritten.

from collections.abc import Mapping
from typing import Any

# Fields re-ingestion may write. Status, ratings, tags, and notes are not here.
MERGEABLE_FIELDS: tuple[str, ...] = (
    "kind",
    "title",
    "author",
    "narrator",
    "series",
    "series_position",
    "duration_seconds",
    "total_size_bytes",
    "file_count",
    "has_embedded_cover",
)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def merge_fields(
    existing: Mapping[str, Any],
    incoming: Mapping[str, Any],
    is_manual: bool,
) -> dict[str, Any]:
    """Merge incoming descriptive fields over an existing record's values.

    For a manually entered record, a field is only filled when the stored
    value is None or blank, so human edits are never clobbered. For a
    scanned record, every descriptive field takes the incoming value.
    Keys outside MERGEABLE_FIELDS are ignored.

    Returns:
        The merged descriptive fields (only keys present in incoming).
    """
    merged: dict[str, Any] = {}
    for key in MERGEABLE_FIELDS:
        if key not in incoming:
            continue
        current = existing.get(key)
        if is_manual and not _is_empty(current):
            merged[key] = current
        else:
            merged[key] = incoming[key]
    return merged
