# ABOUTME: Series and title inference from audiobook folder and file names.
# ABOUTME: Ordered pattern rules; the first matching pattern wins.

import re
from dataclasses import dataclass

# "Series - Book 2 - Title" or "Series - 02 - Title" (hyphen or en dash)
_SERIES_NUMBER_TITLE_RE = re.compile(
    r"^(.+?)\s*[-–]\s*(?:Book\s*)?(\d+(?:\.\d+)?)\s*[-–]\s*(.+)$",
    re.IGNORECASE,
)

# "Series - Book 2" with no trailing title
_SERIES_NUMBER_RE = re.compile(
    r"^(.+?)\s*[-–]\s*(?:Book\s*)?(\d+(?:\.\d+)?)$",
    re.IGNORECASE,
)

# "[Tag] Series - Title"
_BRACKET_SERIES_TITLE_RE = re.compile(r"^\[.+?\]\s*(.+?)\s*[-–]\s*(.+)$")


@dataclass(frozen=True)
class SeriesInfo:
    """Series name, position, and cleaned title inferred from a name."""

    series: str | None
    position: str | None
    title: str


def parse_series_from_name(name: str) -> SeriesInfo:
    """Infer series, series position, and a clean title from a folder or file name.

    Positions may be decimal ("2.5") and are kept as strings; they are only
    parsed to numbers when sorting.

    Examples:
        "Mistborn - Book 2 - The Well of Ascension" -> ("Mistborn", "2", "The Well of Ascension")
        "Discworld - 07" -> ("Discworld", "07", "Discworld - 07")
        "[Sanderson] Stormlight - Oathbringer" -> ("Stormlight", None, "Oathbringer")
        "Standalone Title" -> (None, None, "Standalone Title")
    """
    match = _SERIES_NUMBER_TITLE_RE.match(name)
    if match:
        return SeriesInfo(
            series=match.group(1).strip(),
            position=match.group(2),
            title=match.group(3).strip(),
        )

    match = _SERIES_NUMBER_RE.match(name)
    if match:
        return SeriesInfo(series=match.group(1).strip(), position=match.group(2), title=name)

    match = _BRACKET_SERIES_TITLE_RE.match(name)
    if match:
        return SeriesInfo(
            series=match.group(1).strip(),
            position=None,
            title=match.group(2).strip(),
        )

    return SeriesInfo(series=None, position=None, title=name)


def parse_position(position: str | None) -> float:
    """Parse a series position for ordering. Missing or unparsable positions sort last."""
    if position is None:
        return float("inf")
    try:
        value = float(position.strip())
    except ValueError:
        return float("inf")
    # NaN would break ordering comparisons
    return value if value == value else float("inf")
