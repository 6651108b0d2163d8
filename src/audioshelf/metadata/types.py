# ABOUTME: Core metadata data structure for tags read from a single audio file.
# ABOUTME: AudioMetadata is the interchange format between tag extraction and candidate building.

from dataclasses import dataclass


@dataclass
class AudioMetadata:
    """Tags extracted from one audio file.

    Every field is optional: a file that cannot be parsed yields an instance
    with all fields unset rather than an exception, so a single bad file never
    blocks a scan.
    """

    title: str | None = None
    author: str | None = None
    narrator: str | None = None
    duration_seconds: int | None = None
    has_cover: bool = False
    series: str | None = None
    series_position: str | None = None

    @property
    def is_empty(self) -> bool:
        """Whether nothing at all could be read from the file."""
        return (
            self.title is None
            and self.author is None
            and self.narrator is None
            and self.duration_seconds is None
            and not self.has_cover
        )
