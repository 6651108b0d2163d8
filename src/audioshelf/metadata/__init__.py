# ABOUTME: Metadata package for audiobook tag data exchanged between extraction and ingestion.
# ABOUTME: Exports the AudioMetadata dataclass used throughout Audioshelf.

from audioshelf.metadata.types import AudioMetadata

__all__ = [
    "AudioMetadata",
]
