"""Media probing services."""

from src.infrastructure.media.base import MediaInfo, MediaProbeBase
from src.infrastructure.media.ffprobe import FFprobeMediaProbe

__all__ = [
    # Base classes
    "MediaProbeBase",
    "MediaInfo",
    # Implementations
    "FFprobeMediaProbe",
]
