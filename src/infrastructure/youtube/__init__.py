"""YouTube source resolution."""

from src.infrastructure.youtube.base import ResolvedAudio, YouTubeResolverBase
from src.infrastructure.youtube.resolver import YtDlpResolver, pick_audio_format

__all__ = [
    # Base classes
    "YouTubeResolverBase",
    "ResolvedAudio",
    # Implementations
    "YtDlpResolver",
    "pick_audio_format",
]
