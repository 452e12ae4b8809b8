"""Abstract base class for resolving YouTube videos to audio streams."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class ResolvedAudio:
    """A YouTube video resolved to a directly fetchable audio stream."""

    video_id: str
    title: str
    duration_seconds: float
    audio_url: str
    channel_name: str = ""
    thumbnail_url: str = ""


class YouTubeResolverBase(ABC):
    """Looks up video metadata and the best audio-only format URL.

    Nothing is downloaded: the transcription provider fetches the stream
    from the returned URL itself.
    """

    @abstractmethod
    async def resolve(self, url: str) -> ResolvedAudio:
        """Resolve a YouTube URL.

        Args:
            url: YouTube watch, short or shorts URL.

        Returns:
            Metadata plus the audio stream URL.

        Raises:
            InvalidYouTubeUrlException: If the video does not exist or is private.
            SourceUnavailableException: If no audio stream can be resolved.
        """
