"""Abstract base class for media container probing."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from src.domain.exceptions import PreconditionFailed


@dataclass
class MediaInfo:
    """Streams and format details of a media file."""

    path: Path
    duration_seconds: float
    has_video: bool
    has_audio: bool
    video_codec: str | None = None
    audio_codec: str | None = None
    width: int = 0
    height: int = 0
    format_name: str = ""
    file_size_bytes: int = 0


class MediaProbeBase(ABC):
    """Reads container metadata without decoding the media."""

    @abstractmethod
    async def probe(self, path: Path) -> MediaInfo:
        """Inspect a media file.

        Args:
            path: Local file to inspect.

        Returns:
            Stream and format information.

        Raises:
            PreconditionFailed: If the file is missing or not readable media.
        """

    async def require_audio(self, path: Path, stage: str | None = None) -> MediaInfo:
        """Probe a file and insist it carries a non-empty audio track.

        Raises:
            PreconditionFailed: If there is no audio stream or the duration is zero.
        """
        info = await self.probe(path)
        if not info.has_audio:
            raise PreconditionFailed(f"{path.name} has no audio track", stage)
        if info.duration_seconds <= 0:
            raise PreconditionFailed(f"{path.name} has zero duration", stage)
        return info
