"""Abstract base class for transcription services."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from src.domain.models.transcript import Transcript


class TranscriptionServiceBase(ABC):
    """Speech-to-text provider behind the transcription stage.

    Implementations raise the pipeline error taxonomy:
    - PreconditionFailed when the input has no usable audio
    - RemoteTransient for network errors, timeouts, 5xx and throttling
    - RemoteRejected when the provider reports an error or returns garbage
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Short provider identifier used in logs and errors."""

    @abstractmethod
    async def transcribe(
        self,
        file_path: Path,
        options: dict[str, Any] | None = None,
    ) -> Transcript:
        """Transcribe a local media file.

        Args:
            file_path: Media file with an audio track.
            options: Provider feature overrides merged over the defaults.

        Returns:
            Normalized transcript with times in seconds.
        """

    @abstractmethod
    async def transcribe_url(
        self,
        audio_url: str,
        options: dict[str, Any] | None = None,
    ) -> Transcript:
        """Transcribe audio the provider can fetch itself.

        Args:
            audio_url: Publicly reachable audio URL.
            options: Provider feature overrides merged over the defaults.

        Returns:
            Normalized transcript with times in seconds.
        """

    async def close(self) -> None:  # noqa: B027
        """Release network resources. No-op by default."""
