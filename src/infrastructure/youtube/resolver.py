"""yt-dlp implementation of the YouTube resolver."""

import asyncio
from pathlib import Path
from typing import Any

import yt_dlp

from src.commons.telemetry import get_logger
from src.domain.exceptions import (
    InvalidYouTubeUrlException,
    SourceUnavailableException,
)
from src.infrastructure.youtube.base import ResolvedAudio, YouTubeResolverBase

_UNAVAILABLE_MARKERS = ("Video unavailable", "Private video", "This video has been removed")


def pick_audio_format(formats: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Choose the highest-bitrate audio-only format, if any.

    Falls back to the best muxed format that still carries audio.
    """
    with_audio = [
        fmt
        for fmt in formats
        if fmt.get("url") and fmt.get("acodec") not in (None, "none")
    ]
    audio_only = [fmt for fmt in with_audio if fmt.get("vcodec") in (None, "none")]
    candidates = audio_only or with_audio
    if not candidates:
        return None
    return max(candidates, key=lambda fmt: float(fmt.get("abr") or fmt.get("tbr") or 0))


class YtDlpResolver(YouTubeResolverBase):
    """Resolves YouTube URLs with yt-dlp metadata extraction."""

    def __init__(
        self,
        cookies_file: Path | None = None,
        proxy: str | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            cookies_file: Path to cookies file for authenticated lookups.
            proxy: Proxy URL.
        """
        self._cookies_file = cookies_file
        self._proxy = proxy
        self._logger = get_logger(__name__)

    def _options(self) -> dict[str, Any]:
        opts: dict[str, Any] = {
            "quiet": True,
            "no_warnings": True,
            "skip_download": True,
        }
        if self._cookies_file:
            opts["cookiefile"] = str(self._cookies_file)
        if self._proxy:
            opts["proxy"] = self._proxy
        return opts

    async def resolve(self, url: str) -> ResolvedAudio:
        opts = self._options()

        def _extract() -> dict[str, Any] | None:
            with yt_dlp.YoutubeDL(opts) as ydl:
                info = ydl.extract_info(url, download=False)
                return dict(info) if info else None

        loop = asyncio.get_running_loop()
        try:
            info = await loop.run_in_executor(None, _extract)
        except yt_dlp.DownloadError as e:
            if any(marker in str(e) for marker in _UNAVAILABLE_MARKERS):
                raise InvalidYouTubeUrlException(url, "Video unavailable") from e
            raise SourceUnavailableException(url, str(e)) from e

        if info is None:
            raise InvalidYouTubeUrlException(url, "Video unavailable")

        audio_format = pick_audio_format(info.get("formats") or [])
        if audio_format is None:
            raise SourceUnavailableException(url, "No audio stream available")

        self._logger.info(
            "Resolved YouTube audio",
            extra={"youtube_id": info.get("id"), "format_id": audio_format.get("format_id")},
        )
        return ResolvedAudio(
            video_id=info.get("id", ""),
            title=info.get("title", ""),
            duration_seconds=float(info.get("duration") or 0),
            audio_url=audio_format["url"],
            channel_name=info.get("channel") or info.get("uploader") or "",
            thumbnail_url=info.get("thumbnail", ""),
        )
