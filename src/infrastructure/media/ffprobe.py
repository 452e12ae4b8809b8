"""FFprobe implementation of the media probe."""

import asyncio
import json
import subprocess
from pathlib import Path
from typing import Any

from src.commons.telemetry import get_logger
from src.domain.exceptions import PreconditionFailed
from src.infrastructure.media.base import MediaInfo, MediaProbeBase


class FFprobeMediaProbe(MediaProbeBase):
    """Media probe backed by the ffprobe CLI.

    Requires ffprobe to be installed and available in PATH.
    """

    def __init__(self, ffprobe_path: str = "ffprobe") -> None:
        self._ffprobe = ffprobe_path
        self._logger = get_logger(__name__)

    async def probe(self, path: Path) -> MediaInfo:
        if not path.is_file():
            raise PreconditionFailed(f"Media file not found: {path}")

        cmd = [
            self._ffprobe,
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            str(path),
        ]

        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(
                None,
                lambda: subprocess.run(cmd, capture_output=True, check=True),
            )
            data: dict[str, Any] = json.loads(result.stdout or b"{}")
        except (subprocess.CalledProcessError, json.JSONDecodeError) as e:
            self._logger.warning(
                "ffprobe could not read media",
                extra={"path": str(path), "error": str(e)},
            )
            raise PreconditionFailed(f"Unreadable media file: {path.name}") from e

        return self._parse(path, data)

    @staticmethod
    def _parse(path: Path, data: dict[str, Any]) -> MediaInfo:
        video_stream: dict[str, Any] | None = None
        audio_stream: dict[str, Any] | None = None
        for stream in data.get("streams", []):
            codec_type = stream.get("codec_type")
            if codec_type == "video" and video_stream is None:
                video_stream = stream
            elif codec_type == "audio" and audio_stream is None:
                audio_stream = stream

        format_info = data.get("format", {})
        return MediaInfo(
            path=path,
            duration_seconds=float(format_info.get("duration") or 0),
            has_video=video_stream is not None,
            has_audio=audio_stream is not None,
            video_codec=video_stream.get("codec_name") if video_stream else None,
            audio_codec=audio_stream.get("codec_name") if audio_stream else None,
            width=int(video_stream.get("width", 0)) if video_stream else 0,
            height=int(video_stream.get("height", 0)) if video_stream else 0,
            format_name=format_info.get("format_name", ""),
            file_size_bytes=int(format_info.get("size") or 0),
        )
