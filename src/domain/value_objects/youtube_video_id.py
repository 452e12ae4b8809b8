"""YouTube video ID value object."""

from __future__ import annotations

import re
from typing import Annotated

from pydantic import BaseModel, Field, field_validator

from src.domain.exceptions import InvalidYouTubeUrlException

YOUTUBE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{11}$")

URL_PATTERNS = [
    re.compile(r"(?:v=|/v/)([a-zA-Z0-9_-]{11})"),
    re.compile(r"(?:youtu\.be/)([a-zA-Z0-9_-]{11})"),
    re.compile(r"(?:embed/)([a-zA-Z0-9_-]{11})"),
    re.compile(r"(?:shorts/)([a-zA-Z0-9_-]{11})"),
]

YOUTUBE_HOSTS = ("youtube.com", "youtu.be", "youtube-nocookie.com")


class YouTubeVideoId(BaseModel, frozen=True):
    """A validated 11-character YouTube video ID.

    Examples:
        >>> YouTubeVideoId.from_url("https://youtu.be/dQw4w9WgXcQ").value
        'dQw4w9WgXcQ'
    """

    value: Annotated[str, Field(min_length=11, max_length=11)]

    @field_validator("value")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate that the value matches YouTube ID format."""
        if not YOUTUBE_ID_PATTERN.match(v):
            raise ValueError(f"Invalid YouTube video ID format: '{v}'")
        return v

    @classmethod
    def from_url(cls, url: str) -> YouTubeVideoId:
        """Extract the video ID from a watch, short, embed or shorts URL.

        Raises:
            InvalidYouTubeUrlException: If no ID can be extracted or the host
                is not a YouTube domain.
        """
        if not url or not isinstance(url, str):
            raise InvalidYouTubeUrlException(str(url), "URL cannot be empty")

        url = url.strip()
        if YOUTUBE_ID_PATTERN.match(url):
            return cls(value=url)

        if not any(host in url for host in YOUTUBE_HOSTS):
            raise InvalidYouTubeUrlException(url, "Not a YouTube URL")

        for pattern in URL_PATTERNS:
            match = pattern.search(url)
            if match:
                return cls(value=match.group(1))

        raise InvalidYouTubeUrlException(url, "Could not extract video ID")

    def to_url(self) -> str:
        """Canonical watch URL."""
        return f"https://www.youtube.com/watch?v={self.value}"

    def __str__(self) -> str:
        return self.value
