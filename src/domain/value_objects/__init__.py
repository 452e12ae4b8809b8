"""Domain value objects."""

from src.domain.value_objects.retry_policy import RetryPolicy
from src.domain.value_objects.youtube_video_id import YouTubeVideoId

__all__ = [
    "RetryPolicy",
    "YouTubeVideoId",
]
