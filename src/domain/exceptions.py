"""Domain exceptions for the video pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.domain.models.video import ProcessingStage, VideoStatus


class DomainException(Exception):
    """Base exception for domain errors."""


class VideoNotFoundException(DomainException):
    """Raised when a requested video is not found."""

    def __init__(self, video_id: str) -> None:
        self.video_id = video_id
        super().__init__(f"Video not found: {video_id}")


class VideoNotRetryableException(DomainException):
    """Raised when resubmitting a video that has not failed."""

    def __init__(self, video_id: str, status: VideoStatus) -> None:
        self.video_id = video_id
        self.status = status
        super().__init__(
            f"Video {video_id} cannot be resubmitted. Current status: {status.value}"
        )


class InvalidStageTransition(DomainException):
    """Raised when a stage write would move the pipeline backwards."""

    def __init__(
        self,
        video_id: str,
        current: ProcessingStage | None,
        target: ProcessingStage,
    ) -> None:
        self.video_id = video_id
        self.current = current
        self.target = target
        current_value = current.value if current is not None else "unknown"
        super().__init__(
            f"Video {video_id} cannot move from {current_value} to {target.value}"
        )


class VideoNotReadyException(DomainException):
    """Raised when an operation needs a video that finished processing."""

    def __init__(self, video_id: str, status: VideoStatus) -> None:
        self.video_id = video_id
        self.status = status
        super().__init__(
            f"Video {video_id} has not finished processing. Current status: {status.value}"
        )


class QuestionNotFoundException(DomainException):
    """Raised when a question index is outside a video's question list."""

    def __init__(self, video_id: str, index: int) -> None:
        self.video_id = video_id
        self.index = index
        super().__init__(f"Video {video_id} has no question at index {index}")


class SubmissionNotQueuedException(DomainException):
    """Raised when a video record was created but its job could not be queued.

    The record is left failed so it can be resubmitted.
    """

    def __init__(self, video_id: str, reason: str) -> None:
        self.video_id = video_id
        self.reason = reason
        super().__init__(f"Video {video_id} was saved but could not be queued: {reason}")


class InvalidYouTubeUrlException(DomainException):
    """Raised when a YouTube URL is invalid or unsupported."""

    def __init__(self, url: str, reason: str = "Invalid URL") -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid YouTube URL '{url}': {reason}")


class SourceUnavailableException(DomainException):
    """Raised when a remote source cannot be resolved to playable audio."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Source unavailable '{url}': {reason}")


class InvalidMediaException(DomainException):
    """Raised when an uploaded file is not usable media."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid media: {reason}")


class UsageLimitExceededException(DomainException):
    """Raised when a user has used up the monthly video allowance."""

    def __init__(self, user_id: str, limit: int) -> None:
        self.user_id = user_id
        self.limit = limit
        super().__init__(f"Monthly limit of {limit} videos reached for {user_id}")


class PipelineError(DomainException):
    """Base class for failures raised while running pipeline stages."""

    retryable: bool = False

    def __init__(self, reason: str, stage: str | None = None) -> None:
        self.reason = reason
        self.stage = stage
        prefix = f"[{stage}] " if stage else ""
        super().__init__(f"{prefix}{reason}")


class PreconditionFailed(PipelineError):
    """Bad input detected before any remote call. Never retried."""


class RemoteTransient(PipelineError):
    """Network error, timeout, 5xx or provider busy. Worth retrying."""

    retryable = True

    def __init__(
        self,
        reason: str,
        stage: str | None = None,
        provider: str | None = None,
    ) -> None:
        self.provider = provider
        super().__init__(reason, stage)


class StageRetriesExhausted(RemoteTransient):
    """Every in-process attempt of a stage failed transiently.

    Still retryable at the queue level, which redelivers the whole job.
    """

    def __init__(
        self,
        stage: str | None,
        attempts: int,
        last_error: BaseException,
    ) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{attempts} attempts failed, last error: {last_error}",
            stage,
            getattr(last_error, "provider", None),
        )


class RemoteRejected(PipelineError):
    """Provider returned an error status or an unusable payload."""

    def __init__(
        self,
        reason: str,
        stage: str | None = None,
        provider: str | None = None,
    ) -> None:
        self.provider = provider
        super().__init__(reason, stage)


class Exhausted(PipelineError):
    """Retry budget consumed without success. Terminal."""

    def __init__(self, reason: str, stage: str | None = None, attempts: int = 0) -> None:
        self.attempts = attempts
        super().__init__(reason, stage)
