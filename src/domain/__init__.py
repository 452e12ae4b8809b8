"""Domain layer - pipeline models, errors and value objects."""

from src.domain.exceptions import (
    DomainException,
    Exhausted,
    InvalidMediaException,
    InvalidStageTransition,
    InvalidYouTubeUrlException,
    PipelineError,
    PreconditionFailed,
    QuestionNotFoundException,
    RemoteRejected,
    RemoteTransient,
    SourceUnavailableException,
    StageRetriesExhausted,
    SubmissionNotQueuedException,
    UsageLimitExceededException,
    VideoNotFoundException,
    VideoNotReadyException,
    VideoNotRetryableException,
)
from src.domain.models import (
    ContentAnalysis,
    Job,
    JobStatus,
    ProcessingStage,
    Question,
    QuestionType,
    Summary,
    Transcript,
    UserUsage,
    Video,
    VideoStatus,
)
from src.domain.value_objects import RetryPolicy, YouTubeVideoId

__all__ = [
    # Exceptions
    "DomainException",
    "VideoNotFoundException",
    "VideoNotRetryableException",
    "VideoNotReadyException",
    "QuestionNotFoundException",
    "SubmissionNotQueuedException",
    "InvalidStageTransition",
    "InvalidYouTubeUrlException",
    "InvalidMediaException",
    "SourceUnavailableException",
    "UsageLimitExceededException",
    "PipelineError",
    "PreconditionFailed",
    "RemoteTransient",
    "StageRetriesExhausted",
    "RemoteRejected",
    "Exhausted",
    # Models
    "Video",
    "VideoStatus",
    "ProcessingStage",
    "Transcript",
    "Summary",
    "ContentAnalysis",
    "Question",
    "QuestionType",
    "Job",
    "JobStatus",
    "UserUsage",
    # Value Objects
    "RetryPolicy",
    "YouTubeVideoId",
]
