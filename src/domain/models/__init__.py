"""Domain models."""

from src.domain.models.job import Job, JobStatus
from src.domain.models.question import (
    Question,
    QuestionCategory,
    QuestionDifficulty,
    QuestionOption,
    QuestionStatistics,
    QuestionType,
)
from src.domain.models.summary import (
    ContentAnalysis,
    Emotion,
    KeyPoint,
    SentimentAnalysis,
    Summary,
    SummaryType,
    Topic,
)
from src.domain.models.transcript import (
    Chapter,
    Entity,
    Highlight,
    SentimentSpan,
    SpeakerTurn,
    TimeRange,
    Transcript,
    TranscriptWord,
)
from src.domain.models.usage import UserUsage
from src.domain.models.video import ProcessingStage, Video, VideoStatus

__all__ = [
    # Video
    "Video",
    "VideoStatus",
    "ProcessingStage",
    # Transcript
    "Transcript",
    "TranscriptWord",
    "SpeakerTurn",
    "Chapter",
    "Entity",
    "SentimentSpan",
    "Highlight",
    "TimeRange",
    # Summary
    "Summary",
    "SummaryType",
    "ContentAnalysis",
    "KeyPoint",
    "Topic",
    "Emotion",
    "SentimentAnalysis",
    # Questions
    "Question",
    "QuestionType",
    "QuestionDifficulty",
    "QuestionCategory",
    "QuestionOption",
    "QuestionStatistics",
    # Queue & usage
    "Job",
    "JobStatus",
    "UserUsage",
]
