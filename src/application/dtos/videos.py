"""DTOs for video submission and retrieval."""

from datetime import datetime
from typing import Self

from pydantic import BaseModel, Field

from src.domain.models.question import Question
from src.domain.models.summary import ContentAnalysis, Summary, SummaryType
from src.domain.models.transcript import Transcript
from src.domain.models.video import ProcessingStage, Video, VideoStatus


class SubmitYouTubeRequest(BaseModel):
    """Request to process a YouTube video."""

    url: str = Field(description="YouTube watch, short or shorts URL")
    title: str | None = Field(
        default=None,
        max_length=500,
        description="Display title; defaults to the YouTube title",
    )


class AnswerQuestionRequest(BaseModel):
    """An answer to one generated question."""

    answer: str = Field(min_length=1, max_length=5000, description="Option text or free answer")
    time_spent_seconds: float = Field(
        default=0.0,
        ge=0,
        le=86400,
        description="Time the caller spent on the question",
    )


class RegenerateSummaryRequest(BaseModel):
    """Request to summarize a finished video again."""

    summary_type: SummaryType = Field(
        default=SummaryType.DETAILED,
        description="Summary style",
    )
    language: str | None = Field(
        default=None,
        min_length=2,
        max_length=10,
        description="Output language; defaults to the transcript language",
    )


class VideoResponse(BaseModel):
    """Video record without its artifacts."""

    id: str = Field(description="Video ID")
    title: str = Field(description="Display title")
    source: str = Field(description="'upload' or 'youtube'")
    youtube_id: str | None = Field(default=None, description="YouTube video ID")
    duration_seconds: float | None = Field(default=None, description="Media duration")
    status: VideoStatus = Field(description="Lifecycle status")
    processing_stage: ProcessingStage = Field(description="Current pipeline stage")
    failed_stage: ProcessingStage | None = Field(
        default=None,
        description="Stage that was running when the video failed",
    )
    error: str | None = Field(default=None, description="Failure message")
    progress_percent: int = Field(ge=0, le=100, description="Rough progress")
    has_transcript: bool = False
    has_summary: bool = False
    question_count: int = 0
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_video(cls, video: Video) -> Self:
        return cls(
            id=video.id,
            title=video.title,
            source="youtube" if video.is_url_sourced else "upload",
            youtube_id=video.youtube_id,
            duration_seconds=video.duration_seconds,
            status=video.status,
            processing_stage=video.processing_stage,
            failed_stage=video.failed_stage,
            error=video.error,
            progress_percent=video.progress_percent,
            has_transcript=video.transcript is not None,
            has_summary=video.summary is not None,
            question_count=len(video.questions or []),
            created_at=video.created_at,
            updated_at=video.updated_at,
            completed_at=video.completed_at,
        )


class VideoDetailResponse(VideoResponse):
    """Video record with every artifact produced so far."""

    transcript: Transcript | None = None
    summary: Summary | None = None
    questions: list[Question] | None = None
    analysis: ContentAnalysis | None = None

    @classmethod
    def from_video(cls, video: Video) -> Self:
        base = VideoResponse.from_video(video).model_dump()
        return cls(
            **base,
            transcript=video.transcript,
            summary=video.summary,
            questions=video.questions,
            analysis=video.analysis,
        )


class VideoStatusResponse(BaseModel):
    """Pollable pipeline state."""

    video_id: str
    status: VideoStatus
    processing_stage: ProcessingStage
    failed_stage: ProcessingStage | None = None
    error: str | None = None
    progress_percent: int = Field(ge=0, le=100)

    @classmethod
    def from_video(cls, video: Video) -> Self:
        return cls(
            video_id=video.id,
            status=video.status,
            processing_stage=video.processing_stage,
            failed_stage=video.failed_stage,
            error=video.error,
            progress_percent=video.progress_percent,
        )


class QuestionsResponse(BaseModel):
    """Generated questions for a video."""

    video_id: str
    questions: list[Question]
    total: int


class AnswerResultResponse(BaseModel):
    """Grading result and the question's updated counters."""

    video_id: str
    question_index: int
    correct: bool
    correct_answer: str | None = None
    explanation: str | None = None
    total_attempts: int
    correct_attempts: int
    success_rate: float = Field(description="Percent of answers that were correct")
    average_time_seconds: float

    @classmethod
    def from_question(
        cls,
        video_id: str,
        index: int,
        question: Question,
        correct: bool,
    ) -> Self:
        stats = question.statistics
        correct_option = next(
            (option.text for option in question.options if option.is_correct), None
        )
        return cls(
            video_id=video_id,
            question_index=index,
            correct=correct,
            correct_answer=question.correct_answer or correct_option,
            explanation=question.explanation,
            total_attempts=stats.total_attempts,
            correct_attempts=stats.correct_attempts,
            success_rate=stats.success_rate,
            average_time_seconds=stats.average_time_seconds,
        )


class PaginationInfo(BaseModel):
    """Pagination metadata."""

    page: int = Field(ge=1, description="Current page number")
    page_size: int = Field(ge=1, le=100, description="Items per page")
    total_items: int = Field(ge=0, description="Total number of items")
    total_pages: int = Field(ge=0, description="Total number of pages")


class VideoListResponse(BaseModel):
    """A page of the caller's videos."""

    videos: list[VideoResponse] = Field(description="Videos on this page")
    pagination: PaginationInfo = Field(description="Pagination metadata")


class UsageResponse(BaseModel):
    """Caller's monthly allowance."""

    user_id: str
    videos_processed: int
    monthly_limit: int
    remaining: int
