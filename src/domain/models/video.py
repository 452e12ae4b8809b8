"""Video aggregate root and pipeline state machine."""

from datetime import UTC, datetime
from enum import Enum
from typing import Self
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from src.domain.models.question import Question
from src.domain.models.summary import ContentAnalysis, Summary
from src.domain.models.transcript import Transcript


class VideoStatus(str, Enum):
    """Coarse lifecycle status of a video."""

    UPLOADING = "uploading"  # Record created, waiting for a worker
    PROCESSING = "processing"  # A worker has claimed the job
    COMPLETED = "completed"  # All artifacts persisted
    FAILED = "failed"  # Terminal until resubmitted


class ProcessingStage(str, Enum):
    """Fine-grained pointer into the fixed stage sequence."""

    TRANSCRIPTION = "transcription"
    SUMMARIZATION = "summarization"
    QUESTION_GENERATION = "question_generation"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def order(self) -> int:
        """Position in the forward sequence. FAILED sorts after everything."""
        if self in _STAGE_SEQUENCE:
            return _STAGE_SEQUENCE.index(self)
        return len(_STAGE_SEQUENCE)

    @property
    def is_runnable(self) -> bool:
        """Check whether the stage performs remote work."""
        return self in {
            ProcessingStage.TRANSCRIPTION,
            ProcessingStage.SUMMARIZATION,
            ProcessingStage.QUESTION_GENERATION,
        }

    def next(self) -> "ProcessingStage":
        """Return the stage that follows this one.

        Raises:
            ValueError: If the stage is terminal.
        """
        if not self.is_runnable:
            raise ValueError(f"Stage {self.value} has no successor")
        return _STAGE_SEQUENCE[self.order + 1]

    def can_advance_to(self, target: "ProcessingStage") -> bool:
        """Check whether moving to target respects forward-only ordering."""
        if target == ProcessingStage.FAILED:
            return self != ProcessingStage.COMPLETED
        if self == ProcessingStage.FAILED:
            return False
        return target.order > self.order


_STAGE_SEQUENCE: tuple[ProcessingStage, ...] = (
    ProcessingStage.TRANSCRIPTION,
    ProcessingStage.SUMMARIZATION,
    ProcessingStage.QUESTION_GENERATION,
    ProcessingStage.COMPLETED,
)


class Video(BaseModel):
    """A user's uploaded or linked video and its derived artifacts.

    This is the aggregate root of the pipeline. Every artifact lives on the
    video document so that each stage write is a single-document update.
    """

    id: str = Field(
        default_factory=lambda: uuid4().hex,
        description="Identifier assigned at creation",
    )
    owner: str = Field(description="User that owns the video and its artifacts")
    title: str = Field(default="", description="Display title")
    source_file_path: str | None = Field(
        default=None,
        description="Local media path for uploaded videos",
    )
    source_url: str | None = Field(
        default=None,
        description="Remote audio URL for YouTube-sourced videos",
    )
    youtube_id: str | None = Field(default=None, description="YouTube video ID")
    duration_seconds: float | None = Field(
        default=None,
        ge=0,
        description="Media duration reported by the probe or resolver",
    )
    status: VideoStatus = Field(default=VideoStatus.UPLOADING)
    processing_stage: ProcessingStage = Field(default=ProcessingStage.TRANSCRIPTION)
    failed_stage: ProcessingStage | None = Field(
        default=None,
        description="Stage that was running when the video failed",
    )
    transcript: Transcript | None = None
    summary: Summary | None = None
    questions: list[Question] | None = None
    analysis: ContentAnalysis | None = None
    error: str | None = Field(default=None, description="Last failure message")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @model_validator(mode="after")
    def _exactly_one_source(self) -> Self:
        if bool(self.source_file_path) == bool(self.source_url):
            raise ValueError(
                "Exactly one of source_file_path or source_url must be set"
            )
        return self

    @property
    def is_url_sourced(self) -> bool:
        """Check if the video is transcribed from a remote URL."""
        return self.source_url is not None

    @property
    def is_completed(self) -> bool:
        """Check if all stages have finished."""
        return self.status == VideoStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        """Check if the video is in the terminal failed state."""
        return self.status == VideoStatus.FAILED

    @property
    def is_terminal(self) -> bool:
        """Check if no worker will touch the video again without a resubmit."""
        return self.is_completed or self.is_failed

    @property
    def artifacts_complete(self) -> bool:
        """Check that transcript, summary and questions are all populated."""
        return (
            self.transcript is not None
            and self.summary is not None
            and self.questions is not None
        )

    @property
    def progress_percent(self) -> int:
        """Rough progress derived from the current stage."""
        if self.processing_stage == ProcessingStage.FAILED:
            stage = self.failed_stage or ProcessingStage.TRANSCRIPTION
        else:
            stage = self.processing_stage
        return round(100 * stage.order / (len(_STAGE_SEQUENCE) - 1))

    def mark_failed(self, error: str) -> Self:
        """Create a new instance in the failed state.

        Args:
            error: Description of what went wrong.

        Returns:
            A new Video with FAILED status and stage.
        """
        failed_stage = (
            self.processing_stage
            if self.processing_stage.is_runnable
            else self.failed_stage
        )
        return self.model_copy(
            update={
                "status": VideoStatus.FAILED,
                "processing_stage": ProcessingStage.FAILED,
                "failed_stage": failed_stage,
                "error": error,
                "updated_at": datetime.now(UTC),
            }
        )

    def reset_for_resubmit(self) -> Self:
        """Create a new instance ready to be processed again.

        The video resumes at the stage that failed, so artifacts that were
        already persisted are kept.

        Raises:
            ValueError: If the video is not failed.
        """
        if not self.is_failed:
            raise ValueError(f"Video {self.id} is not failed")
        return self.model_copy(
            update={
                "status": VideoStatus.UPLOADING,
                "processing_stage": self.failed_stage or ProcessingStage.TRANSCRIPTION,
                "failed_stage": None,
                "error": None,
                "updated_at": datetime.now(UTC),
            }
        )
