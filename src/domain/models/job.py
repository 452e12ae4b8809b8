"""Queue job model."""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    """Delivery state of a queue job."""

    PENDING = "pending"  # Waiting for available_at
    IN_FLIGHT = "in_flight"  # Claimed by a worker under a lease
    DONE = "done"  # Acknowledged
    DEAD = "dead"  # Permanently failed or cancelled

    @property
    def is_active(self) -> bool:
        """Check if the job still counts against the one-per-video rule."""
        return self in {JobStatus.PENDING, JobStatus.IN_FLIGHT}


class Job(BaseModel):
    """A unit of pipeline work for one video.

    The payload is only the video reference and its media path; everything
    that changes while the pipeline runs lives on the video record.
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    video_id: str
    file_path: str = Field(
        default="",
        description="Local media path; empty for URL-sourced videos",
    )
    status: JobStatus = JobStatus.PENDING
    attempts: int = Field(
        default=0,
        ge=0,
        description="Number of deliveries handed to workers so far",
    )
    available_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    lease_expires_at: datetime | None = None
    last_error: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def payload(self) -> dict[str, str]:
        """Minimal job payload."""
        return {"video_id": self.video_id, "file_path": self.file_path}
