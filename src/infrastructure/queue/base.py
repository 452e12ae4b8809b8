"""Abstract base class for the pipeline job queue."""

from abc import ABC, abstractmethod

from src.domain.models.job import Job


class JobQueueBase(ABC):
    """Durable, at-least-once work queue of (video_id, file_path) jobs.

    A delivered job stays claimed under a lease until it is acknowledged,
    returned with a delay, or failed. A claim whose lease runs out becomes
    deliverable again, which covers workers that die mid-job. At most one
    pending or in-flight job exists per video.
    """

    @abstractmethod
    async def enqueue(self, video_id: str, file_path: str = "") -> Job:
        """Add a job for a video.

        Idempotent: if the video already has an active job, that job is
        returned and nothing new is queued.
        """

    @abstractmethod
    async def dequeue(self) -> Job | None:
        """Claim the next deliverable job, or return None if there is none."""

    @abstractmethod
    async def ack(self, job: Job) -> bool:
        """Mark a claimed job as done.

        Returns:
            False if the claim was lost (lease expired and job redelivered).
        """

    @abstractmethod
    async def nack(
        self,
        job: Job,
        retry_after: float,
        error: str | None = None,
    ) -> bool:
        """Return a claimed job to the queue, deliverable after a delay.

        Args:
            job: The claimed job.
            retry_after: Seconds before the job may be delivered again.
            error: Failure that caused the redelivery.

        Returns:
            False if the claim was lost.
        """

    @abstractmethod
    async def fail(self, job: Job, error: str) -> bool:
        """Mark a claimed job as permanently failed.

        Returns:
            False if the claim was lost.
        """

    @abstractmethod
    async def cancel(self, video_id: str, reason: str = "cancelled") -> bool:
        """Stop any further delivery of the video's active job.

        Returns:
            True if an active job was cancelled.
        """

    @abstractmethod
    async def get_active(self, video_id: str) -> Job | None:
        """Get the video's pending or in-flight job, if any."""

    @abstractmethod
    async def count_active(self) -> int:
        """Count jobs that are pending or in flight."""

    async def ensure_indexes(self) -> None:  # noqa: B027
        """Create backing indexes. No-op by default."""
