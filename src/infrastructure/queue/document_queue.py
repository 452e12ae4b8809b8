"""Job queue stored in a document database collection."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from src.commons.infrastructure.documentdb.base import (
    DocumentDBBase,
    DuplicateDocumentError,
)
from src.commons.telemetry import get_logger
from src.domain.models.job import Job, JobStatus
from src.infrastructure.queue.base import JobQueueBase

ACTIVE_FIELD = "active"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DocumentJobQueue(JobQueueBase):
    """Queue backed by one collection of job documents.

    Every transition is a single find_one_and_update, so concurrent workers
    (in one process or many) never claim the same job twice. Claim-owned
    transitions match on the delivery count, which makes writes from a
    worker whose lease already expired no-ops.

    Documents carry an 'active' flag next to the status. A unique index on
    video_id restricted to active documents enforces one live job per video.
    """

    def __init__(
        self,
        document_db: DocumentDBBase,
        collection: str = "pipeline_jobs",
        lease_seconds: float = 1800,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._db = document_db
        self._collection = collection
        self._lease = timedelta(seconds=lease_seconds)
        self._clock = clock
        self._logger = get_logger(__name__)

    async def ensure_indexes(self) -> None:
        await self._db.create_index(
            self._collection,
            [("video_id", 1)],
            unique=True,
            name="one_active_job_per_video",
            partial_filter={ACTIVE_FIELD: True},
        )
        await self._db.create_index(
            self._collection,
            [("status", 1), ("available_at", 1)],
            name="delivery_order",
        )

    def _claim_filter(self, job: Job) -> dict[str, Any]:
        return {
            "id": job.id,
            "status": JobStatus.IN_FLIGHT,
            "attempts": job.attempts,
        }

    async def _transition(
        self,
        job: Job,
        status: JobStatus,
        **fields: Any,
    ) -> bool:
        updated = await self._db.find_one_and_update(
            self._collection,
            self._claim_filter(job),
            updates={
                "status": status,
                ACTIVE_FIELD: status.is_active,
                "lease_expires_at": None,
                "updated_at": self._clock(),
                **fields,
            },
        )
        if updated is None:
            self._logger.warning(
                "Job claim lost before transition",
                extra={"job_id": job.id, "video_id": job.video_id, "to": status.value},
            )
        return updated is not None

    async def enqueue(self, video_id: str, file_path: str = "") -> Job:
        existing = await self.get_active(video_id)
        if existing is not None:
            self._logger.info(
                "Video already has an active job",
                extra={"video_id": video_id, "job_id": existing.id},
            )
            return existing

        job = Job(video_id=video_id, file_path=file_path, available_at=self._clock())
        try:
            await self._db.insert(
                self._collection, {**job.model_dump(), ACTIVE_FIELD: True}
            )
        except DuplicateDocumentError:
            # Lost the race against another enqueue for the same video
            existing = await self.get_active(video_id)
            if existing is None:
                raise
            return existing

        self._logger.info(
            "Job enqueued", extra={"video_id": video_id, "job_id": job.id}
        )
        return job

    async def dequeue(self) -> Job | None:
        now = self._clock()
        doc = await self._db.find_one_and_update(
            self._collection,
            {
                "$or": [
                    {"status": JobStatus.PENDING, "available_at": {"$lte": now}},
                    {"status": JobStatus.IN_FLIGHT, "lease_expires_at": {"$lte": now}},
                ]
            },
            updates={
                "status": JobStatus.IN_FLIGHT,
                "lease_expires_at": now + self._lease,
                "updated_at": now,
            },
            increments={"attempts": 1},
            sort=[("available_at", 1)],
        )
        return Job(**doc) if doc else None

    async def ack(self, job: Job) -> bool:
        return await self._transition(job, JobStatus.DONE, last_error=None)

    async def nack(
        self,
        job: Job,
        retry_after: float,
        error: str | None = None,
    ) -> bool:
        return await self._transition(
            job,
            JobStatus.PENDING,
            available_at=self._clock() + timedelta(seconds=retry_after),
            last_error=error,
        )

    async def fail(self, job: Job, error: str) -> bool:
        return await self._transition(job, JobStatus.DEAD, last_error=error)

    async def cancel(self, video_id: str, reason: str = "cancelled") -> bool:
        doc = await self._db.find_one_and_update(
            self._collection,
            {"video_id": video_id, ACTIVE_FIELD: True},
            updates={
                "status": JobStatus.DEAD,
                ACTIVE_FIELD: False,
                "lease_expires_at": None,
                "last_error": reason,
                "updated_at": self._clock(),
            },
        )
        return doc is not None

    async def get_active(self, video_id: str) -> Job | None:
        doc = await self._db.find_one(
            self._collection, {"video_id": video_id, ACTIVE_FIELD: True}
        )
        return Job(**doc) if doc else None

    async def count_active(self) -> int:
        return await self._db.count(self._collection, {ACTIVE_FIELD: True})
