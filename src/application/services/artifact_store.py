"""Persistence of videos, their pipeline state and derived artifacts."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from src.commons.infrastructure.documentdb.base import (
    DocumentDBBase,
    DuplicateDocumentError,
)
from src.commons.telemetry import get_logger
from src.domain.exceptions import InvalidStageTransition, VideoNotFoundException
from src.domain.models.summary import Summary
from src.domain.models.usage import UserUsage
from src.domain.models.video import ProcessingStage, Video, VideoStatus

_USAGE_COUNTERS = frozenset({"videos_processed"})

# A racing writer can move the record between our read and our write
_MAX_CAS_ROUNDS = 3


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value


class VideoArtifactStore:
    """Single-document access layer for the Video aggregate.

    Each write touches one video document atomically. Stage changes are
    compare-and-set on the current stage, so a stale writer can never move
    a video backwards or skip a stage.
    """

    def __init__(
        self,
        document_db: DocumentDBBase,
        videos_collection: str = "videos",
        users_collection: str = "user_usage",
    ) -> None:
        self._db = document_db
        self._videos = videos_collection
        self._users = users_collection
        self._logger = get_logger(__name__)

    async def ensure_indexes(self) -> None:
        await self._db.create_index(
            self._videos, [("owner", 1), ("created_at", -1)], name="owner_recent"
        )
        await self._db.create_index(
            self._videos, [("status", 1)], name="status"
        )

    # Videos

    async def create(self, video: Video) -> str:
        """Persist a new video record and return its ID."""
        return await self._db.insert(self._videos, video.model_dump())

    async def get(self, video_id: str) -> Video | None:
        doc = await self._db.find_by_id(self._videos, video_id)
        return Video(**doc) if doc else None

    async def get_for_owner(self, owner: str, video_id: str) -> Video:
        """Get a video the owner may see.

        Raises:
            VideoNotFoundException: If it does not exist or belongs to someone else.
        """
        video = await self.get(video_id)
        if video is None or video.owner != owner:
            raise VideoNotFoundException(video_id)
        return video

    async def list_for_owner(
        self,
        owner: str,
        status: VideoStatus | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Video], int]:
        """List an owner's videos, newest first, with the total count."""
        filters: dict[str, Any] = {"owner": owner}
        if status is not None:
            filters["status"] = status
        docs = await self._db.find(
            self._videos, filters, skip=skip, limit=limit, sort=[("created_at", -1)]
        )
        total = await self._db.count(self._videos, filters)
        return [Video(**doc) for doc in docs], total

    async def update_fields(self, video_id: str, fields: dict[str, Any]) -> bool:
        """Atomically set fields on a video."""
        updates = {key: _dump(value) for key, value in fields.items()}
        updates["updated_at"] = datetime.now(UTC)
        return await self._db.update(self._videos, video_id, updates)

    async def claim(self, video_id: str) -> Video | None:
        """Move a waiting or interrupted video into processing.

        Returns:
            The claimed video, or None if it is completed or failed.
        """
        doc = await self._db.find_one_and_update(
            self._videos,
            {
                "id": video_id,
                "status": {"$in": [VideoStatus.UPLOADING, VideoStatus.PROCESSING]},
            },
            updates={
                "status": VideoStatus.PROCESSING,
                "error": None,
                "updated_at": datetime.now(UTC),
            },
        )
        return Video(**doc) if doc else None

    async def advance_stage(
        self,
        video_id: str,
        from_stage: ProcessingStage,
        to_stage: ProcessingStage,
        fields: dict[str, Any] | None = None,
    ) -> Video:
        """Persist a stage's artifacts and move to the next stage in one write.

        Args:
            video_id: Video to update.
            from_stage: Stage the caller believes the video is in.
            to_stage: Stage to move to; must be later in the sequence.
            fields: Artifacts produced by from_stage.

        Returns:
            The updated video.

        Raises:
            InvalidStageTransition: If the move is backwards, or the video
                is no longer processing at from_stage.
        """
        if to_stage == ProcessingStage.FAILED or not from_stage.can_advance_to(to_stage):
            raise InvalidStageTransition(video_id, from_stage, to_stage)

        now = datetime.now(UTC)
        updates = {key: _dump(value) for key, value in (fields or {}).items()}
        updates.update({"processing_stage": to_stage, "error": None, "updated_at": now})
        if to_stage == ProcessingStage.COMPLETED:
            updates.update({"status": VideoStatus.COMPLETED, "completed_at": now})

        doc = await self._db.find_one_and_update(
            self._videos,
            {
                "id": video_id,
                "processing_stage": from_stage,
                "status": VideoStatus.PROCESSING,
            },
            updates=updates,
        )
        if doc is None:
            current = await self.get(video_id)
            raise InvalidStageTransition(
                video_id, current.processing_stage if current else None, to_stage
            )

        self._logger.info(
            "Stage advanced",
            extra={
                "video_id": video_id,
                "from_stage": from_stage.value,
                "to_stage": to_stage.value,
            },
        )
        return Video(**doc)

    async def mark_failed(self, video_id: str, error: str) -> Video | None:
        """Move a video to the terminal failed state.

        Completed videos are left alone. The stage that was running is kept
        in failed_stage so a resubmission can resume there.

        Returns:
            The failed video, or None if it is missing or already completed.
        """
        for _ in range(_MAX_CAS_ROUNDS):
            video = await self.get(video_id)
            if video is None or video.is_completed:
                return None
            if video.is_failed and video.error == error:
                return video

            failed = video.mark_failed(error)
            doc = await self._db.find_one_and_update(
                self._videos,
                {
                    "id": video_id,
                    "status": video.status,
                    "processing_stage": video.processing_stage,
                },
                updates={
                    "status": failed.status,
                    "processing_stage": failed.processing_stage,
                    "failed_stage": failed.failed_stage,
                    "error": error,
                    "updated_at": failed.updated_at,
                },
            )
            if doc is not None:
                self._logger.warning(
                    "Video marked failed",
                    extra={
                        "video_id": video_id,
                        "failed_stage": failed.failed_stage.value
                        if failed.failed_stage
                        else None,
                        "error": error,
                    },
                )
                return Video(**doc)

        self._logger.error(
            "Could not mark video failed after concurrent updates",
            extra={"video_id": video_id},
        )
        return None

    async def reset_for_resubmit(self, video: Video) -> Video:
        """Put a failed video back at the stage that failed.

        Raises:
            InvalidStageTransition: If the video stopped being failed meanwhile.
        """
        reset = video.reset_for_resubmit()
        doc = await self._db.find_one_and_update(
            self._videos,
            {"id": video.id, "status": VideoStatus.FAILED},
            updates={
                "status": reset.status,
                "processing_stage": reset.processing_stage,
                "failed_stage": None,
                "error": None,
                "updated_at": reset.updated_at,
            },
        )
        if doc is None:
            raise InvalidStageTransition(video.id, video.processing_stage, reset.processing_stage)
        return Video(**doc)

    async def delete(self, video_id: str) -> bool:
        """Remove a video document with all of its artifacts."""
        deleted = await self._db.delete(self._videos, video_id)
        if deleted:
            self._logger.info("Video record deleted", extra={"video_id": video_id})
        return deleted

    async def replace_summary(self, video_id: str, summary: Summary) -> Video | None:
        """Swap the summary of a completed video.

        Returns:
            The updated video, or None if it is gone or no longer completed.
        """
        doc = await self._db.find_one_and_update(
            self._videos,
            {"id": video_id, "status": VideoStatus.COMPLETED},
            updates={"summary": _dump(summary), "updated_at": datetime.now(UTC)},
        )
        return Video(**doc) if doc else None

    async def record_answer(
        self,
        video_id: str,
        index: int,
        correct: bool,
        time_spent_ms: int = 0,
    ) -> Video | None:
        """Atomically count one answer to a question.

        Returns:
            The updated video, or None if the question no longer exists.
        """
        prefix = f"questions.{index}.statistics"
        increments = {
            f"{prefix}.total_attempts": 1,
            f"{prefix}.correct_attempts": 1 if correct else 0,
            f"{prefix}.total_time_ms": time_spent_ms,
        }
        doc = await self._db.find_one_and_update(
            self._videos,
            {"id": video_id, f"questions.{index}": {"$exists": True}},
            increments=increments,
        )
        return Video(**doc) if doc else None

    # Usage

    async def get_usage(self, user_id: str, monthly_limit: int) -> UserUsage:
        """Load a user's counter, creating it or rolling it over to this month."""
        doc = await self._db.find_by_id(self._users, user_id)
        if doc is None:
            usage = UserUsage(user_id=user_id, monthly_limit=monthly_limit)
            try:
                await self._db.insert(self._users, {"id": user_id, **usage.model_dump()})
            except DuplicateDocumentError:
                return await self.get_usage(user_id, monthly_limit)
            return usage

        usage = UserUsage(**doc).model_copy(update={"monthly_limit": monthly_limit})
        if usage.needs_reset():
            usage = usage.reset()
            await self._db.update(
                self._users,
                user_id,
                {"videos_processed": 0, "last_reset": usage.last_reset},
            )
        return usage

    async def increment_usage_counter(
        self,
        user_id: str,
        field: str = "videos_processed",
        amount: int = 1,
    ) -> UserUsage:
        """Atomically add to one of the user's usage counters."""
        if field not in _USAGE_COUNTERS:
            raise ValueError(f"Unknown usage counter: {field}")
        doc = await self._db.find_one_and_update(
            self._users,
            {"id": user_id},
            increments={field: amount},
            upsert=True,
        )
        return UserUsage(**{"user_id": user_id, **(doc or {})})
