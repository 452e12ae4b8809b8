"""Video submission service used by the HTTP API."""

import asyncio
import functools
from pathlib import Path

from src.application.services.artifact_store import VideoArtifactStore
from src.commons.telemetry import LogContext, get_logger
from src.domain.exceptions import (
    InvalidMediaException,
    InvalidStageTransition,
    PreconditionFailed,
    SubmissionNotQueuedException,
    UsageLimitExceededException,
    VideoNotFoundException,
    VideoNotRetryableException,
)
from src.domain.models.job import Job
from src.domain.models.usage import UserUsage
from src.domain.models.video import ProcessingStage, Video, VideoStatus
from src.domain.value_objects.youtube_video_id import YouTubeVideoId
from src.infrastructure.media.base import MediaProbeBase
from src.infrastructure.queue.base import JobQueueBase
from src.infrastructure.youtube.base import YouTubeResolverBase

DEFAULT_ALLOWED_EXTENSIONS = (".mp4", ".mov", ".avi", ".mkv", ".webm", ".m4v")


class IngestionService:
    """Creates video records and queues them for the pipeline.

    Uploads are validated here, before a record exists, so the pipeline
    only ever sees files with a video and a non-empty audio track.
    """

    def __init__(
        self,
        store: VideoArtifactStore,
        queue: JobQueueBase,
        media_probe: MediaProbeBase,
        youtube_resolver: YouTubeResolverBase,
        usage_enforced: bool = True,
        monthly_limit: int = 10,
        allowed_extensions: list[str] | tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS,
    ) -> None:
        """Initialize the service.

        Args:
            store: Video persistence.
            queue: Pipeline job queue.
            media_probe: Container inspection for uploads.
            youtube_resolver: Metadata and audio lookup for YouTube URLs.
            usage_enforced: Whether the monthly allowance is checked.
            monthly_limit: Videos each user may submit per month.
            allowed_extensions: Accepted upload file extensions.
        """
        self._store = store
        self._queue = queue
        self._probe = media_probe
        self._resolver = youtube_resolver
        self._usage_enforced = usage_enforced
        self._monthly_limit = monthly_limit
        self._allowed_extensions = {ext.lower() for ext in allowed_extensions}
        self._logger = get_logger(__name__)

    async def submit_upload(self, owner: str, title: str | None, file_path: Path) -> Video:
        """Register an uploaded file and queue it.

        Raises:
            InvalidMediaException: If the file is not a video with audio.
            UsageLimitExceededException: If the monthly allowance is used up.
        """
        if file_path.suffix.lower() not in self._allowed_extensions:
            raise InvalidMediaException(f"Unsupported file type '{file_path.suffix}'")

        try:
            info = await self._probe.probe(file_path)
        except PreconditionFailed as e:
            raise InvalidMediaException(e.reason) from e
        if not info.has_video:
            raise InvalidMediaException("File has no video stream")
        if not info.has_audio:
            raise InvalidMediaException("File has no audio stream")
        if info.duration_seconds <= 0:
            raise InvalidMediaException("File has zero duration")

        await self._check_usage(owner)
        video = Video(
            owner=owner,
            title=title or file_path.stem,
            source_file_path=str(file_path),
            duration_seconds=info.duration_seconds,
        )
        return await self._register(video, str(file_path))

    async def submit_youtube(self, owner: str, url: str, title: str | None = None) -> Video:
        """Resolve a YouTube URL to an audio stream and queue it.

        Raises:
            InvalidYouTubeUrlException: If the URL is not a usable YouTube video.
            SourceUnavailableException: If no audio stream can be resolved.
            UsageLimitExceededException: If the monthly allowance is used up.
        """
        youtube_id = YouTubeVideoId.from_url(url)
        await self._check_usage(owner)

        resolved = await self._resolver.resolve(youtube_id.to_url())
        video = Video(
            owner=owner,
            title=title or resolved.title or youtube_id.value,
            source_url=resolved.audio_url,
            youtube_id=youtube_id.value,
            duration_seconds=resolved.duration_seconds or None,
        )
        return await self._register(video, "")

    async def _register(self, video: Video, file_path: str) -> Video:
        with LogContext(video_id=video.id):
            await self._store.create(video)
            await self._store.increment_usage_counter(video.owner)
            job = await self._enqueue_or_fail(video, file_path)
            self._logger.info(
                "Video queued",
                extra={
                    "job_id": job.id,
                    "source": "youtube" if video.is_url_sourced else "upload",
                },
            )
        return video

    async def _enqueue_or_fail(self, video: Video, file_path: str) -> Job:
        """Queue a video's job, failing the record if the queue refuses it.

        Raises:
            SubmissionNotQueuedException: If the enqueue raised. The video is
                left failed at its current stage so a resubmit picks it up.
        """
        try:
            return await self._queue.enqueue(video.id, file_path)
        except Exception as e:
            self._logger.exception("Could not queue video", extra={"video_id": video.id})
            await self._store.mark_failed(video.id, f"Could not queue video: {e}")
            raise SubmissionNotQueuedException(video.id, str(e)) from e

    async def _check_usage(self, owner: str) -> None:
        if not self._usage_enforced:
            return
        usage = await self._store.get_usage(owner, self._monthly_limit)
        if not usage.can_process():
            raise UsageLimitExceededException(owner, usage.monthly_limit)

    async def resubmit(self, owner: str, video_id: str) -> Video:
        """Queue a failed video again, resuming at the stage that failed.

        Raises:
            VideoNotFoundException: If the owner has no such video.
            VideoNotRetryableException: If the video has not failed.
        """
        video = await self._store.get_for_owner(owner, video_id)
        if not video.is_failed:
            raise VideoNotRetryableException(video_id, video.status)

        reset = await self._store.reset_for_resubmit(video)
        await self._enqueue_or_fail(reset, reset.source_file_path or "")
        self._logger.info(
            "Video resubmitted",
            extra={"video_id": video_id, "resume_stage": reset.processing_stage.value},
        )
        return reset

    async def abandon_video(
        self,
        owner: str,
        video_id: str,
        reason: str = "Cancelled by user",
    ) -> Video:
        """Stop further processing and mark the video failed.

        A worker already running a stage finishes its remote call, but its
        write is refused because the video is no longer processing.

        Raises:
            VideoNotFoundException: If the owner has no such video.
            InvalidStageTransition: If the video already completed.
        """
        video = await self._store.get_for_owner(owner, video_id)
        if video.is_completed:
            raise InvalidStageTransition(
                video_id, video.processing_stage, ProcessingStage.FAILED
            )

        await self._queue.cancel(video_id, reason)
        if video.is_failed:
            return video

        failed = await self._store.mark_failed(video_id, reason)
        if failed is None:
            # Completed between our read and the write
            current = await self._store.get(video_id)
            if current is None:
                raise VideoNotFoundException(video_id)
            raise InvalidStageTransition(
                video_id, current.processing_stage, ProcessingStage.FAILED
            )
        self._logger.info("Video abandoned", extra={"video_id": video_id})
        return failed

    async def delete_video(self, owner: str, video_id: str) -> None:
        """Remove a video, its artifacts and its uploaded media.

        The job is cancelled first, so a worker still running a stage loses
        its claim and its write finds no record.

        Raises:
            VideoNotFoundException: If the owner has no such video.
        """
        video = await self._store.get_for_owner(owner, video_id)
        await self._queue.cancel(video_id, "Video deleted")
        if not await self._store.delete(video_id):
            raise VideoNotFoundException(video_id)

        if video.source_file_path:
            path = Path(video.source_file_path)
            loop = asyncio.get_running_loop()
            try:
                await loop.run_in_executor(None, functools.partial(path.unlink, missing_ok=True))
            except OSError as e:
                self._logger.warning(
                    "Could not remove media file",
                    extra={"video_id": video_id, "path": str(path), "error": str(e)},
                )
        self._logger.info("Video deleted", extra={"video_id": video_id})

    async def get_video(self, owner: str, video_id: str) -> Video:
        return await self._store.get_for_owner(owner, video_id)

    async def list_videos(
        self,
        owner: str,
        status: VideoStatus | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Video], int]:
        return await self._store.list_for_owner(owner, status=status, skip=skip, limit=limit)

    async def get_usage(self, owner: str) -> UserUsage:
        return await self._store.get_usage(owner, self._monthly_limit)
