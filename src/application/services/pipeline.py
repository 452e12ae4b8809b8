"""Pipeline orchestrator driving one video through its stages."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

from src.application.services.artifact_store import VideoArtifactStore
from src.application.services.summarization import SummarizationClient
from src.commons.settings.models import PipelineSettings
from src.commons.telemetry import LogContext, get_logger, langfuse_trace, timed
from src.domain.exceptions import PreconditionFailed, RemoteRejected, RemoteTransient
from src.domain.models.summary import SummaryType
from src.domain.models.video import ProcessingStage, Video
from src.domain.value_objects.retry_policy import RetryPolicy, SleepFn
from src.infrastructure.transcription.base import TranscriptionServiceBase

T = TypeVar("T")


@dataclass
class PipelineOptions:
    """What each stage asks the providers for."""

    summary_type: SummaryType = SummaryType.DETAILED
    analysis_enabled: bool = True
    question_count: int = 5
    question_difficulty: str = "medium"
    question_types: list[str] = field(
        default_factory=lambda: ["multiple_choice", "short_answer"]
    )
    transcription_options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: PipelineSettings) -> "PipelineOptions":
        return cls(
            summary_type=SummaryType(settings.summary_type),
            analysis_enabled=settings.analysis_enabled,
            question_count=settings.question_count,
            question_difficulty=settings.question_difficulty,
            question_types=list(settings.question_types),
        )


class VideoPipelineOrchestrator:
    """Drives a video through transcription, summarization and question generation.

    Stages run strictly in order. Each stage's artifacts are persisted
    together with the move to the next stage, so a crashed or redelivered
    job resumes from the stored stage and only repeats unfinished work.

    Failure handling per stage:
    - PreconditionFailed and RemoteRejected mark the video failed at once
    - RemoteTransient is retried in-process under the retry policy; when
      those attempts run out StageRetriesExhausted propagates so the queue
      can redeliver the whole job
    """

    def __init__(
        self,
        store: VideoArtifactStore,
        transcription: TranscriptionServiceBase,
        summarization: SummarizationClient,
        retry_policy: RetryPolicy | None = None,
        options: PipelineOptions | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Video persistence.
            transcription: Speech-to-text client.
            summarization: Text-generation client.
            retry_policy: In-process retry applied to each stage call.
            options: Stage request options.
            sleep: Awaitable sleep used between retries.
        """
        self._store = store
        self._transcription = transcription
        self._summarization = summarization
        self._retry = retry_policy or RetryPolicy()
        self._options = options or PipelineOptions()
        self._sleep = sleep
        self._logger = get_logger(__name__)

    @timed
    async def process_video(self, video_id: str, file_path: str = "") -> Video:
        """Run every remaining stage for a video.

        Args:
            video_id: Existing video record.
            file_path: Local media path; falls back to the video's own source.

        Returns:
            The video after the last persisted write.

        Raises:
            PreconditionFailed: If the video is missing, failed, or its input
                is unusable. The video is marked failed when it exists.
            RemoteRejected: If a provider refused the work. The video is
                marked failed.
            StageRetriesExhausted: If a stage kept failing transiently. The
                video is left at that stage for redelivery.
            InvalidStageTransition: If another writer moved the video on.
        """
        with LogContext(video_id=video_id):
            video = await self._store.get(video_id)
            if video is None:
                raise PreconditionFailed(f"Video {video_id} does not exist")
            if video.is_completed:
                self._logger.info("Video already completed, nothing to do")
                return video
            if video.is_failed:
                raise PreconditionFailed(
                    f"Video {video_id} has failed and must be resubmitted"
                )

            claimed = await self._store.claim(video_id)
            if claimed is None:
                current = await self._store.get(video_id)
                if current is not None and current.is_completed:
                    return current
                raise PreconditionFailed(f"Video {video_id} could not be claimed")

            self._logger.info(
                "Processing video",
                extra={"resume_stage": claimed.processing_stage.value},
            )
            with langfuse_trace(
                name="video-pipeline",
                user_id=claimed.owner,
                session_id=claimed.id,
                metadata={"resume_stage": claimed.processing_stage.value},
            ):
                try:
                    return await self._run_stages(claimed, file_path)
                except (PreconditionFailed, RemoteRejected) as e:
                    await self._store.mark_failed(video_id, str(e))
                    raise

    async def _run_stages(self, video: Video, file_path: str) -> Video:
        while video.processing_stage.is_runnable:
            stage = video.processing_stage
            with LogContext(stage=stage.value):
                fields = await self._run_stage(video, stage, file_path)
                video = await self._store.advance_stage(
                    video.id, stage, stage.next(), fields
                )
        self._logger.info("Video processing completed")
        return video

    async def _run_stage(
        self,
        video: Video,
        stage: ProcessingStage,
        file_path: str,
    ) -> dict[str, Any]:
        if stage == ProcessingStage.TRANSCRIPTION:
            return await self._transcribe(video, file_path)
        if stage == ProcessingStage.SUMMARIZATION:
            return await self._summarize(video)
        return await self._generate_questions(video)

    async def _with_retry(
        self,
        stage: ProcessingStage,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        def on_retry(attempt: int, delay: float, error: RemoteTransient) -> None:
            self._logger.warning(
                "Stage attempt failed, retrying",
                extra={"attempt": attempt, "delay_seconds": delay, "error": str(error)},
            )

        return await self._retry.run(
            operation, stage=stage.value, sleep=self._sleep, on_retry=on_retry
        )

    async def _transcribe(self, video: Video, file_path: str) -> dict[str, Any]:
        options = self._options.transcription_options or None
        if video.is_url_sourced:
            source_url = video.source_url or ""
            transcript = await self._with_retry(
                ProcessingStage.TRANSCRIPTION,
                lambda: self._transcription.transcribe_url(source_url, options),
            )
        else:
            path_value = file_path or video.source_file_path
            if not path_value:
                raise PreconditionFailed("No media file to transcribe", "transcription")
            path = Path(path_value)
            transcript = await self._with_retry(
                ProcessingStage.TRANSCRIPTION,
                lambda: self._transcription.transcribe(path, options),
            )

        fields: dict[str, Any] = {"transcript": transcript}
        if video.duration_seconds is None and transcript.audio_duration:
            fields["duration_seconds"] = transcript.audio_duration
        return fields

    async def _summarize(self, video: Video) -> dict[str, Any]:
        transcript = video.transcript
        if transcript is None or not transcript.text.strip():
            raise PreconditionFailed("Transcript is empty", "summarization")

        summary = await self._with_retry(
            ProcessingStage.SUMMARIZATION,
            lambda: self._summarization.summarize(
                transcript.text,
                language=transcript.language,
                summary_type=self._options.summary_type,
            ),
        )
        fields: dict[str, Any] = {"summary": summary}
        if self._options.analysis_enabled:
            fields["analysis"] = await self._summarization.analyze(transcript.text)
        return fields

    async def _generate_questions(self, video: Video) -> dict[str, Any]:
        transcript = video.transcript
        if transcript is None or not transcript.text.strip():
            raise PreconditionFailed("Transcript is empty", "question_generation")

        questions = await self._with_retry(
            ProcessingStage.QUESTION_GENERATION,
            lambda: self._summarization.generate_questions(
                transcript.text,
                count=self._options.question_count,
                difficulty=self._options.question_difficulty,
                types=self._options.question_types,
            ),
        )
        self._logger.info("Questions generated", extra={"count": len(questions)})
        return {"questions": questions}
