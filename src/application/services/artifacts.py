"""Operations on the artifacts of finished videos."""

import logging

from src.application.services.artifact_store import VideoArtifactStore
from src.application.services.summarization import SummarizationClient
from src.commons.telemetry import LogContext, get_logger, log_exceptions
from src.domain.exceptions import (
    QuestionNotFoundException,
    VideoNotFoundException,
    VideoNotReadyException,
)
from src.domain.models.question import Question
from src.domain.models.summary import Summary, SummaryType
from src.domain.models.video import Video

logger = get_logger(__name__)


class ArtifactService:
    """Quiz answering and on-demand summary regeneration.

    Both operations need a completed video; neither touches the pipeline
    stage, so they never race a worker.
    """

    def __init__(
        self,
        store: VideoArtifactStore,
        summarization: SummarizationClient,
    ) -> None:
        self._store = store
        self._summarization = summarization

    async def _completed(self, owner: str, video_id: str) -> Video:
        video = await self._store.get_for_owner(owner, video_id)
        if not video.is_completed:
            raise VideoNotReadyException(video_id, video.status)
        return video

    async def answer_question(
        self,
        owner: str,
        video_id: str,
        index: int,
        answer: str,
        time_spent_seconds: float = 0.0,
    ) -> tuple[Question, bool]:
        """Grade an answer and count it in the question's statistics.

        Returns:
            The question with its updated counters, and whether the answer
            was correct.

        Raises:
            VideoNotFoundException: If the owner has no such video.
            VideoNotReadyException: If the video has not completed.
            QuestionNotFoundException: If index is outside the question list.
        """
        video = await self._completed(owner, video_id)
        questions = video.questions or []
        if not 0 <= index < len(questions):
            raise QuestionNotFoundException(video_id, index)

        correct = questions[index].check_answer(answer)
        updated = await self._store.record_answer(
            video_id, index, correct, time_spent_ms=round(time_spent_seconds * 1000)
        )
        if updated is None or updated.questions is None:
            raise VideoNotFoundException(video_id)

        with LogContext(video_id=video_id):
            logger.info(
                "Answer recorded", extra={"question_index": index, "correct": correct}
            )
        return updated.questions[index], correct

    @log_exceptions(logger=logger, level=logging.WARNING, message="Summary regeneration failed")
    async def regenerate_summary(
        self,
        owner: str,
        video_id: str,
        summary_type: SummaryType,
        language: str | None = None,
    ) -> Summary:
        """Summarize a completed video's transcript again in another style.

        The new summary replaces the stored one.

        Raises:
            VideoNotFoundException: If the owner has no such video.
            VideoNotReadyException: If the video has not completed.
            RemoteTransient: If the providers are unreachable.
            RemoteRejected: If the providers refused the request.
        """
        video = await self._completed(owner, video_id)
        transcript = video.transcript
        if transcript is None or not transcript.text.strip():
            raise VideoNotReadyException(video_id, video.status)

        summary = await self._summarization.summarize(
            transcript.text,
            language=language or transcript.language,
            summary_type=summary_type,
        )
        updated = await self._store.replace_summary(video_id, summary)
        if updated is None:
            raise VideoNotFoundException(video_id)

        with LogContext(video_id=video_id):
            logger.info(
                "Summary regenerated",
                extra={"summary_type": summary_type.value, "model": summary.model},
            )
        return summary
