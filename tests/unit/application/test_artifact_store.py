"""Unit tests for the video artifact store."""

from datetime import UTC, datetime

import pytest

from src.domain.exceptions import InvalidStageTransition, VideoNotFoundException
from src.domain.models.question import Question
from src.domain.models.summary import Summary, SummaryType
from src.domain.models.transcript import Transcript
from src.domain.models.video import ProcessingStage, VideoStatus


class TestVideoRecords:
    """Tests for creating, reading and listing videos."""

    async def test_create_and_get(self, store, make_video):
        video = make_video()

        video_id = await store.create(video)
        loaded = await store.get(video_id)

        assert video_id == video.id
        assert loaded == video

    async def test_get_missing(self, store):
        assert await store.get("nope") is None

    async def test_get_for_owner_hides_other_users(self, store, make_video):
        video = make_video()
        await store.create(video)

        assert (await store.get_for_owner("user-1", video.id)).id == video.id
        with pytest.raises(VideoNotFoundException):
            await store.get_for_owner("user-2", video.id)

    async def test_list_for_owner(self, store, make_video):
        older = make_video(created_at=datetime(2024, 1, 1, tzinfo=UTC))
        newer = make_video(created_at=datetime(2024, 2, 1, tzinfo=UTC))
        failed = make_video(status=VideoStatus.FAILED)
        other = make_video(owner="user-2")
        for video in (older, newer, failed, other):
            await store.create(video)

        videos, total = await store.list_for_owner("user-1", skip=0, limit=10)
        failed_only, failed_total = await store.list_for_owner(
            "user-1", status=VideoStatus.FAILED
        )

        assert total == 3
        assert videos[-2:] == [newer, older]
        assert failed_total == 1
        assert failed_only[0].id == failed.id

    async def test_update_fields_serializes_models(self, store, make_video):
        video = make_video()
        await store.create(video)

        await store.update_fields(video.id, {"transcript": Transcript(text="hello")})

        assert (await store.get(video.id)).transcript.text == "hello"


class TestStageTransitions:
    """Tests for claim, advance and failure writes."""

    async def test_claim_moves_to_processing(self, store, make_video):
        video = make_video()
        await store.create(video)

        claimed = await store.claim(video.id)

        assert claimed.status == VideoStatus.PROCESSING
        assert await store.claim(video.id) is not None

    async def test_claim_refuses_terminal_videos(self, store, make_video):
        done = make_video(status=VideoStatus.COMPLETED, processing_stage=ProcessingStage.COMPLETED)
        await store.create(done)

        assert await store.claim(done.id) is None

    async def test_advance_persists_artifacts_with_the_stage(self, store, make_video):
        video = make_video(status=VideoStatus.PROCESSING)
        await store.create(video)

        updated = await store.advance_stage(
            video.id,
            ProcessingStage.TRANSCRIPTION,
            ProcessingStage.SUMMARIZATION,
            {"transcript": Transcript(text="hello world")},
        )

        assert updated.processing_stage == ProcessingStage.SUMMARIZATION
        assert updated.transcript.text == "hello world"

    async def test_advance_to_completed_sets_status(self, store, make_video):
        video = make_video(
            status=VideoStatus.PROCESSING,
            processing_stage=ProcessingStage.QUESTION_GENERATION,
        )
        await store.create(video)

        updated = await store.advance_stage(
            video.id,
            ProcessingStage.QUESTION_GENERATION,
            ProcessingStage.COMPLETED,
            {"questions": []},
        )

        assert updated.status == VideoStatus.COMPLETED
        assert updated.completed_at is not None
        assert updated.questions == []

    async def test_backwards_move_is_rejected(self, store, make_video):
        video = make_video(
            status=VideoStatus.PROCESSING, processing_stage=ProcessingStage.SUMMARIZATION
        )
        await store.create(video)

        with pytest.raises(InvalidStageTransition):
            await store.advance_stage(
                video.id, ProcessingStage.SUMMARIZATION, ProcessingStage.TRANSCRIPTION
            )

    async def test_stale_writer_is_rejected(self, store, make_video):
        video = make_video(status=VideoStatus.PROCESSING)
        await store.create(video)
        await store.advance_stage(
            video.id, ProcessingStage.TRANSCRIPTION, ProcessingStage.SUMMARIZATION
        )

        with pytest.raises(InvalidStageTransition) as exc_info:
            await store.advance_stage(
                video.id,
                ProcessingStage.TRANSCRIPTION,
                ProcessingStage.SUMMARIZATION,
                {"transcript": Transcript(text="stale")},
            )

        assert exc_info.value.current == ProcessingStage.SUMMARIZATION
        assert (await store.get(video.id)).transcript is None

    async def test_mark_failed_keeps_artifacts(self, store, make_video):
        summary = Summary.from_text("short summary", model="m")
        video = make_video(
            status=VideoStatus.PROCESSING,
            processing_stage=ProcessingStage.QUESTION_GENERATION,
            summary=summary,
        )
        await store.create(video)

        failed = await store.mark_failed(video.id, "provider rejected")

        assert failed.status == VideoStatus.FAILED
        assert failed.failed_stage == ProcessingStage.QUESTION_GENERATION
        assert failed.summary == summary

    async def test_mark_failed_leaves_completed_alone(self, store, make_video):
        video = make_video(
            status=VideoStatus.COMPLETED, processing_stage=ProcessingStage.COMPLETED
        )
        await store.create(video)

        assert await store.mark_failed(video.id, "late failure") is None
        assert (await store.get(video.id)).status == VideoStatus.COMPLETED

    async def test_reset_for_resubmit(self, store, make_video):
        video = make_video(
            status=VideoStatus.PROCESSING, processing_stage=ProcessingStage.SUMMARIZATION
        )
        await store.create(video)
        failed = await store.mark_failed(video.id, "boom")

        reset = await store.reset_for_resubmit(failed)

        assert reset.status == VideoStatus.UPLOADING
        assert reset.processing_stage == ProcessingStage.SUMMARIZATION
        assert reset.error is None
        with pytest.raises(InvalidStageTransition):
            await store.reset_for_resubmit(failed)


class TestArtifactUpdates:
    """Tests for deleting videos and updating finished artifacts."""

    async def test_delete(self, store, make_video):
        video = make_video()
        await store.create(video)

        assert await store.delete(video.id) is True
        assert await store.get(video.id) is None
        assert await store.delete(video.id) is False

    async def test_replace_summary_on_completed_video(self, store, make_video):
        video = make_video(
            status=VideoStatus.COMPLETED,
            processing_stage=ProcessingStage.COMPLETED,
            summary=Summary.from_text("Old.", model="m"),
        )
        await store.create(video)
        brief = Summary.from_text("New.", model="m", summary_type=SummaryType.BRIEF)

        updated = await store.replace_summary(video.id, brief)

        assert updated.summary.text == "New."
        assert (await store.get(video.id)).summary.summary_type == SummaryType.BRIEF

    async def test_replace_summary_refused_while_processing(self, store, make_video):
        video = make_video(status=VideoStatus.PROCESSING)
        await store.create(video)

        assert await store.replace_summary(video.id, Summary.from_text("x", model="m")) is None
        assert (await store.get(video.id)).summary is None

    async def test_record_answer_counts_attempts(self, store, make_video):
        video = make_video(questions=[Question(question="A?"), Question(question="B?")])
        await store.create(video)

        await store.record_answer(video.id, 1, correct=True, time_spent_ms=1500)
        updated = await store.record_answer(video.id, 1, correct=False, time_spent_ms=500)

        stats = updated.questions[1].statistics
        assert stats.total_attempts == 2
        assert stats.correct_attempts == 1
        assert stats.total_time_ms == 2000
        assert updated.questions[0].statistics.total_attempts == 0

    async def test_record_answer_unknown_index(self, store, make_video):
        video = make_video(questions=[Question(question="A?")])
        await store.create(video)

        assert await store.record_answer(video.id, 3, correct=True) is None


class TestUsage:
    """Tests for per-user usage counters."""

    async def test_get_usage_creates_counter(self, store):
        usage = await store.get_usage("user-1", monthly_limit=5)

        assert usage.videos_processed == 0
        assert usage.monthly_limit == 5

    async def test_increment(self, store):
        await store.get_usage("user-1", monthly_limit=5)

        await store.increment_usage_counter("user-1")
        usage = await store.increment_usage_counter("user-1")

        assert usage.videos_processed == 2
        assert (await store.get_usage("user-1", monthly_limit=5)).videos_processed == 2

    async def test_increment_without_counter_upserts(self, store):
        usage = await store.increment_usage_counter("new-user")
        assert usage.videos_processed == 1

    async def test_unknown_counter(self, store):
        with pytest.raises(ValueError):
            await store.increment_usage_counter("user-1", field="hours")

    async def test_rolls_over_in_a_new_month(self, store, document_db):
        await document_db.insert(
            "user_usage",
            {
                "id": "user-1",
                "user_id": "user-1",
                "videos_processed": 9,
                "last_reset": datetime(2020, 1, 1, tzinfo=UTC),
            },
        )

        usage = await store.get_usage("user-1", monthly_limit=10)

        assert usage.videos_processed == 0
        assert (await document_db.find_by_id("user_usage", "user-1"))["videos_processed"] == 0
