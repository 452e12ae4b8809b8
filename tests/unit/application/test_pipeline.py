"""Unit tests for the pipeline orchestrator and its retry layers."""

import asyncio
import json
import logging

import pytest

from src.application.services.pipeline import PipelineOptions
from src.application.services.worker import PipelineWorker, WorkerPool
from src.commons.settings.models import PipelineSettings
from src.domain.exceptions import (
    InvalidStageTransition,
    PreconditionFailed,
    RemoteRejected,
    RemoteTransient,
    StageRetriesExhausted,
)
from src.domain.models.summary import SummaryType
from src.domain.models.transcript import Transcript
from src.domain.models.video import ProcessingStage, VideoStatus
from src.domain.value_objects import RetryPolicy

STUB_SUMMARY = "A stub summary of the greeting."


def stub_questions(count=3):
    return json.dumps(
        {
            "questions": [
                {"question": f"What is said in part {i}?", "type": "short_answer"}
                for i in range(count)
            ]
        }
    )


class TestPipelineOptions:
    """Tests for building options from settings."""

    def test_from_settings(self):
        options = PipelineOptions.from_settings(
            PipelineSettings(summary_type="brief", question_count=7, analysis_enabled=False)
        )
        assert options.summary_type == SummaryType.BRIEF
        assert options.question_count == 7
        assert options.analysis_enabled is False


class TestProcessVideo:
    """Tests for running stages in order."""

    async def test_end_to_end(
        self, store, queue, make_video, scripted_transcription, scripted_llm, build_orchestrator
    ):
        await store.create(make_video(id="v1", source_file_path="sample.mp4"))
        await queue.enqueue("v1", "sample.mp4")
        transcription = scripted_transcription(Transcript(text="hello world", language="en"))
        llm = scripted_llm(STUB_SUMMARY, stub_questions(3))
        worker = PipelineWorker(queue, build_orchestrator(transcription, llm), store)

        handled = await WorkerPool(worker).drain()

        video = await store.get("v1")
        assert handled == 1
        assert video.status == VideoStatus.COMPLETED
        assert video.processing_stage == ProcessingStage.COMPLETED
        assert video.transcript.text == "hello world"
        assert video.summary.text == STUB_SUMMARY
        assert len(video.questions) == 3
        assert video.progress_percent == 100
        assert str(transcription.calls[0]) == "sample.mp4"
        assert await queue.count_active() == 0

    async def test_url_sourced_video_is_transcribed_remotely(
        self, store, make_video, scripted_transcription, scripted_llm, build_orchestrator
    ):
        video = make_video(source_file_path=None, source_url="https://cdn.example.com/a.m4a")
        await store.create(video)
        transcription = scripted_transcription()

        await build_orchestrator(
            transcription, scripted_llm(STUB_SUMMARY, stub_questions())
        ).process_video(video.id)

        assert transcription.calls == ["https://cdn.example.com/a.m4a"]

    async def test_duration_taken_from_transcript(
        self, store, make_video, scripted_transcription, scripted_llm, build_orchestrator
    ):
        video = make_video()
        await store.create(video)
        transcription = scripted_transcription(Transcript(text="hello world", audio_duration=42.0))

        done = await build_orchestrator(
            transcription, scripted_llm(STUB_SUMMARY, stub_questions())
        ).process_video(video.id)

        assert done.duration_seconds == 42.0

    async def test_run_duration_is_logged(
        self, caplog, store, make_video, scripted_transcription, scripted_llm, build_orchestrator
    ):
        video = make_video()
        await store.create(video)
        orchestrator = build_orchestrator(
            scripted_transcription(), scripted_llm(STUB_SUMMARY, stub_questions())
        )

        with caplog.at_level(logging.DEBUG):
            await orchestrator.process_video(video.id)

        timing = [
            record
            for record in caplog.records
            if record.getMessage() == "VideoPipelineOrchestrator.process_video completed"
        ]
        assert len(timing) == 1
        assert timing[0].duration_ms >= 0

    async def test_analysis_is_stored_with_summary(
        self, store, make_video, scripted_transcription, scripted_llm, build_orchestrator
    ):
        video = make_video()
        await store.create(video)
        llm = scripted_llm(
            STUB_SUMMARY,
            json.dumps({"key_points": [{"point": "Greeting"}]}),
            json.dumps({"topics": []}),
            json.dumps({"overall": "positive"}),
            stub_questions(),
        )

        done = await build_orchestrator(
            scripted_transcription(), llm, analysis_enabled=True
        ).process_video(video.id)

        assert done.analysis.key_points[0].point == "Greeting"
        assert done.analysis.sentiment.overall == "positive"

    async def test_resume_skips_finished_stages(
        self, store, make_video, scripted_transcription, scripted_llm, build_orchestrator
    ):
        video = make_video(
            status=VideoStatus.PROCESSING,
            processing_stage=ProcessingStage.SUMMARIZATION,
            transcript=Transcript(text="hello world"),
        )
        await store.create(video)
        transcription = scripted_transcription()
        llm = scripted_llm(STUB_SUMMARY, stub_questions())

        done = await build_orchestrator(transcription, llm).process_video(video.id)

        assert transcription.calls == []
        assert len(llm.calls) == 2
        assert done.status == VideoStatus.COMPLETED

    async def test_completed_video_is_left_alone(
        self, store, make_video, scripted_transcription, scripted_llm, build_orchestrator
    ):
        video = make_video()
        await store.create(video)
        transcription = scripted_transcription()
        llm = scripted_llm(STUB_SUMMARY, stub_questions())
        orchestrator = build_orchestrator(transcription, llm)
        first = await orchestrator.process_video(video.id)

        second = await orchestrator.process_video(video.id)

        assert second.questions == first.questions
        assert len(transcription.calls) == 1
        assert len(llm.calls) == 2

    async def test_missing_video(self, scripted_transcription, scripted_llm, build_orchestrator):
        orchestrator = build_orchestrator(scripted_transcription(), scripted_llm("x"))

        with pytest.raises(PreconditionFailed):
            await orchestrator.process_video("missing")

    async def test_failed_video_needs_resubmit(
        self, store, make_video, scripted_transcription, scripted_llm, build_orchestrator
    ):
        video = make_video(status=VideoStatus.FAILED, processing_stage=ProcessingStage.FAILED)
        await store.create(video)

        with pytest.raises(PreconditionFailed):
            await build_orchestrator(
                scripted_transcription(), scripted_llm("x")
            ).process_video(video.id)


class TestStageFailures:
    """Tests for how stage errors are settled."""

    async def test_empty_transcript_fails_without_remote_calls(
        self, store, make_video, scripted_transcription, scripted_llm, build_orchestrator
    ):
        video = make_video()
        await store.create(video)
        llm = scripted_llm(STUB_SUMMARY)

        with pytest.raises(PreconditionFailed):
            await build_orchestrator(
                scripted_transcription(Transcript(text="   ")), llm
            ).process_video(video.id)

        failed = await store.get(video.id)
        assert llm.calls == []
        assert failed.status == VideoStatus.FAILED
        assert failed.failed_stage == ProcessingStage.SUMMARIZATION
        assert failed.transcript.text == "   "

    async def test_input_precondition_is_not_retried(
        self, store, make_video, scripted_transcription, scripted_llm, build_orchestrator
    ):
        video = make_video()
        await store.create(video)
        transcription = scripted_transcription(PreconditionFailed("no audio track", "transcription"))

        with pytest.raises(PreconditionFailed):
            await build_orchestrator(transcription, scripted_llm("x")).process_video(video.id)

        assert len(transcription.calls) == 1
        assert (await store.get(video.id)).error == "[transcription] no audio track"

    async def test_rejection_fails_the_video(
        self, store, make_video, scripted_transcription, scripted_llm, build_orchestrator
    ):
        video = make_video()
        await store.create(video)
        llm = scripted_llm(STUB_SUMMARY, RemoteRejected("content policy"))

        with pytest.raises(RemoteRejected):
            await build_orchestrator(scripted_transcription(), llm).process_video(video.id)

        failed = await store.get(video.id)
        assert failed.failed_stage == ProcessingStage.QUESTION_GENERATION
        assert failed.summary.text == STUB_SUMMARY
        assert len(llm.calls) == 2

    async def test_transient_errors_retry_in_process(
        self, store, make_video, scripted_transcription, scripted_llm, build_orchestrator
    ):
        video = make_video()
        await store.create(video)
        transcription = scripted_transcription(
            RemoteTransient("503"),
            RemoteTransient("503"),
            Transcript(text="hello world"),
        )

        done = await build_orchestrator(
            transcription, scripted_llm(STUB_SUMMARY, stub_questions())
        ).process_video(video.id)

        assert len(transcription.calls) == 3
        assert done.status == VideoStatus.COMPLETED

    async def test_exhausted_stage_leaves_video_for_redelivery(
        self, store, make_video, scripted_transcription, scripted_llm, build_orchestrator
    ):
        video = make_video()
        await store.create(video)
        transcription = scripted_transcription(RemoteTransient("503"))

        with pytest.raises(StageRetriesExhausted):
            await build_orchestrator(transcription, scripted_llm("x")).process_video(video.id)

        current = await store.get(video.id)
        assert len(transcription.calls) == 3
        assert current.status == VideoStatus.PROCESSING
        assert current.processing_stage == ProcessingStage.TRANSCRIPTION


class TestRetryBudget:
    """Tests for the combined in-process and queue retry layers."""

    async def test_at_most_nine_attempts_then_exhausted(
        self,
        store,
        queue,
        make_video,
        scripted_transcription,
        scripted_llm,
        build_orchestrator,
    ):
        video = make_video()
        await store.create(video)
        await queue.enqueue(video.id, video.source_file_path)
        transcription = scripted_transcription(RemoteTransient("503"))
        worker = PipelineWorker(
            queue,
            build_orchestrator(transcription, scripted_llm("x")),
            store,
            queue_retry=RetryPolicy(max_attempts=3, base_delay_seconds=0.0),
        )

        handled = await WorkerPool(worker).drain()

        failed = await store.get(video.id)
        assert handled == 3
        assert len(transcription.calls) == 9
        assert failed.status == VideoStatus.FAILED
        assert failed.failed_stage == ProcessingStage.TRANSCRIPTION
        assert failed.error == "[transcription] Gave up after 3 deliveries: 503"
        assert await queue.get_active(video.id) is None


class TestMonotonicStages:
    """Tests for concurrent deliveries of the same video."""

    async def test_racing_runs_never_move_backwards(
        self, store, make_video, scripted_transcription, scripted_llm, build_orchestrator
    ):
        video = make_video()
        await store.create(video)
        transcription = scripted_transcription()
        orchestrator = build_orchestrator(
            transcription, scripted_llm(STUB_SUMMARY, stub_questions(), stub_questions())
        )

        results = await asyncio.gather(
            orchestrator.process_video(video.id),
            orchestrator.process_video(video.id),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], InvalidStageTransition)
        final = await store.get(video.id)
        assert final.status == VideoStatus.COMPLETED
        assert final.processing_stage == ProcessingStage.COMPLETED
