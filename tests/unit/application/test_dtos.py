"""Unit tests for application DTOs."""

import pytest
from pydantic import ValidationError

from src.application.dtos.videos import (
    PaginationInfo,
    SubmitYouTubeRequest,
    VideoDetailResponse,
    VideoResponse,
    VideoStatusResponse,
)
from src.domain.models.question import Question
from src.domain.models.summary import Summary
from src.domain.models.transcript import Transcript
from src.domain.models.video import ProcessingStage, Video, VideoStatus


def make_video(**overrides):
    data = {"owner": "user-1", "title": "Lecture", "source_file_path": "/data/a.mp4"}
    data.update(overrides)
    return Video(**data)


class TestSubmitYouTubeRequest:
    """Tests for SubmitYouTubeRequest DTO."""

    def test_title_is_optional(self):
        request = SubmitYouTubeRequest(url="https://youtu.be/dQw4w9WgXcQ")
        assert request.title is None

    def test_title_length(self):
        with pytest.raises(ValidationError):
            SubmitYouTubeRequest(url="https://youtu.be/dQw4w9WgXcQ", title="x" * 501)


class TestVideoResponse:
    """Tests for VideoResponse DTO."""

    def test_from_uploaded_video(self):
        response = VideoResponse.from_video(make_video())

        assert response.source == "upload"
        assert response.status == VideoStatus.UPLOADING
        assert response.progress_percent == 0
        assert response.has_transcript is False
        assert response.question_count == 0

    def test_from_youtube_video(self):
        video = make_video(
            source_file_path=None,
            source_url="https://rr1.googlevideo.com/audio",
            youtube_id="dQw4w9WgXcQ",
        )

        response = VideoResponse.from_video(video)

        assert response.source == "youtube"
        assert response.youtube_id == "dQw4w9WgXcQ"

    def test_artifact_flags(self):
        video = make_video(
            status=VideoStatus.PROCESSING,
            processing_stage=ProcessingStage.QUESTION_GENERATION,
            transcript=Transcript(text="hello world"),
            summary=Summary.from_text("A short summary.", model="gpt-4o-mini"),
        )

        response = VideoResponse.from_video(video)

        assert response.has_transcript is True
        assert response.has_summary is True
        assert response.progress_percent == 67

    def test_failed_video_keeps_failed_stage(self):
        video = make_video().mark_failed("[transcription] 503")

        response = VideoResponse.from_video(video)

        assert response.status == VideoStatus.FAILED
        assert response.failed_stage == ProcessingStage.TRANSCRIPTION
        assert response.error == "[transcription] 503"


class TestVideoDetailResponse:
    """Tests for VideoDetailResponse DTO."""

    def test_includes_artifacts(self):
        video = make_video(
            status=VideoStatus.COMPLETED,
            processing_stage=ProcessingStage.COMPLETED,
            transcript=Transcript(text="hello world"),
            summary=Summary.from_text("A short summary.", model="gpt-4o-mini"),
            questions=[Question(question="What is said?"), Question(question="Why?")],
        )

        response = VideoDetailResponse.from_video(video)

        assert response.progress_percent == 100
        assert response.question_count == 2
        assert response.transcript.text == "hello world"
        assert response.summary.word_count == 3
        assert response.analysis is None

    def test_serializes_enums_as_values(self):
        data = VideoDetailResponse.from_video(make_video()).model_dump(mode="json")

        assert data["status"] == "uploading"
        assert data["processing_stage"] == "transcription"
        assert data["questions"] is None


class TestVideoStatusResponse:
    """Tests for VideoStatusResponse DTO."""

    def test_from_video(self):
        video = make_video(
            status=VideoStatus.PROCESSING,
            processing_stage=ProcessingStage.SUMMARIZATION,
        )

        response = VideoStatusResponse.from_video(video)

        assert response.video_id == video.id
        assert response.processing_stage == ProcessingStage.SUMMARIZATION
        assert response.progress_percent == 33


class TestPaginationInfo:
    """Tests for PaginationInfo DTO."""

    def test_valid(self):
        info = PaginationInfo(page=2, page_size=20, total_items=45, total_pages=3)
        assert info.total_pages == 3

    def test_page_size_bounds(self):
        with pytest.raises(ValidationError):
            PaginationInfo(page=1, page_size=101, total_items=0, total_pages=0)
