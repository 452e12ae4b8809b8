"""Video submission, status and artifact endpoints."""

import asyncio
import contextlib
from pathlib import Path
from typing import Annotated
from uuid import uuid4

from fastapi import (
    APIRouter,
    File,
    Form,
    Query,
    Response,
    UploadFile,
    status,
)
from fastapi import Path as PathParam

from src.api.dependencies import (
    ArtifactServiceDep,
    IngestionServiceDep,
    SettingsDep,
    UserIdDep,
)
from src.api.middleware.error_handler import APIError
from src.application.dtos.videos import (
    AnswerQuestionRequest,
    AnswerResultResponse,
    PaginationInfo,
    QuestionsResponse,
    RegenerateSummaryRequest,
    SubmitYouTubeRequest,
    UsageResponse,
    VideoDetailResponse,
    VideoListResponse,
    VideoResponse,
    VideoStatusResponse,
)
from src.commons.settings.models import Settings
from src.domain.exceptions import InvalidMediaException, SubmissionNotQueuedException
from src.domain.models.summary import Summary
from src.domain.models.video import VideoStatus

router = APIRouter()

_UPLOAD_CHUNK_BYTES = 1024 * 1024


def _artifact_not_ready(video_id: str, artifact: str) -> APIError:
    return APIError(
        code="ARTIFACT_NOT_READY",
        message=f"The {artifact} for video {video_id} is not available yet",
        status_code=status.HTTP_404_NOT_FOUND,
        details={"video_id": video_id, "artifact": artifact},
    )


async def _save_upload(file: UploadFile, settings: Settings) -> Path:
    """Stream an upload to the upload directory under a fresh name.

    Raises:
        InvalidMediaException: If the file type is not accepted or it is too large.
    """
    suffix = Path(file.filename or "").suffix.lower()
    if suffix not in settings.uploads.allowed_extensions:
        raise InvalidMediaException(f"Unsupported file type '{suffix or 'none'}'")

    directory = Path(settings.uploads.directory)
    directory.mkdir(parents=True, exist_ok=True)
    destination = directory / f"{uuid4().hex}{suffix}"
    max_bytes = settings.uploads.max_size_mb * 1024 * 1024

    loop = asyncio.get_running_loop()
    out = await loop.run_in_executor(None, destination.open, "wb")
    written = 0
    try:
        while chunk := await file.read(_UPLOAD_CHUNK_BYTES):
            written += len(chunk)
            if written > max_bytes:
                break
            await loop.run_in_executor(None, out.write, chunk)
    finally:
        await loop.run_in_executor(None, out.close)

    if written > max_bytes:
        destination.unlink(missing_ok=True)
        raise InvalidMediaException(
            f"File exceeds the {settings.uploads.max_size_mb} MB limit"
        )
    if written == 0:
        destination.unlink(missing_ok=True)
        raise InvalidMediaException("File is empty")
    return destination


@router.post(
    "/videos/upload",
    response_model=VideoResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Upload a video",
    description="Upload a video file and queue it for transcription, "
    "summarization and question generation.",
)
async def upload_video(
    service: IngestionServiceDep,
    settings: SettingsDep,
    user_id: UserIdDep,
    file: Annotated[UploadFile, File(description="Video file")],
    title: Annotated[str | None, Form(max_length=500)] = None,
) -> VideoResponse:
    """Accept an upload; processing continues in the background."""
    path = await _save_upload(file, settings)
    try:
        video = await service.submit_upload(user_id, title, path)
    except SubmissionNotQueuedException:
        # A failed record points at the file; resubmitting needs it
        raise
    except Exception:
        with contextlib.suppress(OSError):
            path.unlink(missing_ok=True)
        raise
    return VideoResponse.from_video(video)


@router.post(
    "/videos/youtube",
    response_model=VideoResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit a YouTube video",
    description="Resolve a YouTube video's audio stream and queue it for processing.",
)
async def submit_youtube(
    request: SubmitYouTubeRequest,
    service: IngestionServiceDep,
    user_id: UserIdDep,
) -> VideoResponse:
    video = await service.submit_youtube(user_id, request.url, request.title)
    return VideoResponse.from_video(video)


@router.get(
    "/videos",
    response_model=VideoListResponse,
    summary="List videos",
    description="List the caller's videos, newest first.",
)
async def list_videos(
    service: IngestionServiceDep,
    user_id: UserIdDep,
    status_filter: Annotated[
        VideoStatus | None,
        Query(alias="status", description="Filter by status"),
    ] = None,
    page: Annotated[int, Query(ge=1, description="Page number")] = 1,
    page_size: Annotated[int, Query(ge=1, le=100, description="Items per page")] = 20,
) -> VideoListResponse:
    skip = (page - 1) * page_size
    videos, total = await service.list_videos(
        user_id, status=status_filter, skip=skip, limit=page_size
    )
    return VideoListResponse(
        videos=[VideoResponse.from_video(video) for video in videos],
        pagination=PaginationInfo(
            page=page,
            page_size=page_size,
            total_items=total,
            total_pages=(total + page_size - 1) // page_size,
        ),
    )


@router.get(
    "/videos/usage",
    response_model=UsageResponse,
    summary="Monthly usage",
    description="How many videos the caller submitted this month.",
)
async def get_usage(
    service: IngestionServiceDep,
    user_id: UserIdDep,
) -> UsageResponse:
    usage = await service.get_usage(user_id)
    return UsageResponse(
        user_id=usage.user_id,
        videos_processed=usage.videos_processed,
        monthly_limit=usage.monthly_limit,
        remaining=max(usage.monthly_limit - usage.videos_processed, 0),
    )


@router.get(
    "/videos/{video_id}",
    response_model=VideoDetailResponse,
    summary="Get video",
    description="Get a video with every artifact produced so far.",
)
async def get_video(
    video_id: str,
    service: IngestionServiceDep,
    user_id: UserIdDep,
) -> VideoDetailResponse:
    video = await service.get_video(user_id, video_id)
    return VideoDetailResponse.from_video(video)


@router.get(
    "/videos/{video_id}/status",
    response_model=VideoStatusResponse,
    summary="Pipeline status",
)
async def get_video_status(
    video_id: str,
    service: IngestionServiceDep,
    user_id: UserIdDep,
) -> VideoStatusResponse:
    video = await service.get_video(user_id, video_id)
    return VideoStatusResponse.from_video(video)


@router.get(
    "/videos/{video_id}/summary",
    response_model=Summary,
    summary="Get summary",
)
async def get_video_summary(
    video_id: str,
    service: IngestionServiceDep,
    user_id: UserIdDep,
) -> Summary:
    video = await service.get_video(user_id, video_id)
    if video.summary is None:
        raise _artifact_not_ready(video_id, "summary")
    return video.summary


@router.get(
    "/videos/{video_id}/questions",
    response_model=QuestionsResponse,
    summary="Get questions",
)
async def get_video_questions(
    video_id: str,
    service: IngestionServiceDep,
    user_id: UserIdDep,
) -> QuestionsResponse:
    video = await service.get_video(user_id, video_id)
    if video.questions is None:
        raise _artifact_not_ready(video_id, "questions")
    return QuestionsResponse(
        video_id=video_id,
        questions=video.questions,
        total=len(video.questions),
    )


@router.post(
    "/videos/{video_id}/retry",
    response_model=VideoResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Retry a failed video",
    description="Queue a failed video again. Processing resumes at the stage "
    "that failed; earlier artifacts are kept.",
)
async def retry_video(
    video_id: str,
    service: IngestionServiceDep,
    user_id: UserIdDep,
) -> VideoResponse:
    video = await service.resubmit(user_id, video_id)
    return VideoResponse.from_video(video)


@router.post(
    "/videos/{video_id}/cancel",
    response_model=VideoResponse,
    summary="Cancel processing",
    description="Stop further processing and mark the video failed.",
)
async def cancel_video(
    video_id: str,
    service: IngestionServiceDep,
    user_id: UserIdDep,
) -> VideoResponse:
    video = await service.abandon_video(user_id, video_id)
    return VideoResponse.from_video(video)


@router.delete(
    "/videos/{video_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a video",
    description="Cancel any pending work, then remove the video, its artifacts "
    "and its uploaded file.",
)
async def delete_video(
    video_id: str,
    service: IngestionServiceDep,
    user_id: UserIdDep,
) -> Response:
    await service.delete_video(user_id, video_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/videos/{video_id}/summary",
    response_model=Summary,
    summary="Regenerate summary",
    description="Summarize a completed video again in the requested style. "
    "The new summary replaces the stored one.",
)
async def regenerate_summary(
    video_id: str,
    request: RegenerateSummaryRequest,
    service: ArtifactServiceDep,
    user_id: UserIdDep,
) -> Summary:
    return await service.regenerate_summary(
        user_id, video_id, request.summary_type, language=request.language
    )


@router.post(
    "/videos/{video_id}/questions/{index}/answer",
    response_model=AnswerResultResponse,
    summary="Answer a question",
    description="Grade an answer to one generated question and update its statistics.",
)
async def answer_question(
    video_id: str,
    index: Annotated[int, PathParam(ge=0, description="Position in the question list")],
    request: AnswerQuestionRequest,
    service: ArtifactServiceDep,
    user_id: UserIdDep,
) -> AnswerResultResponse:
    question, correct = await service.answer_question(
        user_id,
        video_id,
        index,
        request.answer,
        time_spent_seconds=request.time_spent_seconds,
    )
    return AnswerResultResponse.from_question(video_id, index, question, correct)
