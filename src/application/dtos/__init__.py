"""Data Transfer Objects for application layer."""

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

__all__ = [
    # Requests
    "AnswerQuestionRequest",
    "RegenerateSummaryRequest",
    "SubmitYouTubeRequest",
    # Responses
    "AnswerResultResponse",
    "PaginationInfo",
    "QuestionsResponse",
    "UsageResponse",
    "VideoDetailResponse",
    "VideoListResponse",
    "VideoResponse",
    "VideoStatusResponse",
]
