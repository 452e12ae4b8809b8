"""Error handling middleware and exception handlers."""

from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import RequestResponseEndpoint
from starlette.responses import Response

from src.commons.telemetry.logger import get_logger
from src.domain.exceptions import (
    DomainException,
    InvalidMediaException,
    InvalidStageTransition,
    InvalidYouTubeUrlException,
    QuestionNotFoundException,
    RemoteRejected,
    RemoteTransient,
    SourceUnavailableException,
    SubmissionNotQueuedException,
    UsageLimitExceededException,
    VideoNotFoundException,
    VideoNotReadyException,
    VideoNotRetryableException,
)

logger = get_logger(__name__)


class APIError(Exception):
    """Base API error with code and details."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            code: Error code for clients.
            message: Human-readable error message.
            status_code: HTTP status code.
            details: Additional error details.
        """
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


def _build_error_response(
    request: Request,
    code: str,
    message: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build standardized error response."""
    request_id = getattr(request.state, "request_id", "unknown")

    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
                "request_id": request_id,
            }
        },
    )


# Domain errors that map to a fixed client-facing code and status
_DOMAIN_ERRORS: list[tuple[type[DomainException], str, int]] = [
    (VideoNotFoundException, "VIDEO_NOT_FOUND", status.HTTP_404_NOT_FOUND),
    (UsageLimitExceededException, "USAGE_LIMIT_EXCEEDED", status.HTTP_429_TOO_MANY_REQUESTS),
    (InvalidYouTubeUrlException, "INVALID_YOUTUBE_URL", status.HTTP_400_BAD_REQUEST),
    (InvalidMediaException, "INVALID_MEDIA", status.HTTP_400_BAD_REQUEST),
    (VideoNotRetryableException, "VIDEO_NOT_RETRYABLE", status.HTTP_409_CONFLICT),
    (InvalidStageTransition, "INVALID_STATE", status.HTTP_409_CONFLICT),
    (QuestionNotFoundException, "QUESTION_NOT_FOUND", status.HTTP_404_NOT_FOUND),
    (VideoNotReadyException, "VIDEO_NOT_READY", status.HTTP_409_CONFLICT),
    (SourceUnavailableException, "SOURCE_UNAVAILABLE", status.HTTP_502_BAD_GATEWAY),
    (RemoteRejected, "PROVIDER_REJECTED", status.HTTP_502_BAD_GATEWAY),
    (RemoteTransient, "PROVIDER_UNAVAILABLE", status.HTTP_503_SERVICE_UNAVAILABLE),
    (SubmissionNotQueuedException, "QUEUE_UNAVAILABLE", status.HTTP_503_SERVICE_UNAVAILABLE),
]


def _domain_details(exc: DomainException) -> dict[str, Any]:
    details: dict[str, Any] = {}
    video_id = getattr(exc, "video_id", None)
    if video_id is not None:
        details["video_id"] = video_id
    if isinstance(exc, UsageLimitExceededException):
        details["monthly_limit"] = exc.limit
    if isinstance(exc, QuestionNotFoundException):
        details["question_index"] = exc.index
    return details


def _handle_exception(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle exception and return appropriate error response.

    Args:
        request: HTTP request.
        exc: Exception to handle.

    Returns:
        JSON error response.
    """
    if isinstance(exc, APIError):
        logger.warning(
            f"API error: {exc.code}",
            extra={
                "error_code": exc.code,
                "error_message": exc.message,
                "details": exc.details,
            },
        )
        return _build_error_response(
            request=request,
            code=exc.code,
            message=exc.message,
            status_code=exc.status_code,
            details=exc.details,
        )

    for exc_type, code, status_code in _DOMAIN_ERRORS:
        if isinstance(exc, exc_type):
            logger.warning(f"{code}: {exc}")
            return _build_error_response(
                request=request,
                code=code,
                message=str(exc),
                status_code=status_code,
                details=_domain_details(exc),
            )

    if isinstance(exc, DomainException):
        logger.warning(f"Domain error: {exc}")
        return _build_error_response(
            request=request,
            code="DOMAIN_ERROR",
            message=str(exc),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    # Catch-all for unexpected errors
    logger.exception(f"Unexpected error: {exc}")
    return _build_error_response(
        request=request,
        code="INTERNAL_ERROR",
        message="An unexpected error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def error_handler_middleware(
    request: Request,
    call_next: RequestResponseEndpoint,
) -> Response:
    """Middleware to catch and format all exceptions.

    Args:
        request: HTTP request.
        call_next: Next handler in chain.

    Returns:
        HTTP response.
    """
    try:
        return await call_next(request)
    except Exception as exc:
        return _handle_exception(request, exc)
