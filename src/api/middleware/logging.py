"""Request logging middleware."""

import logging
import time
from collections.abc import Callable
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from src.commons.telemetry.decorators import LogContext
from src.commons.telemetry.logger import get_logger, set_correlation_id

logger = get_logger(__name__)

# Probe endpoints are polled constantly; keep them out of INFO output
_QUIET_PREFIXES = ("/health",)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request and tags its log records with a request ID.

    The ID comes from the X-Request-ID header when present and is echoed
    back on the response. The caller's X-User-Id is added to the log
    context so service and pipeline records can be traced to a user.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        request_id = set_correlation_id(request.headers.get("X-Request-ID"))
        request.state.request_id = request_id

        path = request.url.path
        level = logging.DEBUG if path.startswith(_QUIET_PREFIXES) else logging.INFO
        user_id = request.headers.get("X-User-Id", "").strip() or None

        with LogContext(user_id=user_id):
            start_time = time.perf_counter()
            logger.log(
                level,
                "Request started",
                extra={
                    "method": request.method,
                    "path": path,
                    "client_ip": request.client.host if request.client else "unknown",
                },
            )

            try:
                response: Response = await call_next(request)
            except Exception:
                logger.warning(
                    "Request raised",
                    extra={
                        "method": request.method,
                        "path": path,
                        "duration_ms": _elapsed_ms(start_time),
                    },
                )
                raise

            logger.log(
                level,
                "Request completed",
                extra={
                    "method": request.method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": _elapsed_ms(start_time),
                },
            )

        response.headers["X-Request-ID"] = request_id
        return response


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)
