"""Telemetry decorators for timing and exception logging."""

import functools
import inspect
import logging
import time
from collections.abc import Callable
from typing import Any, ParamSpec, TypeVar, overload

from src.commons.telemetry.logger import get_log_context, get_logger, log_context_var

P = ParamSpec("P")
R = TypeVar("R")


def _wrap(
    fn: Callable[P, R],
    around: Callable[[Callable[[], Any]], Any],
    around_async: Callable[[Callable[[], Any]], Any],
) -> Callable[P, R]:
    """Apply sync or async wrapping depending on the function kind."""
    if inspect.iscoroutinefunction(fn):

        @functools.wraps(fn)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            return await around_async(lambda: fn(*args, **kwargs))  # type: ignore[no-any-return]

        return async_wrapper  # type: ignore[return-value]

    @functools.wraps(fn)
    def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        return around(lambda: fn(*args, **kwargs))  # type: ignore[no-any-return]

    return sync_wrapper


@overload
def log_exceptions(func: Callable[P, R]) -> Callable[P, R]: ...


@overload
def log_exceptions(
    *,
    logger: logging.Logger | None = None,
    level: int = logging.ERROR,
    message: str | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]: ...


def log_exceptions(
    func: Callable[P, R] | None = None,
    *,
    logger: logging.Logger | None = None,
    level: int = logging.ERROR,
    message: str | None = None,
) -> Callable[P, R] | Callable[[Callable[P, R]], Callable[P, R]]:
    """Log any exception escaping the function, then re-raise it.

    Args:
        func: The function to decorate (when used without parentheses).
        logger: Optional logger instance. Defaults to the function's module logger.
        level: Log level for exceptions.
        message: Optional custom message.
    """

    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        log = logger or get_logger(fn.__module__)
        msg = message or f"Exception in {fn.__qualname__}"

        def report(e: Exception) -> None:
            log.log(level, msg, exc_info=True, extra={"exception_type": type(e).__name__})

        def around(call: Callable[[], Any]) -> Any:
            try:
                return call()
            except Exception as e:
                report(e)
                raise

        async def around_async(call: Callable[[], Any]) -> Any:
            try:
                return await call()
            except Exception as e:
                report(e)
                raise

        return _wrap(fn, around, around_async)

    if func is not None:
        return decorator(func)
    return decorator


@overload
def timed(func: Callable[P, R]) -> Callable[P, R]: ...


@overload
def timed(
    *,
    logger: logging.Logger | None = None,
    level: int = logging.DEBUG,
    threshold_ms: float | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]: ...


def timed(
    func: Callable[P, R] | None = None,
    *,
    logger: logging.Logger | None = None,
    level: int = logging.DEBUG,
    threshold_ms: float | None = None,
) -> Callable[P, R] | Callable[[Callable[P, R]], Callable[P, R]]:
    """Log how long the function took.

    Args:
        func: The function to decorate (when used without parentheses).
        logger: Optional logger instance.
        level: Log level for timing messages.
        threshold_ms: Only log if execution exceeds this threshold in milliseconds.
    """

    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        log = logger or get_logger(fn.__module__)

        def report(start: float) -> None:
            elapsed_ms = (time.perf_counter() - start) * 1000
            if threshold_ms is None or elapsed_ms >= threshold_ms:
                log.log(
                    level,
                    f"{fn.__qualname__} completed",
                    extra={"duration_ms": round(elapsed_ms, 2)},
                )

        def around(call: Callable[[], Any]) -> Any:
            start = time.perf_counter()
            try:
                return call()
            finally:
                report(start)

        async def around_async(call: Callable[[], Any]) -> Any:
            start = time.perf_counter()
            try:
                return await call()
            finally:
                report(start)

        return _wrap(fn, around, around_async)

    if func is not None:
        return decorator(func)
    return decorator


class LogContext:
    """Context manager that adds keys to the logging context temporarily.

    Example:
        with LogContext(video_id=video.id, job_id=job.id):
            logger.info("Processing")
    """

    def __init__(self, **kwargs: Any) -> None:
        self.context = {key: value for key, value in kwargs.items() if value is not None}
        self._previous_context: dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self._previous_context = get_log_context()
        log_context_var.set({**self._previous_context, **self.context})
        return self

    def __exit__(self, *args: Any) -> None:
        log_context_var.set(self._previous_context)
