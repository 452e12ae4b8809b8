"""Retry and exponential backoff policy value object."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pydantic import BaseModel, Field

from src.domain.exceptions import RemoteTransient, StageRetriesExhausted

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]
RetryCallback = Callable[[int, float, RemoteTransient], None]


class RetryPolicy(BaseModel, frozen=True):
    """Bounded retry with a doubling delay.

    The same policy shape drives both layers of retry: the fast in-process
    retry around a single stage call, and the queue-level redelivery of a
    whole job.

    Examples:
        >>> policy = RetryPolicy(max_attempts=3, base_delay_seconds=1.0)
        >>> [policy.delay_for(n) for n in (1, 2, 3)]
        [1.0, 2.0, 4.0]
    """

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Total attempts including the first one",
    )
    base_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Delay before the first retry",
    )
    multiplier: float = Field(default=2.0, ge=1.0)
    max_delay_seconds: float | None = Field(
        default=None,
        ge=0,
        description="Upper bound for a single delay",
    )

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given failed attempt.

        Args:
            attempt: 1-based number of the attempt that just failed.

        Returns:
            Seconds to wait before the next attempt.
        """
        if attempt < 1:
            raise ValueError("attempt is 1-based")
        delay = self.base_delay_seconds * self.multiplier ** (attempt - 1)
        if self.max_delay_seconds is not None:
            delay = min(delay, self.max_delay_seconds)
        return delay

    def has_attempts_left(self, attempts_made: int) -> bool:
        """Check whether another attempt is allowed."""
        return attempts_made < self.max_attempts

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        stage: str | None = None,
        sleep: SleepFn = asyncio.sleep,
        on_retry: RetryCallback | None = None,
    ) -> T:
        """Run an async operation, retrying transient failures.

        Only RemoteTransient is retried. Any other exception propagates on
        the first occurrence.

        Args:
            operation: Zero-argument coroutine factory.
            stage: Stage name recorded on the exhaustion error.
            sleep: Awaitable sleep, injectable for tests.
            on_retry: Called with (attempt, delay, error) before each wait.

        Returns:
            The operation's result.

        Raises:
            StageRetriesExhausted: If every attempt failed transiently.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except RemoteTransient as e:
                if not self.has_attempts_left(attempt):
                    raise StageRetriesExhausted(stage, attempt, e) from e
                delay = self.delay_for(attempt)
                if on_retry is not None:
                    on_retry(attempt, delay, e)
                await sleep(delay)
