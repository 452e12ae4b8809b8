"""Per-user processing quota."""

from datetime import UTC, datetime
from typing import Self

from pydantic import BaseModel, Field

DEFAULT_MONTHLY_LIMIT = 10


class UserUsage(BaseModel):
    """Monthly counter of videos submitted by a user."""

    user_id: str
    videos_processed: int = Field(default=0, ge=0)
    monthly_limit: int = Field(default=DEFAULT_MONTHLY_LIMIT, ge=0)
    last_reset: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def needs_reset(self, now: datetime | None = None) -> bool:
        """Check whether the counter belongs to a previous calendar month."""
        now = now or datetime.now(UTC)
        return (now.year, now.month) != (self.last_reset.year, self.last_reset.month)

    def reset(self, now: datetime | None = None) -> Self:
        """Create a new instance with the counter zeroed for the current month."""
        return self.model_copy(
            update={"videos_processed": 0, "last_reset": now or datetime.now(UTC)}
        )

    def can_process(self) -> bool:
        """Check if the user may submit another video this month."""
        return self.videos_processed < self.monthly_limit
