"""Domain models for geotag usage tracking."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ActivityEvent:
    """A recorded geotag action."""

    telegram_user_id: int
    action: str
    success: bool
    created_at: datetime
    details: dict[str, object] | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class UsageStats:
    """Usage counters shown by the stats command."""

    total_geotags: int
    total_photos: int
    success_count: int
    failure_count: int
    success_rate: float
    last_used_at: datetime | None
    this_month: int
    this_week: int
    today: int
