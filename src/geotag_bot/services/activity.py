"""Geotag usage recording and counters."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo

from geotag_bot.domain.activity import ActivityEvent, UsageStats

RECEIVE_PHOTO = "receive_photo"
GENERATE_GEOTAG = "generate_geotag"

_logger = logging.getLogger(__name__)


class ActivityRepository(Protocol):
    """Persistence interface for geotag activity."""

    def create_event(self, event: ActivityEvent) -> None:
        """Persist an activity event."""

    def list_events(self, telegram_user_id: int) -> list[ActivityEvent]:
        """Return all activity events for a user."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class ActivityService:
    """Records geotag activity without ever interrupting the user flow."""

    repository: ActivityRepository
    timezone_name: str = "Asia/Jakarta"
    clock: Callable[[], datetime] = _utcnow

    def record(  # noqa: PLR0913
        self,
        telegram_user_id: int,
        action: str,
        success: bool,
        details: dict[str, object] | None = None,
        error_message: str | None = None,
    ) -> None:
        """Persist an event; repository failures are logged and dropped."""
        event = ActivityEvent(
            telegram_user_id=telegram_user_id,
            action=action,
            success=success,
            created_at=self.clock(),
            details=details,
            error_message=error_message,
        )
        try:
            self.repository.create_event(event)
        except Exception as exc:
            _logger.warning(
                "Failed to record activity: %s",
                exc,
                extra={"telegram_user_id": telegram_user_id, "action": action},
            )

    def usage(self, telegram_user_id: int) -> UsageStats | None:
        """Return usage counters, or None when the repository is unavailable."""
        try:
            events = self.repository.list_events(telegram_user_id)
        except Exception as exc:
            _logger.warning(
                "Failed to load activity: %s",
                exc,
                extra={"telegram_user_id": telegram_user_id},
            )
            return None
        return summarize(events, ZoneInfo(self.timezone_name), self.clock())


def summarize(events: list[ActivityEvent], tz: ZoneInfo, now: datetime) -> UsageStats:
    """Aggregate activity events into usage counters in the given timezone."""
    generated = [event for event in events if event.action == GENERATE_GEOTAG]
    received = [event for event in events if event.action == RECEIVE_PHOTO]
    success_count = sum(1 for event in generated if event.success)
    failure_count = len(generated) - success_count

    local_now = now.astimezone(tz)
    today = local_now.date()
    week_start = today - timedelta(days=today.weekday())
    month_start = today.replace(day=1)
    local_days = [event.created_at.astimezone(tz).date() for event in generated]

    return UsageStats(
        total_geotags=success_count,
        total_photos=len(received),
        success_count=success_count,
        failure_count=failure_count,
        success_rate=(
            round(success_count / len(generated) * 100, 1) if generated else 0.0
        ),
        last_used_at=max((event.created_at for event in generated), default=None),
        this_month=sum(1 for day in local_days if day >= month_start),
        this_week=sum(1 for day in local_days if day >= week_start),
        today=sum(1 for day in local_days if day == today),
    )
