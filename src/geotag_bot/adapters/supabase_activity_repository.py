"""Supabase repository for geotag activity."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from geotag_bot.domain.activity import ActivityEvent
from geotag_bot.services.activity import ActivityRepository

_TABLE = "geotag_activity"
_COLUMNS = "telegram_user_id, action, success, details, error_message, created_at"


@dataclass
class SupabaseActivityRepository(ActivityRepository):
    """Supabase-backed activity repository."""

    client: Client

    def create_event(self, event: ActivityEvent) -> None:
        """Insert an activity row."""
        self.client.table(_TABLE).insert(
            {
                "telegram_user_id": event.telegram_user_id,
                "action": event.action,
                "success": event.success,
                "details": event.details,
                "error_message": event.error_message,
                "created_at": event.created_at.isoformat(),
            }
        ).execute()

    def list_events(self, telegram_user_id: int) -> list[ActivityEvent]:
        """Return a user's activity rows, oldest first."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("telegram_user_id", telegram_user_id)
            .order("created_at", desc=False)
            .execute()
        )
        return [_parse_row(row) for row in response.data or []]


def _parse_row(row: dict[str, object]) -> ActivityEvent:
    created_raw = row.get("created_at")
    created_at = (
        datetime.fromisoformat(created_raw)
        if isinstance(created_raw, str) and created_raw
        else datetime.min.replace(tzinfo=UTC)
    )
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    details = row.get("details")
    error_message = row.get("error_message")
    return ActivityEvent(
        telegram_user_id=int(row.get("telegram_user_id", 0)),
        action=str(row.get("action", "")),
        success=bool(row.get("success", False)),
        created_at=created_at,
        details=details if isinstance(details, dict) else None,
        error_message=error_message if isinstance(error_message, str) else None,
    )
