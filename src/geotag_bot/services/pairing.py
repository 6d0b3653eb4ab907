"""Per-user pairing of photos with locations."""

import logging
import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from zoneinfo import ZoneInfo

from geotag_bot.adapters.telegram_client import TelegramClient
from geotag_bot.config import CoordinateFilter
from geotag_bot.domain.errors import ValidationError
from geotag_bot.domain.geo import GeoPoint
from geotag_bot.domain.sessions import (
    AwaitingLocation,
    AwaitingPhoto,
    AwaitingStickyLocation,
    Idle,
    PhotoRef,
    StickyActive,
    UserSession,
)
from geotag_bot.services.activity import (
    GENERATE_GEOTAG,
    RECEIVE_PHOTO,
    ActivityService,
)
from geotag_bot.services.batch import BatchCoordinator
from geotag_bot.services.coordinates import parse_coordinates
from geotag_bot.services.geocoding import LocationResolver
from geotag_bot.services.pipeline import GeotagPipeline
from geotag_bot.services.session_store import SessionStore

_logger = logging.getLogger(__name__)

MIN_CUSTOM_YEAR = 1900
MAX_CUSTOM_YEAR = 2100

_CUSTOM_TIME_PATTERN = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})\s+"
    r"(?P<hour>\d{1,2}):(?P<minute>\d{2})$"
)

INSTRUCTIONS = (
    "Geotags mode is on.\n"
    "1. Send a photo.\n"
    "2. Share a location, or type coordinates or an address.\n"
    "Order doesn't matter. I'll reply with the photo stamped with a map, "
    "the address, coordinates and time.\n\n"
    "/alwaystag - tag every next photo with one location\n"
    "/set_time YYYY-MM-DD HH:MM - override the timestamp (/set_time reset)\n"
    "/geotags_stats - session status and usage\n"
    "/geotags_clear - reset everything"
)

SET_TIME_USAGE = (
    "Usage: /set_time YYYY-MM-DD HH:MM (for example /set_time 2025-06-07 18:16)\n"
    "Use /set_time reset to go back to the current time."
)


def parse_custom_timestamp(text: str, timezone: ZoneInfo) -> datetime:
    """Parse ``YYYY-MM-DD HH:MM`` as a wall-clock time in ``timezone``."""
    match = _CUSTOM_TIME_PATTERN.match(text.strip())
    if not match:
        raise ValidationError("expected YYYY-MM-DD HH:MM")
    parts = {name: int(value) for name, value in match.groupdict().items()}
    if not MIN_CUSTOM_YEAR <= parts["year"] <= MAX_CUSTOM_YEAR:
        raise ValidationError(
            f"year must be between {MIN_CUSTOM_YEAR} and {MAX_CUSTOM_YEAR}"
        )
    try:
        return datetime(
            parts["year"],
            parts["month"],
            parts["day"],
            parts["hour"],
            parts["minute"],
            tzinfo=timezone,
        )
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


@dataclass
class PairingStateMachine:
    """Pairs each user's photos with locations and drives sticky mode.

    Every handler mutates the session before its first ``await`` so that
    interleaved updates for the same user see a consistent state.
    """

    store: SessionStore
    pipeline: GeotagPipeline
    batch_coordinator: BatchCoordinator
    telegram_client: TelegramClient
    resolver: LocationResolver
    activity_service: ActivityService
    timezone: ZoneInfo = field(default_factory=lambda: ZoneInfo("Asia/Jakarta"))
    timezone_label: str = "WIB"
    coordinate_filter: CoordinateFilter = field(default_factory=CoordinateFilter)
    debug: bool = False

    async def on_help(self, chat_id: int) -> None:
        """Send usage instructions without touching any session."""
        await self.telegram_client.send_message(chat_id=chat_id, text=INSTRUCTIONS)

    async def on_enter(self, user_id: int, chat_id: int) -> None:
        """Start geotags mode from a clean session."""
        session = self._session(user_id, chat_id)
        self.batch_coordinator.cancel(session)
        session.state = Idle()
        session.custom_timestamp = None
        await self.telegram_client.send_message(chat_id=chat_id, text=INSTRUCTIONS)

    async def on_photo(self, user_id: int, chat_id: int, photo: PhotoRef) -> None:
        """Queue a photo for tagging."""
        session = self._session(user_id, chat_id)
        state = session.state
        self.activity_service.record(
            user_id,
            RECEIVE_PHOTO,
            success=True,
            details={"file_id": photo.file_id},
        )
        if isinstance(state, StickyActive):
            session.state = replace(state, batch=(*state.batch, photo))
            self.batch_coordinator.arm(session)
            count = len(session.pending_batch)
            await self.telegram_client.send_message(
                chat_id=chat_id,
                text=(
                    f"Photo {count} received. Tagging with "
                    f"{state.point.short_label()} once you pause."
                ),
            )
            return
        if isinstance(state, AwaitingPhoto):
            session.state = Idle()
            await self._consume(session, photo, state.point)
            return
        if isinstance(state, AwaitingStickyLocation):
            session.state = AwaitingStickyLocation(photo=photo)
            await self.telegram_client.send_message(
                chat_id=chat_id,
                text=(
                    "Photo received. Send the location to use for this photo "
                    "and every photo after it."
                ),
            )
            return
        session.state = AwaitingLocation(photo=photo)
        await self.telegram_client.send_message(
            chat_id=chat_id,
            text=(
                "Photo received. Now send a location: share it, "
                "or type coordinates or an address."
            ),
        )

    async def on_location(self, user_id: int, chat_id: int, point: GeoPoint) -> None:
        """Pair a location with whatever the session is waiting for."""
        session = self._session(user_id, chat_id)
        state = session.state
        if isinstance(state, AwaitingStickyLocation):
            session.state = StickyActive(point=point)
            await self.telegram_client.send_message(
                chat_id=chat_id,
                text=(
                    f"Sticky location set to {point.short_label()}. "
                    "Every photo you send will be tagged with it. "
                    "Send /alwaystag again to turn it off."
                ),
            )
            if state.photo is not None:
                await self._consume(session, state.photo, point)
            return
        if isinstance(state, StickyActive):
            session.state = replace(state, point=point)
            await self.telegram_client.send_message(
                chat_id=chat_id,
                text=f"Sticky location updated to {point.short_label()}.",
            )
            return
        if isinstance(state, AwaitingLocation):
            session.state = Idle()
            await self._consume(session, state.photo, point)
            return
        session.state = AwaitingPhoto(point=point)
        await self.telegram_client.send_message(
            chat_id=chat_id,
            text=(
                f"Location {point.short_label()} received. "
                "Now send the photo to tag with it."
            ),
        )

    async def on_toggle_sticky(self, user_id: int, chat_id: int) -> None:
        """Switch sticky-location mode on or off."""
        session = self._session(user_id, chat_id)
        state = session.state
        if isinstance(state, StickyActive):
            await self.batch_coordinator.flush(session)
            await self.telegram_client.send_message(
                chat_id=chat_id, text="Sticky location off."
            )
            return
        if isinstance(state, AwaitingStickyLocation):
            if state.photo is not None:
                session.state = AwaitingLocation(photo=state.photo)
                text = (
                    "Sticky location off. Your last photo still waits "
                    "for a location."
                )
            else:
                session.state = Idle()
                text = "Sticky location off."
            await self.telegram_client.send_message(chat_id=chat_id, text=text)
            return
        pending = state.photo if isinstance(state, AwaitingLocation) else None
        session.state = AwaitingStickyLocation(photo=pending)
        await self.telegram_client.send_message(
            chat_id=chat_id,
            text=(
                "Sticky location on. Send the location to use for all your "
                "next photos."
            ),
        )

    async def on_set_custom_time(self, user_id: int, chat_id: int, text: str) -> bool:
        """Set or clear the timestamp override; return whether it changed."""
        session = self._session(user_id, chat_id)
        raw = text.strip()
        if not raw:
            await self.telegram_client.send_message(
                chat_id=chat_id, text=SET_TIME_USAGE
            )
            return False
        if raw.lower() == "reset":
            session.custom_timestamp = None
            await self.telegram_client.send_message(
                chat_id=chat_id,
                text="Custom time cleared. Photos use the current time.",
            )
            return True
        try:
            timestamp = parse_custom_timestamp(raw, self.timezone)
        except ValidationError as exc:
            await self.telegram_client.send_message(
                chat_id=chat_id,
                text=f"Invalid time ({exc}).\n{SET_TIME_USAGE}",
            )
            return False
        session.custom_timestamp = timestamp
        await self.telegram_client.send_message(
            chat_id=chat_id,
            text=(
                f"Custom time set to {timestamp:%Y-%m-%d %H:%M} "
                f"{self.timezone_label}."
            ),
        )
        return True

    async def on_clear(self, user_id: int, chat_id: int) -> None:
        """Drop the session and any pending work."""
        self.store.delete(user_id)
        await self.telegram_client.send_message(
            chat_id=chat_id, text="Geotag session cleared."
        )

    async def on_stats(self, user_id: int, chat_id: int) -> None:
        """Report the session state and usage counters."""
        session = self.store.get(user_id)
        lines = ["Geotag status:"]
        lines.extend(self._describe_session(session))
        usage = self.activity_service.usage(user_id)
        if usage is None:
            lines.append("Usage stats are unavailable right now.")
        else:
            last_used = (
                f"{usage.last_used_at.astimezone(self.timezone):%Y-%m-%d %H:%M} "
                f"{self.timezone_label}"
                if usage.last_used_at
                else "never"
            )
            lines.extend(
                [
                    "",
                    "Usage:",
                    f"Geotags created: {usage.total_geotags}",
                    f"Photos received: {usage.total_photos}",
                    f"Success rate: {usage.success_rate:.1f}% "
                    f"({usage.success_count} ok, {usage.failure_count} failed)",
                    f"Today: {usage.today}, this week: {usage.this_week}, "
                    f"this month: {usage.this_month}",
                    f"Last used: {last_used}",
                ]
            )
        await self.telegram_client.send_message(chat_id=chat_id, text="\n".join(lines))

    async def on_text(self, user_id: int, chat_id: int, text: str) -> None:
        """Treat free text as coordinates or an address when one is expected."""
        point = parse_coordinates(text, self.coordinate_filter)
        if point is not None:
            await self.on_location(user_id, chat_id, point)
            return
        session = self._session(user_id, chat_id)
        if isinstance(session.state, Idle):
            await self.telegram_client.send_message(
                chat_id=chat_id,
                text="Send a photo and a location to create a geotag. /help",
            )
            return
        resolved = await self.resolver.geocode(text)
        if resolved is None:
            await self.telegram_client.send_message(
                chat_id=chat_id,
                text=(
                    "Address not found. Try a more specific address, "
                    "or share your location."
                ),
            )
            return
        await self.on_location(user_id, chat_id, resolved)

    async def _consume(
        self, session: UserSession, photo: PhotoRef, point: GeoPoint
    ) -> bool:
        try:
            composite = await self.pipeline.process(
                photo, point, session.custom_timestamp
            )
            await self.telegram_client.send_photo(
                chat_id=session.chat_id,
                photo=composite,
                caption=point.short_label(),
            )
        except Exception as exc:
            _logger.exception(
                "Geotag generation failed",
                extra={"user_id": session.user_id, "file_id": photo.file_id},
            )
            self.activity_service.record(
                session.user_id,
                GENERATE_GEOTAG,
                success=False,
                details={"file_id": photo.file_id},
                error_message=str(exc),
            )
            await self.telegram_client.send_message(
                chat_id=session.chat_id,
                text=self._apology(
                    exc,
                    "Sorry, I couldn't create the geotag for that photo. "
                    "Please send it again.",
                ),
            )
            return False
        self.activity_service.record(
            session.user_id,
            GENERATE_GEOTAG,
            success=True,
            details={"latitude": point.latitude, "longitude": point.longitude},
        )
        return True

    def _session(self, user_id: int, chat_id: int) -> UserSession:
        session = self.store.get_or_create(user_id, chat_id)
        session.touch()
        return session

    def _apology(self, exc: Exception, fallback: str) -> str:
        if self.debug:
            detail = f"{type(exc).__name__}: {exc}".strip()
            if detail:
                return f"{fallback} (debug: {detail})"
        return fallback

    def _describe_session(self, session: UserSession | None) -> list[str]:
        if session is None:
            return ["No active session."]
        state = session.state
        if isinstance(state, StickyActive):
            mode = f"sticky at {state.point.short_label()}"
        elif isinstance(state, AwaitingStickyLocation):
            mode = "sticky, waiting for a location"
        elif isinstance(state, AwaitingLocation):
            mode = "waiting for a location"
        elif isinstance(state, AwaitingPhoto):
            mode = f"waiting for a photo at {state.point.short_label()}"
        else:
            mode = "idle"
        custom = (
            f"{session.custom_timestamp.astimezone(self.timezone):%Y-%m-%d %H:%M} "
            f"{self.timezone_label}"
            if session.custom_timestamp
            else "current time"
        )
        return [
            f"Mode: {mode}",
            f"Pending photo: {'yes' if session.pending_photo else 'no'}",
            f"Photos in batch: {len(session.pending_batch)}",
            f"Timestamp: {custom}",
        ]
