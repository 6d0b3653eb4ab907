"""Domain models for per-user pairing sessions."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime

from geotag_bot.domain.geo import GeoPoint


@dataclass(frozen=True)
class PhotoRef:
    """Opaque reference to a photo held by the chat transport."""

    file_id: str
    chat_id: int
    file_unique_id: str | None = None


@dataclass(frozen=True)
class Idle:
    """No photo pending and sticky mode off."""


@dataclass(frozen=True)
class AwaitingLocation:
    """A single photo waits for a one-shot location."""

    photo: PhotoRef


@dataclass(frozen=True)
class AwaitingPhoto:
    """A one-shot location waits for the photo it belongs to."""

    point: GeoPoint


@dataclass(frozen=True)
class AwaitingStickyLocation:
    """Sticky mode is armed and waits for its first location."""

    photo: PhotoRef | None = None


@dataclass(frozen=True)
class StickyActive:
    """Every new photo is tagged with ``point``; ``batch`` awaits the timer."""

    point: GeoPoint
    batch: tuple[PhotoRef, ...] = ()


PairingState = (
    Idle | AwaitingLocation | AwaitingPhoto | AwaitingStickyLocation | StickyActive
)


@dataclass
class UserSession:
    """Mutable per-user session owned by the pairing state machine."""

    user_id: int
    chat_id: int
    state: PairingState = field(default_factory=Idle)
    custom_timestamp: datetime | None = None
    batch_timer: "asyncio.Task[None] | None" = None
    last_active_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def pending_photo(self) -> PhotoRef | None:
        if isinstance(self.state, AwaitingLocation | AwaitingStickyLocation):
            return self.state.photo
        return None

    @property
    def pending_batch(self) -> tuple[PhotoRef, ...]:
        if isinstance(self.state, StickyActive):
            return self.state.batch
        return ()

    @property
    def pending_location(self) -> GeoPoint | None:
        if isinstance(self.state, AwaitingPhoto):
            return self.state.point
        return None

    @property
    def sticky_location(self) -> GeoPoint | None:
        if isinstance(self.state, StickyActive):
            return self.state.point
        return None

    @property
    def awaiting_sticky_location(self) -> bool:
        return isinstance(self.state, AwaitingStickyLocation)

    @property
    def has_live_timer(self) -> bool:
        return self.batch_timer is not None and not self.batch_timer.done()

    def touch(self, now: datetime | None = None) -> None:
        """Mark the session as active."""
        self.last_active_at = now or datetime.now(tz=UTC)


@dataclass(frozen=True)
class SessionSummary:
    """Read-only view of a session for admin listings."""

    user_id: int
    chat_id: int
    state: str
    pending_batch: int
    sticky_location: str | None
    custom_timestamp: str | None
    last_active_at: str

    @classmethod
    def from_session(cls, session: UserSession) -> "SessionSummary":
        sticky = session.sticky_location
        return cls(
            user_id=session.user_id,
            chat_id=session.chat_id,
            state=type(session.state).__name__,
            pending_batch=len(session.pending_batch),
            sticky_location=sticky.short_label() if sticky else None,
            custom_timestamp=(
                session.custom_timestamp.isoformat()
                if session.custom_timestamp
                else None
            ),
            last_active_at=session.last_active_at.isoformat(),
        )
