"""Per-user session storage."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from geotag_bot.domain.sessions import UserSession

_logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Storage interface for pairing sessions keyed by Telegram user id."""

    def get(self, user_id: int) -> UserSession | None:
        """Return the session for a user, if present."""

    def get_or_create(self, user_id: int, chat_id: int) -> UserSession:
        """Return the user's session, creating an idle one on first contact."""

    def put(self, session: UserSession) -> None:
        """Insert or replace a session."""

    def delete(self, user_id: int) -> UserSession | None:
        """Remove and return a session, cancelling its batch timer."""

    def sessions(self) -> list[UserSession]:
        """Return all live sessions."""

    def sweep(self, idle_seconds: float, now: datetime | None = None) -> list[int]:
        """Evict sessions idle longer than ``idle_seconds``; return their ids."""


@dataclass
class InMemorySessionStore(SessionStore):
    """Process-local session store.

    Nothing is evicted automatically; the host application decides when to
    call :meth:`sweep`.
    """

    _sessions: dict[int, UserSession] = field(default_factory=dict)

    def get(self, user_id: int) -> UserSession | None:
        return self._sessions.get(user_id)

    def get_or_create(self, user_id: int, chat_id: int) -> UserSession:
        """Return the user's session, creating an idle one on first contact."""
        session = self._sessions.get(user_id)
        if session is None:
            session = UserSession(user_id=user_id, chat_id=chat_id)
            self.put(session)
        else:
            session.chat_id = chat_id
        return session

    def put(self, session: UserSession) -> None:
        self._sessions[session.user_id] = session

    def delete(self, user_id: int) -> UserSession | None:
        session = self._sessions.pop(user_id, None)
        if session is not None and session.batch_timer is not None:
            session.batch_timer.cancel()
            session.batch_timer = None
        return session

    def sessions(self) -> list[UserSession]:
        return list(self._sessions.values())

    def sweep(self, idle_seconds: float, now: datetime | None = None) -> list[int]:
        cutoff = (now or datetime.now(tz=UTC)) - timedelta(seconds=idle_seconds)
        stale = [
            user_id
            for user_id, session in self._sessions.items()
            if session.last_active_at < cutoff and not session.has_live_timer
        ]
        for user_id in stale:
            self.delete(user_id)
        if stale:
            _logger.info("Swept %s idle geotag sessions", len(stale))
        return stale

    def __len__(self) -> int:
        return len(self._sessions)
