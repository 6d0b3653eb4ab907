"""Debounced batch processing for sticky-location photos."""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime

from geotag_bot.adapters.telegram_client import TelegramClient
from geotag_bot.domain.geo import GeoPoint
from geotag_bot.domain.sessions import Idle, PhotoRef, StickyActive, UserSession
from geotag_bot.services.activity import GENERATE_GEOTAG, ActivityService
from geotag_bot.services.pipeline import GeotagPipeline

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchResult:
    """Outcome of one batch pass."""

    succeeded: int
    total: int


@dataclass
class BatchCoordinator:
    """Collects sticky-mode photos and tags them once the user pauses.

    Every new photo re-arms a single timer per session. When the timer fires,
    the batch is taken out of the session before any photo is processed, so
    photos arriving during a pass start a fresh batch.
    """

    pipeline: GeotagPipeline
    telegram_client: TelegramClient
    activity_service: ActivityService
    delay_seconds: float = 2.0

    def arm(self, session: UserSession) -> None:
        """Restart the session's debounce timer."""
        self.cancel(session)
        session.batch_timer = asyncio.create_task(self._wait_and_fire(session))

    def cancel(self, session: UserSession) -> bool:
        """Cancel a live timer; return whether one was running."""
        timer = session.batch_timer
        session.batch_timer = None
        if timer is None or timer.done():
            return False
        timer.cancel()
        return True

    def drain(
        self, session: UserSession
    ) -> tuple[GeoPoint, tuple[PhotoRef, ...]] | None:
        """Cancel the timer and take the pending batch out of the session."""
        self.cancel(session)
        return _take_batch(session)

    async def flush(self, session: UserSession) -> BatchResult:
        """Leave sticky mode and process the pending batch right away."""
        drained = self.drain(session)
        session.state = Idle()
        if drained is None:
            return BatchResult(succeeded=0, total=0)
        point, photos = drained
        return await self.run_pass(session, point, photos)

    async def run_pass(
        self,
        session: UserSession,
        point: GeoPoint,
        photos: tuple[PhotoRef, ...],
    ) -> BatchResult:
        """Tag photos one by one, sending each composite as it completes."""
        chat_id = session.chat_id
        custom_timestamp: datetime | None = session.custom_timestamp
        total = len(photos)
        await self.telegram_client.send_message(
            chat_id=chat_id,
            text=f"Processing {total} photo{'s' if total != 1 else ''}...",
        )
        succeeded = 0
        for index, photo in enumerate(photos, start=1):
            try:
                composite = await self.pipeline.process(photo, point, custom_timestamp)
                await self.telegram_client.send_photo(
                    chat_id=chat_id,
                    photo=composite,
                    caption=f"{index}/{total}",
                )
            except Exception as exc:
                _logger.warning(
                    "Batch photo failed: %s",
                    exc,
                    extra={"user_id": session.user_id, "file_id": photo.file_id},
                )
                self.activity_service.record(
                    session.user_id,
                    GENERATE_GEOTAG,
                    success=False,
                    details={"mode": "sticky", "file_id": photo.file_id},
                    error_message=str(exc),
                )
                continue
            succeeded += 1
            self.activity_service.record(
                session.user_id,
                GENERATE_GEOTAG,
                success=True,
                details={
                    "mode": "sticky",
                    "latitude": point.latitude,
                    "longitude": point.longitude,
                },
            )

        result = BatchResult(succeeded=succeeded, total=total)
        _logger.info(
            "Batch pass finished",
            extra={
                "user_id": session.user_id,
                "succeeded": result.succeeded,
                "total": result.total,
            },
        )
        await self.telegram_client.send_message(
            chat_id=chat_id,
            text=f"Done: {result.succeeded}/{result.total} photos geotagged.",
        )
        return result

    async def _wait_and_fire(self, session: UserSession) -> None:
        await asyncio.sleep(self.delay_seconds)
        # The pass is no longer a pending timer; new photos re-arm separately.
        session.batch_timer = None
        drained = _take_batch(session)
        if drained is None:
            return
        point, photos = drained
        try:
            await self.run_pass(session, point, photos)
        except Exception:
            _logger.exception(
                "Batch pass aborted", extra={"user_id": session.user_id}
            )


def _take_batch(
    session: UserSession,
) -> tuple[GeoPoint, tuple[PhotoRef, ...]] | None:
    state = session.state
    if not isinstance(state, StickyActive) or not state.batch:
        return None
    session.state = replace(state, batch=())
    return state.point, state.batch
