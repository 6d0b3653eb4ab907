"""FastAPI application factory."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from geotag_bot.api.admin import router as admin_router
from geotag_bot.api.telegram_models import (
    TelegramMessage,
    TelegramPhotoSize,
    TelegramUpdate,
)
from geotag_bot.app_logging import configure_logging
from geotag_bot.config import parse_allowed_user_ids
from geotag_bot.containers import AppContainer
from geotag_bot.domain.errors import ValidationError
from geotag_bot.domain.geo import GeoPoint
from geotag_bot.domain.sessions import PhotoRef
from geotag_bot.services.coordinates import parse_coordinates
from geotag_bot.telegram_commands import (
    CHAT_MENU_BUTTON,
    BotCommand,
    telegram_commands,
)

_logger = logging.getLogger(__name__)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    allowed_user_ids = parse_allowed_user_ids(
        container.settings.telegram_allowed_user_ids
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        try:
            await state_container.telegram_client.set_my_commands(telegram_commands())
            await state_container.telegram_client.set_chat_menu_button(
                CHAT_MENU_BUTTON
            )
        except Exception:
            _logger.exception("Failed to sync Telegram bot commands")
        sweeper = _start_session_sweeper(state_container)
        yield
        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/telegram/webhook")
    async def telegram_webhook(
        update: TelegramUpdate, request: Request
    ) -> dict[str, str]:
        """Handle Telegram webhook updates."""
        state_container: AppContainer = request.app.state.container
        message = update.message
        if message is None:
            return {"status": "ok"}
        if not _is_user_allowed(message.from_user.id, allowed_user_ids):
            await state_container.telegram_client.send_message(
                chat_id=message.chat.id,
                text="This bot is private.",
            )
            return {"status": "ok"}
        try:
            await _dispatch_message(state_container, message)
        except Exception:
            _logger.exception(
                "Failed to handle Telegram update",
                extra={
                    "update_id": update.update_id,
                    "user_id": message.from_user.id,
                },
            )
        return {"status": "ok"}

    return app


async def _dispatch_message(  # noqa: PLR0911
    container: AppContainer, message: TelegramMessage
) -> None:
    """Route a Telegram message to the pairing state machine."""
    pairing = container.pairing
    user_id = message.from_user.id
    chat_id = message.chat.id

    if message.photo:
        photo = _select_largest_photo(message.photo)
        await pairing.on_photo(
            user_id,
            chat_id,
            PhotoRef(
                file_id=photo.file_id,
                chat_id=chat_id,
                file_unique_id=photo.file_unique_id,
            ),
        )
        if message.caption:
            point = parse_coordinates(
                message.caption, container.settings.coordinate_filter()
            )
            if point is not None:
                await pairing.on_location(user_id, chat_id, point)
        return

    if message.location:
        try:
            point = GeoPoint(message.location.latitude, message.location.longitude)
        except ValidationError as exc:
            await container.telegram_client.send_message(
                chat_id=chat_id, text=f"That location is not valid: {exc}"
            )
            return
        await pairing.on_location(user_id, chat_id, point)
        return

    text = (message.text or "").strip()
    if not text:
        return
    parsed = BotCommand.from_text(text)
    if parsed is None:
        if text.startswith("/"):
            await pairing.on_help(chat_id)
        else:
            await pairing.on_text(user_id, chat_id, text)
        return

    command, args = parsed
    if command in {BotCommand.START, BotCommand.HELP}:
        await pairing.on_help(chat_id)
    elif command is BotCommand.GEOTAGS:
        await pairing.on_enter(user_id, chat_id)
    elif command is BotCommand.ALWAYSTAG:
        await pairing.on_toggle_sticky(user_id, chat_id)
    elif command is BotCommand.SET_TIME:
        await pairing.on_set_custom_time(user_id, chat_id, args)
    elif command is BotCommand.GEOTAGS_CLEAR:
        await pairing.on_clear(user_id, chat_id)
    elif command is BotCommand.GEOTAGS_STATS:
        await pairing.on_stats(user_id, chat_id)


def _start_session_sweeper(container: AppContainer) -> "asyncio.Task[None] | None":
    idle_seconds = container.settings.session_idle_ttl_seconds
    if not idle_seconds:
        return None
    interval = container.settings.session_sweep_interval_seconds

    async def sweep_forever() -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                container.session_store.sweep(idle_seconds)
            except Exception:
                _logger.exception("Session sweep failed")

    return asyncio.create_task(sweep_forever())


def _select_largest_photo(photos: list[TelegramPhotoSize]) -> TelegramPhotoSize:
    """Select the largest photo size from the Telegram payload."""
    return max(photos, key=lambda photo: (photo.width * photo.height))


def _is_user_allowed(user_id: int, allowed: set[int] | None) -> bool:
    """Return true when the user is allowed to interact with the bot."""
    return allowed is None or user_id in allowed
