"""Telegram Bot API client adapter."""

from dataclasses import dataclass
from typing import Protocol

import httpx

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramClient(Protocol):
    """Interface for outbound Telegram API calls."""

    async def send_message(self, chat_id: int, text: str) -> None:
        """Send a text message to a Telegram chat."""

    async def send_photo(
        self, chat_id: int, photo: bytes, caption: str | None = None
    ) -> None:
        """Upload a JPEG photo to a Telegram chat."""

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        """Set the bot command list."""

    async def set_chat_menu_button(
        self, menu_button: dict[str, object] | None = None
    ) -> None:
        """Set the chat menu button."""


@dataclass
class HttpxTelegramClient:
    """Telegram client implemented with httpx."""

    bot_token: str
    http_client: httpx.AsyncClient
    base_url: str = TELEGRAM_API_URL
    upload_timeout: float = 30.0

    @classmethod
    def create(cls, bot_token: str) -> "HttpxTelegramClient":
        """Create a Telegram client with a managed httpx session."""
        return cls(bot_token=bot_token, http_client=httpx.AsyncClient())

    async def send_message(self, chat_id: int, text: str) -> None:
        """Send a message using Telegram's sendMessage API."""
        payload: dict[str, object] = {"chat_id": chat_id, "text": text}
        response = await self.http_client.post(
            self._method_url("sendMessage"), json=payload, timeout=10
        )
        response.raise_for_status()

    async def send_photo(
        self, chat_id: int, photo: bytes, caption: str | None = None
    ) -> None:
        """Upload a photo using Telegram's sendPhoto API."""
        data: dict[str, object] = {"chat_id": str(chat_id)}
        if caption is not None:
            data["caption"] = caption
        response = await self.http_client.post(
            self._method_url("sendPhoto"),
            data=data,
            files={"photo": ("geotag.jpg", photo, "image/jpeg")},
            timeout=self.upload_timeout,
        )
        response.raise_for_status()

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        """Set the bot command list."""
        response = await self.http_client.post(
            self._method_url("setMyCommands"),
            json={"commands": commands},
            timeout=10,
        )
        response.raise_for_status()

    async def set_chat_menu_button(
        self, menu_button: dict[str, object] | None = None
    ) -> None:
        """Set the chat menu button."""
        response = await self.http_client.post(
            self._method_url("setChatMenuButton"),
            json={"menu_button": menu_button or {"type": "commands"}},
            timeout=10,
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()

    def _method_url(self, method: str) -> str:
        return f"{self.base_url}/bot{self.bot_token}/{method}"
