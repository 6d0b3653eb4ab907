"""Telegram bot command configuration."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class TelegramCommand:
    """Declarative bot command definition."""

    command: str
    description: str


class BotCommand(Enum):
    """Enum of bot commands (single source of truth)."""

    START = TelegramCommand("start", "What this bot does")
    GEOTAGS = TelegramCommand("geotags", "Start geotagging photos")
    ALWAYSTAG = TelegramCommand("alwaystag", "Toggle one location for every photo")
    SET_TIME = TelegramCommand("set_time", "Override the timestamp or reset it")
    GEOTAGS_CLEAR = TelegramCommand("geotags_clear", "Reset the geotag session")
    GEOTAGS_STATS = TelegramCommand("geotags_stats", "Session status and usage")
    HELP = TelegramCommand("help", "Quick guide")

    @classmethod
    def from_text(cls, text: str) -> tuple["BotCommand", str] | None:
        """Match ``/command@bot args`` to a command and its argument text."""
        if not text.startswith("/"):
            return None
        head, _, args = text.strip().partition(" ")
        name = head[1:].split("@", maxsplit=1)[0].lower()
        for entry in cls:
            if entry.value.command == name:
                return entry, args.strip()
        return None


def telegram_commands() -> list[dict[str, str]]:
    """Return commands formatted for Telegram API."""
    return [
        {"command": entry.value.command, "description": entry.value.description}
        for entry in BotCommand
    ]


CHAT_MENU_BUTTON: dict[str, object] = {"type": "commands"}
