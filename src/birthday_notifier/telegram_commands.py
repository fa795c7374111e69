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

    START = TelegramCommand("start", "Link your Telegram account")
    USERS = TelegramCommand("users", "List registered users")
    SUBSCRIBE = TelegramCommand("subscribe", "Subscribe to a user by id")
    UNSUBSCRIBE = TelegramCommand("unsubscribe", "Unsubscribe from a user by id")


@dataclass(frozen=True)
class ParsedCommand:
    """Command recognised in a message, with the rest of the text."""

    command: BotCommand
    argument: str


def parse_command(text: str | None) -> ParsedCommand | None:
    """Parse `/name[@bot] [argument]`; unknown commands yield None."""
    if not text or not text.startswith("/"):
        return None
    head, _, argument = text.strip().partition(" ")
    name = head[1:].split("@", maxsplit=1)[0].lower()
    for entry in BotCommand:
        if entry.value.command == name:
            return ParsedCommand(command=entry, argument=argument.strip())
    return None


def telegram_commands() -> list[dict[str, str]]:
    """Return commands formatted for Telegram API."""
    return [
        {"command": entry.value.command, "description": entry.value.description}
        for entry in BotCommand
    ]
