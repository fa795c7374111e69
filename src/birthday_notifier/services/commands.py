"""Command handlers for Telegram updates."""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from birthday_notifier.adapters.telegram_client import TelegramClient
from birthday_notifier.api.telegram_models import TelegramMessage, TelegramUpdate
from birthday_notifier.domain.errors import BirthdayNotifierError
from birthday_notifier.services.users import UserService
from birthday_notifier.telegram_commands import BotCommand, parse_command

logger = logging.getLogger(__name__)

WELCOME_TEXT = (
    "Welcome! Send /users to see everyone who is registered.\n"
    "Send /subscribe or /unsubscribe followed by a user id to manage "
    "birthday reminders, for example /subscribe 1"
)


class CommandHandler(Protocol):
    """Handles one bot command and returns reply texts."""

    async def handle(self, message: TelegramMessage, argument: str) -> list[str]:
        """Process the command and return the replies to send."""


@dataclass
class StartCommandHandler:
    """Handle /start: bind the sender's Telegram account to their user."""

    user_service: UserService

    async def handle(self, message: TelegramMessage, argument: str) -> list[str]:
        sender = message.from_user
        if sender is None:
            return []
        await self.user_service.bind_telegram_account(
            telegram_id=sender.id, username=sender.username or ""
        )
        return [WELCOME_TEXT]


@dataclass
class UsersCommandHandler:
    """Handle /users: one line per registered user."""

    user_service: UserService

    async def handle(self, message: TelegramMessage, argument: str) -> list[str]:
        users = await self.user_service.list_users()
        if not users:
            return ["No users are registered yet."]
        return [
            f"ID: {user.id} Name: {user.display_name} "
            f"{user.birthday.isoformat()} {user.telegram}"
            for user in users
        ]


@dataclass
class SubscriptionCommandHandler:
    """Handle /subscribe and /unsubscribe for the sender."""

    user_service: UserService
    active: bool

    async def handle(self, message: TelegramMessage, argument: str) -> list[str]:
        sender = message.from_user
        if sender is None:
            return []
        if not argument.isdigit():
            return ["Please send a numeric user id, for example /subscribe 1"]
        subscriber = await self.user_service.find_by_telegram(sender.username or "")
        if self.active:
            target = await self.user_service.subscribe(int(argument), subscriber.id)
            return [f"You are now subscribed to {target.telegram}"]
        target = await self.user_service.unsubscribe(int(argument), subscriber.id)
        return [f"You have unsubscribed from {target.telegram}"]


def default_handlers(user_service: UserService) -> dict[BotCommand, CommandHandler]:
    """Return the handler registered for every bot command."""
    return {
        BotCommand.START: StartCommandHandler(user_service),
        BotCommand.USERS: UsersCommandHandler(user_service),
        BotCommand.SUBSCRIBE: SubscriptionCommandHandler(user_service, active=True),
        BotCommand.UNSUBSCRIBE: SubscriptionCommandHandler(
            user_service, active=False
        ),
    }


@dataclass
class CommandDispatcher:
    """Routes Telegram updates to the handler of their command."""

    telegram_client: TelegramClient
    handlers: dict[BotCommand, CommandHandler] = field(default_factory=dict)

    async def dispatch(self, update: TelegramUpdate) -> None:
        """Handle one update; failures never escape."""
        message = update.message
        if message is None:
            return
        parsed = parse_command(message.text)
        if parsed is None:
            return
        handler = self.handlers.get(parsed.command)
        if handler is None:
            return
        try:
            replies = await handler.handle(message, parsed.argument)
        except BirthdayNotifierError as exc:
            replies = [f"Sorry, that did not work: {exc}"]
        except Exception:
            logger.exception(
                "Command handler failed",
                extra={"update_id": update.update_id, "command": parsed.command.name},
            )
            replies = ["Something went wrong. Please try again later."]
        for reply in replies:
            try:
                await self.telegram_client.send_message(
                    chat_id=message.chat.id, text=reply
                )
            except Exception:
                logger.exception(
                    "Failed to send reply", extra={"chat_id": message.chat.id}
                )
