"""User and subscription business logic."""

import logging
from dataclasses import dataclass
from typing import Protocol

from birthday_notifier.domain.errors import (
    FieldError,
    UserNotFoundError,
    ValidationFailedError,
)
from birthday_notifier.domain.models import (
    Registration,
    UserRecord,
    normalize_telegram_handle,
)

logger = logging.getLogger(__name__)


class UserRepository(Protocol):
    """Persistence interface for users and the subscription graph."""

    async def get_password_hash(self, username: str) -> tuple[UserRecord, str] | None:
        """Return the user and stored password hash for a username."""

    async def create_user(
        self, registration: Registration, password_hash: str
    ) -> UserRecord:
        """Insert a user; raise UserAlreadyExistsError on unique violations."""

    async def get_by_id(self, user_id: int) -> UserRecord | None:
        """Return a user by id, if present."""

    async def get_by_telegram(self, telegram: str) -> UserRecord | None:
        """Return the user owning a Telegram handle, if present."""

    async def list_users(self) -> list[UserRecord]:
        """Return every user."""

    async def list_by_birthday(self, month: int, day: int) -> list[UserRecord]:
        """Return users born on the given month and day of any year."""

    async def add_subscription(self, user_id: int, subscriber_id: int) -> None:
        """Insert the edge; inserting an existing edge is a no-op."""

    async def remove_subscription(self, user_id: int, subscriber_id: int) -> None:
        """Delete the edge if it exists."""

    async def list_subscribers(self, user_id: int) -> list[UserRecord]:
        """Return users subscribed to the given user."""

    async def bind_telegram_id(
        self, telegram_id: int, telegram: str
    ) -> UserRecord | None:
        """Set the Telegram account id for a handle; None when no row matched."""

    async def ping(self) -> None:
        """Raise StoreUnavailableError when the store cannot be reached."""


@dataclass
class UserService:
    """Application service for listing users and managing subscriptions."""

    repository: UserRepository

    async def list_users(self) -> list[UserRecord]:
        """Return all users; an empty store yields an empty list."""
        return await self.repository.list_users()

    async def get_user(self, user_id: int) -> UserRecord:
        """Return a user or raise UserNotFoundError."""
        user = await self.repository.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError
        return user

    async def find_by_telegram(self, telegram: str) -> UserRecord:
        """Return the user registered with a Telegram handle."""
        handle = normalize_telegram_handle(telegram)
        user = await self.repository.get_by_telegram(handle) if handle else None
        if user is None:
            raise UserNotFoundError(f"no user registered as {handle or telegram!r}")
        return user

    async def subscribe(self, user_id: int, subscriber_id: int) -> UserRecord:
        """Subscribe `subscriber_id` to `user_id`'s birthday."""
        if user_id == subscriber_id:
            raise ValidationFailedError(
                [FieldError("userID", "cannot subscribe to yourself")]
            )
        target = await self.get_user(user_id)
        await self.repository.add_subscription(user_id, subscriber_id)
        logger.info(
            "Subscription added",
            extra={"user_id": user_id, "subscriber_id": subscriber_id},
        )
        return target

    async def unsubscribe(self, user_id: int, subscriber_id: int) -> UserRecord:
        """Remove the subscription; removing a missing one succeeds."""
        target = await self.get_user(user_id)
        await self.repository.remove_subscription(user_id, subscriber_id)
        logger.info(
            "Subscription removed",
            extra={"user_id": user_id, "subscriber_id": subscriber_id},
        )
        return target

    async def list_subscribers(self, user_id: int) -> list[UserRecord]:
        """Return the subscribers of an existing user."""
        await self.get_user(user_id)
        return await self.repository.list_subscribers(user_id)

    async def bind_telegram_account(
        self, telegram_id: int, username: str
    ) -> UserRecord:
        """Link a Telegram account id to the user registered with its handle."""
        handle = normalize_telegram_handle(username)
        if not handle:
            raise UserNotFoundError("your Telegram account has no username")
        user = await self.repository.bind_telegram_id(telegram_id, handle)
        if user is None:
            raise UserNotFoundError(f"no user registered as {handle}")
        return user
