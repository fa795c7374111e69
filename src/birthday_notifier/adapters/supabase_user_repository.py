"""Supabase-backed user and subscription repository."""

from dataclasses import dataclass
from datetime import date

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient

from birthday_notifier.domain.errors import (
    StoreUnavailableError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from birthday_notifier.domain.models import Registration, UserRecord
from birthday_notifier.services.users import UserRepository

_USER_COLUMNS = (
    "id, username, firstname, middlename, lastname, birthday, telegram, telegram_id"
)
_SUBSCRIBER_EMBED = (
    f"subscriber:users!subscriptions_subscriber_id_fkey({_USER_COLUMNS})"
)
_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"


async def _execute(query):  # type: ignore[no-untyped-def]
    """Run a query, translating client failures into domain errors."""
    try:
        return await query.execute()
    except APIError as exc:
        if exc.code == _UNIQUE_VIOLATION:
            raise UserAlreadyExistsError from exc
        if exc.code == _FOREIGN_KEY_VIOLATION:
            raise UserNotFoundError from exc
        raise
    except httpx.HTTPError as exc:
        raise StoreUnavailableError(f"Supabase request failed: {exc}") from exc


def _to_user(row: dict) -> UserRecord:
    return UserRecord(
        id=int(row["id"]),
        username=row["username"],
        first_name=row.get("firstname") or "",
        middle_name=row.get("middlename") or "",
        last_name=row.get("lastname") or "",
        birthday=date.fromisoformat(str(row["birthday"])[:10]),
        telegram=row.get("telegram") or "",
        telegram_id=row.get("telegram_id"),
    )


@dataclass
class SupabaseUserRepository(UserRepository):
    """Supabase implementation for user persistence."""

    client: AsyncClient

    async def get_password_hash(self, username: str) -> tuple[UserRecord, str] | None:
        """Return the user and stored password hash for a username."""
        response = await _execute(
            self.client.table("users")
            .select(f"{_USER_COLUMNS}, password_hash")
            .eq("username", username)
            .limit(1)
        )
        if not response.data:
            return None
        row = response.data[0]
        return _to_user(row), row["password_hash"]

    async def create_user(
        self, registration: Registration, password_hash: str
    ) -> UserRecord:
        """Insert a user row and return it."""
        birthday = registration.birthday.isoformat() if registration.birthday else None
        response = await _execute(
            self.client.table("users").insert(
                {
                    "username": registration.username,
                    "password_hash": password_hash,
                    "firstname": registration.first_name,
                    "middlename": registration.middle_name,
                    "lastname": registration.last_name,
                    "birthday": birthday,
                    "telegram": registration.telegram,
                }
            )
        )
        if not response.data:
            raise StoreUnavailableError("Failed to create user in Supabase")
        return _to_user(response.data[0])

    async def get_by_id(self, user_id: int) -> UserRecord | None:
        """Return a user by id, if present."""
        response = await _execute(
            self.client.table("users").select(_USER_COLUMNS).eq("id", user_id).limit(1)
        )
        return _to_user(response.data[0]) if response.data else None

    async def get_by_telegram(self, telegram: str) -> UserRecord | None:
        """Return the user owning a Telegram handle, if present."""
        response = await _execute(
            self.client.table("users")
            .select(_USER_COLUMNS)
            .eq("telegram", telegram)
            .limit(1)
        )
        return _to_user(response.data[0]) if response.data else None

    async def list_users(self) -> list[UserRecord]:
        """Return every user ordered by id."""
        response = await _execute(
            self.client.table("users").select(_USER_COLUMNS).order("id")
        )
        return [_to_user(row) for row in response.data or []]

    async def list_by_birthday(self, month: int, day: int) -> list[UserRecord]:
        """Return users whose birthday falls on month/day."""
        response = await _execute(
            self.client.table("users")
            .select(_USER_COLUMNS)
            .eq("birth_month", month)
            .eq("birth_day", day)
        )
        return [_to_user(row) for row in response.data or []]

    async def add_subscription(self, user_id: int, subscriber_id: int) -> None:
        """Insert the subscription edge, ignoring duplicates."""
        await _execute(
            self.client.table("subscriptions").upsert(
                {"user_id": user_id, "subscriber_id": subscriber_id},
                on_conflict="user_id,subscriber_id",
                ignore_duplicates=True,
            )
        )

    async def remove_subscription(self, user_id: int, subscriber_id: int) -> None:
        """Delete the subscription edge if present."""
        await _execute(
            self.client.table("subscriptions")
            .delete()
            .eq("user_id", user_id)
            .eq("subscriber_id", subscriber_id)
        )

    async def list_subscribers(self, user_id: int) -> list[UserRecord]:
        """Return users subscribed to `user_id`."""
        response = await _execute(
            self.client.table("subscriptions")
            .select(_SUBSCRIBER_EMBED)
            .eq("user_id", user_id)
        )
        return [
            _to_user(row["subscriber"])
            for row in response.data or []
            if row.get("subscriber")
        ]

    async def bind_telegram_id(
        self, telegram_id: int, telegram: str
    ) -> UserRecord | None:
        """Store the Telegram account id on the user with this handle."""
        response = await _execute(
            self.client.table("users")
            .update({"telegram_id": telegram_id})
            .eq("telegram", telegram)
        )
        return _to_user(response.data[0]) if response.data else None

    async def ping(self) -> None:
        """Check connectivity with a minimal query."""
        await _execute(self.client.table("users").select("id").limit(1))
