"""Shared test fixtures."""

import asyncio
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from datetime import date

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from birthday_notifier.adapters.redis_session_store import RedisSessionStore
from birthday_notifier.api.telegram_models import TelegramUpdate
from birthday_notifier.config import Settings
from birthday_notifier.containers import AppContainer
from birthday_notifier.domain.errors import (
    RecipientUnreachableError,
    UserAlreadyExistsError,
)
from birthday_notifier.domain.models import Registration, UserRecord
from birthday_notifier.services.auth import AuthService
from birthday_notifier.services.commands import CommandDispatcher, default_handlers
from birthday_notifier.services.notifications import (
    BirthdayNotificationService,
    BirthdayScheduler,
)
from birthday_notifier.services.passwords import PasswordHasher
from birthday_notifier.services.updates import UpdateLoop
from birthday_notifier.services.users import UserRepository, UserService


@dataclass
class InMemoryUserRepository(UserRepository):
    """In-memory user repository for tests."""

    users: dict[int, UserRecord] = field(default_factory=dict)
    password_hashes: dict[int, str] = field(default_factory=dict)
    edges: set[tuple[int, int]] = field(default_factory=set)
    failing_subscriber_lookups: set[int] = field(default_factory=set)
    next_id: int = 1

    def add_user(  # noqa: PLR0913
        self,
        username: str,
        birthday: date,
        telegram_id: int | None = None,
        first_name: str = "",
        last_name: str = "",
        password_hash: str = "",
    ) -> UserRecord:
        user = UserRecord(
            id=self.next_id,
            username=username,
            first_name=first_name or username.title(),
            middle_name="",
            last_name=last_name or "Tester",
            birthday=birthday,
            telegram=f"@{username}",
            telegram_id=telegram_id,
        )
        self.users[user.id] = user
        self.password_hashes[user.id] = password_hash
        self.next_id += 1
        return user

    async def get_password_hash(self, username: str) -> tuple[UserRecord, str] | None:
        for user in self.users.values():
            if user.username == username:
                return user, self.password_hashes[user.id]
        return None

    async def create_user(
        self, registration: Registration, password_hash: str
    ) -> UserRecord:
        for user in self.users.values():
            if registration.username == user.username or (
                registration.telegram == user.telegram
            ):
                raise UserAlreadyExistsError
        user = UserRecord(
            id=self.next_id,
            username=registration.username,
            first_name=registration.first_name,
            middle_name=registration.middle_name,
            last_name=registration.last_name,
            birthday=registration.birthday or date.min,
            telegram=registration.telegram,
        )
        self.users[user.id] = user
        self.password_hashes[user.id] = password_hash
        self.next_id += 1
        return user

    async def get_by_id(self, user_id: int) -> UserRecord | None:
        return self.users.get(user_id)

    async def get_by_telegram(self, telegram: str) -> UserRecord | None:
        for user in self.users.values():
            if user.telegram == telegram:
                return user
        return None

    async def list_users(self) -> list[UserRecord]:
        return list(self.users.values())

    async def list_by_birthday(self, month: int, day: int) -> list[UserRecord]:
        return [
            user
            for user in self.users.values()
            if (user.birthday.month, user.birthday.day) == (month, day)
        ]

    async def add_subscription(self, user_id: int, subscriber_id: int) -> None:
        self.edges.add((user_id, subscriber_id))

    async def remove_subscription(self, user_id: int, subscriber_id: int) -> None:
        self.edges.discard((user_id, subscriber_id))

    async def list_subscribers(self, user_id: int) -> list[UserRecord]:
        if user_id in self.failing_subscriber_lookups:
            raise RuntimeError("subscriber query failed")
        return [
            self.users[subscriber_id]
            for owner_id, subscriber_id in sorted(self.edges)
            if owner_id == user_id
        ]

    async def bind_telegram_id(
        self, telegram_id: int, telegram: str
    ) -> UserRecord | None:
        user = await self.get_by_telegram(telegram)
        if user is None:
            return None
        for other in self.users.values():
            if other.telegram_id == telegram_id and other.id != user.id:
                raise UserAlreadyExistsError
        bound = UserRecord(
            id=user.id,
            username=user.username,
            first_name=user.first_name,
            middle_name=user.middle_name,
            last_name=user.last_name,
            birthday=user.birthday,
            telegram=user.telegram,
            telegram_id=telegram_id,
        )
        self.users[user.id] = bound
        return bound

    async def ping(self) -> None:
        return None


@dataclass
class FakeRedis:
    """Dict-backed stand-in for redis.asyncio.Redis."""

    values: dict[str, str] = field(default_factory=dict)
    ttls: dict[str, int | None] = field(default_factory=dict)
    writes: list[str] = field(default_factory=list)
    available: bool = True

    def _ensure_available(self) -> None:
        if not self.available:
            raise RedisConnectionError("connection refused")

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self._ensure_available()
        self.values[key] = value
        self.ttls[key] = ex
        self.writes.append(key)
        return True

    async def get(self, key: str) -> str | None:
        self._ensure_available()
        return self.values.get(key)

    async def delete(self, *keys: str) -> int:
        self._ensure_available()
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
        return removed

    async def ping(self) -> bool:
        self._ensure_available()
        return True

    async def aclose(self) -> None:
        return None

    def expire_all(self) -> None:
        self.values.clear()


@dataclass
class FakeTelegramClient:
    """Fake Telegram client that records messages."""

    messages: list[tuple[int, str]] = field(default_factory=list)
    commands: list[dict[str, str]] | None = None
    webhook_url: str | None = None
    webhook_secret: str | None = None
    webhook_deleted: bool = False
    queued_updates: list[TelegramUpdate] = field(default_factory=list)
    failing_chats: set[int] = field(default_factory=set)
    closed: bool = False

    async def send_message(self, chat_id: int, text: str) -> None:
        if chat_id in self.failing_chats:
            raise RuntimeError("chat not found")
        self.messages.append((chat_id, text))

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        self.commands = commands

    async def set_webhook(self, url: str, secret_token: str | None = None) -> None:
        self.webhook_url = url
        self.webhook_secret = secret_token

    async def delete_webhook(self) -> None:
        self.webhook_deleted = True

    async def iter_updates(self) -> AsyncGenerator[TelegramUpdate, None]:
        while self.queued_updates:
            yield self.queued_updates.pop(0)
        # A real long poll never ends; block until cancelled.
        await asyncio.Event().wait()

    async def close(self) -> None:
        self.closed = True


@dataclass
class FakeNotifier:
    """Notifier that records deliveries and fails for chosen recipients."""

    sent: list[tuple[int, str]] = field(default_factory=list)
    unreachable: set[int] = field(default_factory=set)
    broken: set[int] = field(default_factory=set)

    async def send(self, recipient_id: int, text: str) -> None:
        if recipient_id in self.unreachable:
            raise RecipientUnreachableError(f"account {recipient_id} blocked the bot")
        if recipient_id in self.broken:
            raise RuntimeError("unexpected transport failure")
        self.sent.append((recipient_id, text))


def message_update(
    text: str, username: str | None = "alice", user_id: int = 555
) -> TelegramUpdate:
    """Build a private-chat text update."""
    sender: dict[str, object] = {"id": user_id, "is_bot": False, "first_name": "T"}
    if username is not None:
        sender["username"] = username
    return TelegramUpdate.model_validate(
        {
            "update_id": 1,
            "message": {
                "message_id": 10,
                "date": 1700000000,
                "chat": {"id": user_id, "type": "private"},
                "from": sender,
                "text": text,
            },
        }
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        telegram_bot_token="test-token",
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        bcrypt_rounds=4,
    )


@pytest.fixture
def user_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def session_store(fake_redis: FakeRedis) -> RedisSessionStore:
    return RedisSessionStore(client=fake_redis, ttl_seconds=3600)


@pytest.fixture
def password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def auth_service(
    user_repository: InMemoryUserRepository,
    session_store: RedisSessionStore,
    password_hasher: PasswordHasher,
) -> AuthService:
    return AuthService(
        repository=user_repository,
        session_store=session_store,
        password_hasher=password_hasher,
    )


@pytest.fixture
def telegram_client() -> FakeTelegramClient:
    return FakeTelegramClient()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def container(
    settings: Settings,
    user_repository: InMemoryUserRepository,
    session_store: RedisSessionStore,
    auth_service: AuthService,
    telegram_client: FakeTelegramClient,
    notifier: FakeNotifier,
) -> AppContainer:
    user_service = UserService(user_repository)
    notification_service = BirthdayNotificationService(
        repository=user_repository, notifier=notifier
    )
    scheduler = BirthdayScheduler(
        service=notification_service,
        interval_seconds=3600,
        clock=lambda: date(2025, 6, 15),
    )
    command_dispatcher = CommandDispatcher(
        telegram_client=telegram_client,
        handlers=default_handlers(user_service),
    )

    async def check_resources() -> None:
        return None

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        telegram_client=telegram_client,
        session_store=session_store,
        user_service=user_service,
        auth_service=auth_service,
        notification_service=notification_service,
        scheduler=scheduler,
        command_dispatcher=command_dispatcher,
        update_loop=UpdateLoop(
            telegram_client=telegram_client, dispatcher=command_dispatcher
        ),
        check_resources=check_resources,
        close_resources=close_resources,
    )
