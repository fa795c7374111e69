"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from redis.asyncio import Redis
from supabase import acreate_client

from birthday_notifier.adapters.redis_session_store import RedisSessionStore
from birthday_notifier.adapters.supabase_user_repository import (
    SupabaseUserRepository,
)
from birthday_notifier.adapters.telegram_client import (
    HttpxTelegramClient,
    TelegramClient,
    TelegramNotifier,
)
from birthday_notifier.config import Settings, parse_timezone
from birthday_notifier.services.auth import AuthService
from birthday_notifier.services.commands import CommandDispatcher, default_handlers
from birthday_notifier.services.notifications import (
    BirthdayNotificationService,
    BirthdayScheduler,
    local_today,
)
from birthday_notifier.services.passwords import PasswordHasher
from birthday_notifier.services.sessions import SessionStore
from birthday_notifier.services.updates import UpdateLoop
from birthday_notifier.services.users import UserService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    telegram_client: TelegramClient
    session_store: SessionStore
    user_service: UserService
    auth_service: AuthService
    notification_service: BirthdayNotificationService
    scheduler: BirthdayScheduler
    command_dispatcher: CommandDispatcher
    update_loop: UpdateLoop
    check_resources: Callable[[], Awaitable[None]]
    close_resources: Callable[[], Awaitable[None]]


async def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = await acreate_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    redis_client = Redis.from_url(resolved_settings.redis_url, decode_responses=True)
    user_repository = SupabaseUserRepository(supabase_client)
    session_store = RedisSessionStore(
        client=redis_client, ttl_seconds=resolved_settings.session_ttl_seconds
    )
    telegram_client = HttpxTelegramClient.create(
        resolved_settings.telegram_bot_token,
        poll_timeout=resolved_settings.telegram_poll_timeout,
    )
    user_service = UserService(user_repository)
    auth_service = AuthService(
        repository=user_repository,
        session_store=session_store,
        password_hasher=PasswordHasher(rounds=resolved_settings.bcrypt_rounds),
    )
    notification_service = BirthdayNotificationService(
        repository=user_repository,
        notifier=TelegramNotifier(telegram_client),
    )
    scheduler = BirthdayScheduler(
        service=notification_service,
        interval_seconds=resolved_settings.notification_interval_seconds,
        clock=local_today(parse_timezone(resolved_settings.notification_timezone)),
        run_on_start=resolved_settings.notification_run_on_start,
    )
    command_dispatcher = CommandDispatcher(
        telegram_client=telegram_client,
        handlers=default_handlers(user_service),
    )
    update_loop = UpdateLoop(
        telegram_client=telegram_client, dispatcher=command_dispatcher
    )

    async def check_resources() -> None:
        await session_store.ping()
        await user_repository.ping()

    async def close_resources() -> None:
        await telegram_client.close()
        await session_store.close()

    return AppContainer(
        settings=resolved_settings,
        telegram_client=telegram_client,
        session_store=session_store,
        user_service=user_service,
        auth_service=auth_service,
        notification_service=notification_service,
        scheduler=scheduler,
        command_dispatcher=command_dispatcher,
        update_loop=update_loop,
        check_resources=check_resources,
        close_resources=close_resources,
    )
