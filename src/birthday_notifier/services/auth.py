"""Authentication gateway: login, registration and bearer-token checks."""

import asyncio
import logging
from dataclasses import dataclass

from birthday_notifier.domain.errors import (
    BadPasswordError,
    FieldError,
    SessionCreationFailedError,
    StoreUnavailableError,
    UnauthenticatedError,
    UserNotFoundError,
    ValidationFailedError,
)
from birthday_notifier.domain.models import (
    Registration,
    UserRecord,
    normalize_telegram_handle,
)
from birthday_notifier.domain.sessions import SessionRecord
from birthday_notifier.services.passwords import PasswordHasher
from birthday_notifier.services.sessions import SessionStore
from birthday_notifier.services.users import UserRepository

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass
class AuthService:
    """Validates credentials and issues sessions."""

    repository: UserRepository
    session_store: SessionStore
    password_hasher: PasswordHasher

    async def authenticate(self, username: str, password: str) -> UserRecord:
        """Return the user when the password matches the stored hash."""
        found = await self.repository.get_password_hash(username.strip())
        if found is None:
            await asyncio.to_thread(self.password_hasher.burn, password)
            raise UserNotFoundError
        user, password_hash = found
        if not await asyncio.to_thread(
            self.password_hasher.verify, password, password_hash
        ):
            raise BadPasswordError
        return user

    async def login(self, username: str, password: str, user_agent: str) -> str:
        """Authenticate and return a new session token."""
        _require({"username": username, "password": password})
        user = await self.authenticate(username, password)
        return await self._issue_session(user, user_agent)

    async def register(self, registration: Registration, user_agent: str) -> str:
        """Create a user and return a new session token."""
        _require(
            {
                "username": registration.username,
                "firstname": registration.first_name,
                "lastname": registration.last_name,
                "password": registration.password,
                "birthday": registration.birthday,
                "telegram": normalize_telegram_handle(registration.telegram),
            }
        )
        password_hash = await asyncio.to_thread(
            self.password_hasher.hash, registration.password
        )
        user = await self.repository.create_user(
            Registration(
                username=registration.username.strip(),
                password="",
                first_name=registration.first_name.strip(),
                middle_name=registration.middle_name.strip(),
                last_name=registration.last_name.strip(),
                birthday=registration.birthday,
                telegram=normalize_telegram_handle(registration.telegram),
            ),
            password_hash,
        )
        logger.info("User registered", extra={"user_id": user.id})
        return await self._issue_session(user, user_agent)

    async def authorize(self, authorization: str | None) -> SessionRecord:
        """Resolve a `Bearer <token>` header to its session."""
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise UnauthenticatedError
        token = authorization[len(BEARER_PREFIX) :].strip()
        if not token:
            raise UnauthenticatedError
        session = await self.session_store.check(token)
        if session is None:
            raise UnauthenticatedError
        return session

    async def logout(self, token: str) -> None:
        """Invalidate a session."""
        await self.session_store.delete(token)

    async def _issue_session(self, user: UserRecord, user_agent: str) -> str:
        try:
            return await self.session_store.create(
                user_id=user.id, login=user.username, user_agent=user_agent
            )
        except StoreUnavailableError as exc:
            logger.exception("Failed to create session", extra={"user_id": user.id})
            raise SessionCreationFailedError(str(exc)) from exc


def _require(fields: dict[str, object]) -> None:
    """Raise ValidationFailedError listing every empty field."""
    errors = [
        FieldError(param=name, msg="is required")
        for name, value in fields.items()
        if value is None or (isinstance(value, str) and not value.strip())
    ]
    if errors:
        raise ValidationFailedError(errors)
