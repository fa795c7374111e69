"""Redis-backed session store."""

import logging
import secrets
from dataclasses import dataclass

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from birthday_notifier.domain.errors import StoreUnavailableError
from birthday_notifier.domain.sessions import SessionRecord
from birthday_notifier.services.sessions import SessionStore

logger = logging.getLogger(__name__)

# 32 random bytes, URL-safe base64 encoded.
TOKEN_BYTES = 32


@dataclass
class RedisSessionStore(SessionStore):
    """Sessions stored as JSON under `session:<token>` with a TTL."""

    client: Redis
    ttl_seconds: int
    key_prefix: str = "session:"

    def _key(self, token: str) -> str:
        return f"{self.key_prefix}{token}"

    async def create(self, user_id: int, login: str, user_agent: str) -> str:
        """Persist a new session and return its token."""
        token = secrets.token_urlsafe(TOKEN_BYTES)
        record = SessionRecord(
            token=token, user_id=user_id, login=login, user_agent=user_agent
        )
        try:
            await self.client.set(
                self._key(token), record.model_dump_json(), ex=self.ttl_seconds
            )
        except RedisError as exc:
            raise StoreUnavailableError(f"session store write failed: {exc}") from exc
        return token

    async def check(self, token: str) -> SessionRecord | None:
        """Return the session for a token without extending its TTL."""
        if not token:
            return None
        try:
            raw = await self.client.get(self._key(token))
        except RedisError as exc:
            raise StoreUnavailableError(f"session store read failed: {exc}") from exc
        if raw is None:
            return None
        try:
            return SessionRecord.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable session payload")
            return None

    async def delete(self, token: str) -> None:
        """Remove a session."""
        try:
            await self.client.delete(self._key(token))
        except RedisError as exc:
            raise StoreUnavailableError(f"session store write failed: {exc}") from exc

    async def ping(self) -> None:
        """Check connectivity."""
        try:
            await self.client.ping()
        except RedisError as exc:
            raise StoreUnavailableError(f"session store unreachable: {exc}") from exc

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self.client.aclose()
