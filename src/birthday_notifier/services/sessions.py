"""Session store contract used by the auth gateway."""

from typing import Protocol

from birthday_notifier.domain.sessions import SessionRecord


class SessionStore(Protocol):
    """Key-value store of sessions with TTL semantics."""

    async def create(self, user_id: int, login: str, user_agent: str) -> str:
        """Persist a new session and return its opaque token."""

    async def check(self, token: str) -> SessionRecord | None:
        """Return the session for a token; absent and expired are both None."""

    async def delete(self, token: str) -> None:
        """Invalidate a session."""

    async def ping(self) -> None:
        """Raise StoreUnavailableError when the store cannot be reached."""
