"""Request guards: bearer sessions and the Telegram webhook secret."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

from fastapi import Header, Request

from birthday_notifier.domain.errors import PermissionDeniedError
from birthday_notifier.domain.sessions import SessionRecord  # noqa: TC001

if TYPE_CHECKING:
    from birthday_notifier.containers import AppContainer


async def require_session(
    request: Request,
    authorization: str | None = Header(default=None),
) -> SessionRecord:
    """Resolve the Authorization header to a session or fail with 401."""
    container: AppContainer = request.app.state.container
    return await container.auth_service.authorize(authorization)


async def require_telegram_secret(
    request: Request,
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
) -> None:
    """Reject webhook calls that do not carry the configured secret token."""
    container: AppContainer = request.app.state.container
    expected = container.settings.telegram_webhook_secret
    if not expected:
        return
    supplied = x_telegram_bot_api_secret_token or ""
    if not secrets.compare_digest(supplied.encode(), expected.encode()):
        raise PermissionDeniedError("invalid webhook secret")
