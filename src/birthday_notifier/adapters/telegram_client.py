"""Telegram API client adapter."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Protocol

import httpx
from pydantic import ValidationError

from birthday_notifier.api.telegram_models import TelegramUpdate
from birthday_notifier.domain.errors import RecipientUnreachableError

logger = logging.getLogger(__name__)


class TelegramClient(Protocol):
    """Interface for Telegram API interactions."""

    async def send_message(self, chat_id: int, text: str) -> None:
        """Send a text message to a Telegram chat."""

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        """Set the bot command list."""

    async def set_webhook(self, url: str, secret_token: str | None = None) -> None:
        """Register the webhook URL."""

    async def delete_webhook(self) -> None:
        """Remove the webhook so getUpdates can be used."""

    def iter_updates(self) -> AsyncGenerator[TelegramUpdate, None]:
        """Yield inbound updates forever."""


@dataclass
class HttpxTelegramClient:
    """Telegram client implemented with httpx."""

    bot_token: str
    http_client: httpx.AsyncClient
    poll_timeout: int = 30
    backoff_seconds: float = 1.0
    max_backoff_seconds: float = 30.0

    @classmethod
    def create(cls, bot_token: str, poll_timeout: int = 30) -> "HttpxTelegramClient":
        """Create a Telegram client with a managed httpx session."""
        return cls(
            bot_token=bot_token,
            http_client=httpx.AsyncClient(),
            poll_timeout=poll_timeout,
        )

    def _url(self, method: str) -> str:
        return f"https://api.telegram.org/bot{self.bot_token}/{method}"

    async def send_message(self, chat_id: int, text: str) -> None:
        """Send a message using Telegram's sendMessage API."""
        payload: dict[str, object] = {"chat_id": chat_id, "text": text}
        response = await self.http_client.post(
            self._url("sendMessage"), json=payload, timeout=10
        )
        response.raise_for_status()

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        """Set the bot command list."""
        payload: dict[str, object] = {"commands": commands}
        response = await self.http_client.post(
            self._url("setMyCommands"), json=payload, timeout=10
        )
        response.raise_for_status()

    async def set_webhook(self, url: str, secret_token: str | None = None) -> None:
        """Register the webhook URL, optionally with a secret header value."""
        payload: dict[str, object] = {"url": url, "allowed_updates": ["message"]}
        if secret_token:
            payload["secret_token"] = secret_token
        response = await self.http_client.post(
            self._url("setWebhook"), json=payload, timeout=10
        )
        response.raise_for_status()

    async def delete_webhook(self) -> None:
        """Remove the webhook so getUpdates can be used."""
        response = await self.http_client.post(self._url("deleteWebhook"), timeout=10)
        response.raise_for_status()

    async def get_updates(self, offset: int | None, timeout: int) -> list[dict]:
        """Long-poll getUpdates and return the raw update objects."""
        payload: dict[str, object] = {
            "timeout": timeout,
            "allowed_updates": ["message"],
        }
        if offset is not None:
            payload["offset"] = offset
        response = await self.http_client.post(
            self._url("getUpdates"), json=payload, timeout=timeout + 10
        )
        response.raise_for_status()
        body = response.json()
        result = body.get("result", []) if isinstance(body, dict) else None
        if not isinstance(result, list):
            raise ValueError("getUpdates returned an unexpected body")
        return result

    async def iter_updates(self) -> AsyncGenerator[TelegramUpdate, None]:
        """Yield updates forever, reconnecting with backoff after failures."""
        offset: int | None = None
        failures = 0
        while True:
            try:
                batch = await self.get_updates(offset, self.poll_timeout)
            except (httpx.HTTPError, ValueError) as exc:
                failures += 1
                delay = min(
                    self.max_backoff_seconds,
                    self.backoff_seconds * 2 ** (failures - 1),
                )
                logger.warning("getUpdates failed, retrying in %.1fs: %s", delay, exc)
                await asyncio.sleep(delay)
                continue
            failures = 0
            for raw in batch:
                update_id = raw.get("update_id") if isinstance(raw, dict) else None
                if not isinstance(update_id, int):
                    logger.warning("Skipping update without an id")
                    continue
                offset = update_id + 1
                try:
                    update = TelegramUpdate.model_validate(raw)
                except ValidationError:
                    logger.warning(
                        "Skipping malformed update", extra={"update_id": offset - 1}
                    )
                    continue
                yield update

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()


@dataclass
class TelegramNotifier:
    """Notifier capability that delivers text as Telegram messages."""

    client: TelegramClient

    async def send(self, recipient_id: int, text: str) -> None:
        """Send `text` to a Telegram account id."""
        try:
            await self.client.send_message(chat_id=recipient_id, text=text)
        except httpx.HTTPError as exc:
            raise RecipientUnreachableError(
                f"Telegram account {recipient_id}: {exc}"
            ) from exc
