"""Polling loop feeding Telegram updates into the command dispatcher."""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass

from birthday_notifier.adapters.telegram_client import TelegramClient
from birthday_notifier.api.telegram_models import TelegramUpdate
from birthday_notifier.lifecycle import run_until_stopped
from birthday_notifier.services.commands import CommandDispatcher

logger = logging.getLogger(__name__)


async def _next_update(
    updates: AsyncIterator[TelegramUpdate],
) -> TelegramUpdate | None:
    return await anext(updates, None)


@dataclass
class UpdateLoop:
    """Consumes the lazy update stream until the stop signal fires."""

    telegram_client: TelegramClient
    dispatcher: CommandDispatcher

    async def run(self, stop: asyncio.Event) -> None:
        """Dispatch updates one at a time until `stop` is set."""
        logger.info("Telegram update loop started")
        try:
            await self.telegram_client.delete_webhook()
        except Exception:
            logger.exception("Failed to remove Telegram webhook")
        updates = self.telegram_client.iter_updates()
        try:
            while not stop.is_set():
                received, update = await run_until_stopped(
                    _next_update(updates), stop
                )
                if not received:
                    break
                if update is None:
                    logger.info("Telegram update stream ended")
                    break
                await self.dispatcher.dispatch(update)
        finally:
            await updates.aclose()
        logger.info("Telegram update loop stopped")
