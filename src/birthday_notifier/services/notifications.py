"""Birthday notification cycle and its periodic scheduler."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Protocol

from birthday_notifier.domain.errors import RecipientUnreachableError
from birthday_notifier.domain.models import UserRecord
from birthday_notifier.domain.notifications import NotificationReport
from birthday_notifier.lifecycle import run_until_stopped
from birthday_notifier.services.users import UserRepository

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Outbound channel able to deliver text to one recipient."""

    async def send(self, recipient_id: int, text: str) -> None:
        """Deliver a message; raise RecipientUnreachableError on failure."""


def birthday_message(user: UserRecord) -> str:
    """Format the notification sent to subscribers."""
    return (
        f"Today is {user.display_name}'s birthday! "
        "Don't forget to congratulate them."
    )


def local_today(timezone: tzinfo | None = None) -> Callable[[], date]:
    """Return a clock yielding today's date in the given timezone."""

    def today() -> date:
        return datetime.now(tz=timezone).date()

    return today


@dataclass
class BirthdayNotificationService:
    """Runs one scan of today's birthdays and notifies subscribers."""

    repository: UserRepository
    notifier: Notifier

    async def run_cycle(self, today: date) -> NotificationReport:
        """Notify every subscriber of every user born on `today`'s month/day."""
        report = NotificationReport()
        try:
            birthday_users = await self.repository.list_by_birthday(
                today.month, today.day
            )
        except Exception:
            logger.exception("Failed to load birthdays", extra={"day": str(today)})
            return report
        if not birthday_users:
            logger.info("No birthdays today", extra={"day": str(today)})
            return report

        report.birthdays = len(birthday_users)
        for user in birthday_users:
            await self._notify_subscribers(user, report)
        logger.info(
            "Notification cycle finished: %s birthdays, %s sent, "
            "%s unreachable, %s failed",
            report.birthdays,
            report.sent,
            report.unreachable,
            report.failed,
        )
        return report

    async def _notify_subscribers(
        self, user: UserRecord, report: NotificationReport
    ) -> None:
        try:
            subscribers = await self.repository.list_subscribers(user.id)
        except Exception:
            logger.exception("Failed to load subscribers", extra={"user_id": user.id})
            return
        if not subscribers:
            return

        text = birthday_message(user)
        for subscriber in subscribers:
            if subscriber.telegram_id is None:
                report.unreachable += 1
                logger.info(
                    "Subscriber has no bound Telegram account",
                    extra={"subscriber_id": subscriber.id},
                )
                continue
            try:
                await self.notifier.send(subscriber.telegram_id, text)
            except RecipientUnreachableError as exc:
                report.unreachable += 1
                logger.warning(
                    "Recipient unreachable: %s",
                    exc,
                    extra={"subscriber_id": subscriber.id},
                )
            except Exception:
                report.failed += 1
                logger.exception(
                    "Failed to send birthday notification",
                    extra={"subscriber_id": subscriber.id},
                )
            else:
                report.sent += 1


@dataclass
class BirthdayScheduler:
    """Runs the notification cycle once per interval until stopped."""

    service: BirthdayNotificationService
    interval_seconds: float
    clock: Callable[[], date]
    run_on_start: bool = False

    async def run(self, stop: asyncio.Event) -> None:
        """Loop until `stop` is set; an in-flight scan is dropped on stop."""
        logger.info(
            "Birthday scheduler started",
            extra={"interval_seconds": self.interval_seconds},
        )
        first = True
        while not stop.is_set():
            if not (first and self.run_on_start):
                waited, _ = await run_until_stopped(
                    asyncio.sleep(self.interval_seconds), stop
                )
                if not waited:
                    break
            first = False
            finished, _ = await run_until_stopped(
                self.service.run_cycle(self.clock()), stop
            )
            if not finished:
                logger.info("Notification cycle interrupted by shutdown")
                break
        logger.info("Birthday scheduler stopped")
