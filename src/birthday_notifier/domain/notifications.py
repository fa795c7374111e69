"""Domain models for birthday notifications."""

from dataclasses import dataclass


@dataclass
class NotificationReport:
    """Outcome counters of one notification cycle."""

    birthdays: int = 0
    sent: int = 0
    unreachable: int = 0
    failed: int = 0
