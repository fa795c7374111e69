"""Domain models for users and registrations."""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class UserRecord:
    """Represents a user stored in the database."""

    id: int
    username: str
    first_name: str
    middle_name: str
    last_name: str
    birthday: date
    telegram: str
    telegram_id: int | None = None

    @property
    def display_name(self) -> str:
        """Full name with empty parts skipped."""
        parts = (self.first_name, self.middle_name, self.last_name)
        return " ".join(part for part in parts if part)


@dataclass(frozen=True)
class Registration:
    """Input of the registration flow, before validation."""

    username: str
    password: str
    first_name: str
    last_name: str
    telegram: str
    birthday: date | None
    middle_name: str = ""


def normalize_telegram_handle(handle: str) -> str:
    """Return the handle with exactly one leading '@'."""
    cleaned = handle.strip().lstrip("@")
    return f"@{cleaned}" if cleaned else ""
