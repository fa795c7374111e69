"""Domain model for authenticated sessions."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class SessionRecord(BaseModel):
    """Server-side session referenced by an opaque token."""

    token: str
    user_id: int
    login: str
    user_agent: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
