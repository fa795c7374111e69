"""Request and response bodies of the HTTP API."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from birthday_notifier.domain.models import Registration, UserRecord


class LoginRequest(BaseModel):
    """Credentials posted to /login."""

    username: str = ""
    password: str = ""


class RegisterRequest(BaseModel):
    """Profile posted to /register; emptiness is checked by the auth service."""

    username: str = ""
    password: str = ""
    firstname: str = ""
    middlename: str = ""
    lastname: str = ""
    birthday: date | None = None
    telegram: str = ""

    def to_registration(self) -> Registration:
        return Registration(
            username=self.username,
            password=self.password,
            first_name=self.firstname,
            middle_name=self.middlename,
            last_name=self.lastname,
            birthday=self.birthday,
            telegram=self.telegram,
        )


class SubscribeRequest(BaseModel):
    """Subscription edge posted to /subscribe and /unsubscribe."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="userID")
    subscriber_id: int | None = Field(default=None, alias="subscriberID")


class SessionResponse(BaseModel):
    """Token returned by /login and /register."""

    session: str


class UserResponse(BaseModel):
    """Public view of a user."""

    id: int
    username: str
    firstname: str
    middlename: str
    lastname: str
    birthday: date
    telegram: str
    telegramid: int | None

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            firstname=user.first_name,
            middlename=user.middle_name,
            lastname=user.last_name,
            birthday=user.birthday,
            telegram=user.telegram,
            telegramid=user.telegram_id,
        )
