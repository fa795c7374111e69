"""Error taxonomy shared by services, adapters and the HTTP layer."""

from dataclasses import dataclass


class BirthdayNotifierError(Exception):
    """Base class for expected domain failures."""


class UserNotFoundError(BirthdayNotifierError):
    """The referenced user does not exist."""

    def __init__(self, message: str = "user not found") -> None:
        super().__init__(message)


class UserAlreadyExistsError(BirthdayNotifierError):
    """A uniqueness constraint was violated."""

    def __init__(self, message: str = "already exists") -> None:
        super().__init__(message)


class BadPasswordError(BirthdayNotifierError):
    """The supplied password does not match the stored hash."""

    def __init__(self, message: str = "invalid password") -> None:
        super().__init__(message)


class UnauthenticatedError(BirthdayNotifierError):
    """No valid session accompanies the request."""

    def __init__(self, message: str = "not authenticated") -> None:
        super().__init__(message)


class PermissionDeniedError(BirthdayNotifierError):
    """The session owner may not act on behalf of another user."""

    def __init__(self, message: str = "permission denied") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class FieldError:
    """Single invalid input field."""

    param: str
    msg: str
    location: str = "body"

    def as_dict(self) -> dict[str, str]:
        return {"location": self.location, "param": self.param, "msg": self.msg}


class ValidationFailedError(BirthdayNotifierError):
    """One or more input fields are missing or malformed."""

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = errors
        params = ", ".join(error.param for error in errors)
        super().__init__(f"invalid fields: {params}")


class StoreUnavailableError(BirthdayNotifierError):
    """A backing store (Redis or Supabase) could not be reached."""


class SessionCreationFailedError(StoreUnavailableError):
    """The session store rejected a write during login or registration."""


class RecipientUnreachableError(BirthdayNotifierError):
    """A notification could not be delivered to one recipient."""
