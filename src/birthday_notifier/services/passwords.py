"""Password hashing with bcrypt."""

from dataclasses import dataclass, field

import bcrypt

from birthday_notifier.domain.errors import FieldError, ValidationFailedError

# bcrypt only looks at the first 72 bytes of the input.
MAX_PASSWORD_BYTES = 72


@dataclass
class PasswordHasher:
    """Salted one-way hashing and constant-time verification."""

    rounds: int = 12
    _dummy_hash: bytes | None = field(default=None, init=False, repr=False)

    def hash(self, password: str) -> str:
        """Return a bcrypt hash for the password."""
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValidationFailedError(
                [FieldError("password", f"must be at most {MAX_PASSWORD_BYTES} bytes")]
            )
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode(
            "ascii"
        )

    def verify(self, password: str, hashed: str) -> bool:
        """Compare a password against a stored hash."""
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("ascii"))
        except ValueError:
            return False

    def burn(self, password: str) -> None:
        """Spend the same time as a real check when the user is unknown."""
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(
                b"unknown-user", bcrypt.gensalt(rounds=self.rounds)
            )
        self.verify(password, self._dummy_hash.decode("ascii"))
