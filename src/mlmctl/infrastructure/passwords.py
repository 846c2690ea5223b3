"""bcrypt password hashing through passlib."""

from __future__ import annotations

from passlib.context import CryptContext


class PasswordHasher:
    """Hash and verify member passwords.

    ``rounds`` is the bcrypt cost factor; tests lower it through
    ``MLMCTL_SECURITY__BCRYPT_ROUNDS``.
    """

    def __init__(self, rounds: int = 12) -> None:
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        """True if *password* matches *hashed*; False for malformed hashes."""
        if not hashed:
            return False
        try:
            return self._context.verify(password, hashed)
        except ValueError:
            return False
