"""Password hashing and JWT creation/verification for authentication."""

from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

import bcrypt
import jwt

from app.core.config import settings

# Min/max lengths for email and password validation.
EMAIL_MAX_LEN = 255
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128


class PasswordHasher(Protocol):
    """Opaque hashing collaborator: the algorithm is not visible to callers."""

    def hash(self, plaintext: str) -> str: ...

    def matches(self, plaintext: str, digest: str) -> bool: ...


class BcryptPasswordHasher:
    """PasswordHasher backed by bcrypt."""

    def __init__(self, rounds: int | None = None) -> None:
        self.rounds = rounds if rounds is not None else settings.BCRYPT_ROUNDS

    def hash(self, plaintext: str) -> str:
        """Hash a plain-text password for storage. Do not store plain passwords."""
        # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
        pw_bytes = plaintext.encode("utf-8")[:72]
        return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def matches(self, plaintext: str, digest: str) -> bool:
        """Verify a plain password against a stored hash."""
        pw_bytes = plaintext.encode("utf-8")[:72]
        try:
            return bcrypt.checkpw(pw_bytes, digest.encode("utf-8"))
        except (ValueError, TypeError):
            return False


def create_access_token(sub: str | int, role: str, session_id: str) -> str:
    """Create a JWT access token bound to one login session (sid claim)."""
    now = datetime.now(UTC)
    expire = now + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "sub": str(sub),
        "role": role,
        "sid": session_id,
        "exp": expire,
        "iat": now,
    }
    secret = settings.JWT_SECRET.get_secret_value()
    return jwt.encode(
        payload,
        secret,
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate JWT; return payload (sub, role, sid, exp, iat).
    Raises jwt.PyJWTError on invalid or expired token.
    """
    secret = settings.JWT_SECRET.get_secret_value()
    return jwt.decode(
        token,
        secret,
        algorithms=[settings.JWT_ALGORITHM],
    )
