"""
Credential verification and the per-user lockout state machine.

ACTIVE (account_non_locked) -> LOCKED once failed_login_attempts reaches the
threshold after an increment. LOCKED -> ACTIVE only through unlock(); there
is no time-based unlock.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum

from app.core.exceptions import IntegrityViolationError, NotFoundError, UnauthorizedError
from app.core.security import PasswordHasher
from app.models import User
from app.services.user_store import UserStore

logger = logging.getLogger(__name__)

DEFAULT_LOCKOUT_THRESHOLD = 5

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password."


class VerifyResult(str, Enum):
    SUCCESS = "SUCCESS"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    BAD_PASSWORD = "BAD_PASSWORD"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    ACCOUNT_DISABLED = "ACCOUNT_DISABLED"
    NO_PASSWORD_SET = "NO_PASSWORD_SET"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CredentialVerifier:
    """Authenticates email + password against the stored digest and records the outcome."""

    def __init__(
        self,
        store: UserStore,
        hasher: PasswordHasher,
        lockout_threshold: int = DEFAULT_LOCKOUT_THRESHOLD,
        clock: Callable[[], datetime] = _utcnow,
        on_lock: Callable[[int], object] | None = None,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.lockout_threshold = lockout_threshold
        self.clock = clock
        # Called with the user id when a failed attempt locks the account.
        self.on_lock = on_lock

    def verify(self, email: str, password: str) -> VerifyResult:
        """
        Check credentials in order: existence, digest present, enabled, not
        locked, password match. A mismatch increments the failed-attempt
        counter (and may lock) even though the result is a failure.
        """
        result, _ = self._check(email, password)
        return result

    def authenticate(self, email: str, password: str) -> User:
        """
        Verify and return the user, or raise.

        USER_NOT_FOUND and BAD_PASSWORD share one message so callers cannot
        tell which emails exist. NO_PASSWORD_SET is an integrity error.
        """
        result, user = self._check(email, password)
        if result is VerifyResult.SUCCESS:
            return user
        if result is VerifyResult.NO_PASSWORD_SET:
            raise IntegrityViolationError(f"User {email} has no password set")
        if result is VerifyResult.ACCOUNT_DISABLED:
            raise UnauthorizedError("Account is disabled.")
        if result is VerifyResult.ACCOUNT_LOCKED:
            raise UnauthorizedError("Account is locked.")
        raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

    def unlock(self, user_id: int) -> User:
        """Administrative unlock: clears the lock flag and the failed-attempt counter."""
        user = self.store.find_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User not found with id: {user_id}")
        user.account_non_locked = True
        user.failed_login_attempts = 0
        user = self.store.save(user)
        logger.info("Account unlocked: user_id=%s", user_id)
        return user

    def _check(self, email: str, password: str) -> tuple[VerifyResult, User | None]:
        user = self.store.find_by_email(email)
        if user is None:
            logger.info("Login failed: unknown email")
            return VerifyResult.USER_NOT_FOUND, None
        if not user.password_hash:
            logger.error("User %s has no password digest", user.id)
            return VerifyResult.NO_PASSWORD_SET, user
        if not user.enabled:
            return VerifyResult.ACCOUNT_DISABLED, user
        if not user.account_non_locked:
            return VerifyResult.ACCOUNT_LOCKED, user

        if not self.hasher.matches(password, user.password_hash):
            user = self.store.record_failed_login(user.id, self.lockout_threshold)
            logger.info(
                "Login failed: user_id=%s, failed_login_attempts=%s",
                user.id,
                user.failed_login_attempts,
            )
            if not user.account_non_locked:
                logger.warning(
                    "Account locked after %s failed attempts: user_id=%s",
                    user.failed_login_attempts,
                    user.id,
                )
                if self.on_lock is not None:
                    self.on_lock(user.id)
            return VerifyResult.BAD_PASSWORD, user

        user = self.store.record_successful_login(user.id, self.clock())
        return VerifyResult.SUCCESS, user
