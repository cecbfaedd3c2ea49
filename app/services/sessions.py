"""Single active session per user: a new login supersedes the previous one."""

import logging
import secrets
from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models import User, UserSession

logger = logging.getLogger(__name__)

# Bytes of randomness in a session id (URL-safe base64, ~43 chars).
SESSION_ID_BYTES = 32


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SessionPolicy:
    """Creates, looks up and invalidates rows in user_sessions."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = _utcnow) -> None:
        self.db = db
        self.clock = clock

    def login(self, user: User) -> UserSession:
        """
        Invalidate any valid session of this user and create a new valid one,
        in one transaction. The user row is locked while the swap happens, so
        concurrent logins of the same user serialize.
        """
        now = self.clock()
        locked = (
            self.db.query(User.id).filter(User.id == user.id).with_for_update().first()
        )
        if locked is None:
            self.db.rollback()
            raise NotFoundError(f"User not found with id: {user.id}")

        superseded = self.db.execute(
            update(UserSession)
            .where(UserSession.user_id == user.id, UserSession.valid.is_(True))
            .values(valid=False, invalidated_at=now)
            .execution_options(synchronize_session=False)
        ).rowcount
        record = UserSession(
            id=secrets.token_urlsafe(SESSION_ID_BYTES),
            user_id=user.id,
            created_at=now,
            valid=True,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        if superseded:
            logger.info(
                "Login superseded %s session(s): user_id=%s", superseded, user.id
            )
        logger.info("Session started: user_id=%s", user.id)
        return record

    def logout(self, session_id: str) -> UserSession:
        """Invalidate exactly this session. Other users' sessions are untouched."""
        record = self.get(session_id)
        if record is None:
            raise NotFoundError("Session not found")
        if record.valid:
            self.db.execute(
                update(UserSession)
                .where(UserSession.id == session_id, UserSession.valid.is_(True))
                .values(valid=False, invalidated_at=self.clock())
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
            self.db.refresh(record)
            logger.info("Session ended: user_id=%s", record.user_id)
        return record

    def get(self, session_id: str) -> UserSession | None:
        return self.db.query(UserSession).filter(UserSession.id == session_id).first()

    def is_valid(self, session_id: str) -> bool:
        record = self.get(session_id)
        return record is not None and bool(record.valid)

    def active_session_for(self, user_id: int) -> UserSession | None:
        return (
            self.db.query(UserSession)
            .filter(UserSession.user_id == user_id, UserSession.valid.is_(True))
            .first()
        )

    def invalidate_all_for(self, user_id: int, commit: bool = True) -> int:
        """
        Invalidate every valid session of a user (used when access is revoked).

        With commit=False the update joins the caller's transaction.
        """
        count = self.db.execute(
            update(UserSession)
            .where(UserSession.user_id == user_id, UserSession.valid.is_(True))
            .values(valid=False, invalidated_at=self.clock())
            .execution_options(synchronize_session=False)
        ).rowcount
        if commit:
            self.db.commit()
        if count:
            logger.info("Revoked %s session(s): user_id=%s", count, user_id)
        return count
