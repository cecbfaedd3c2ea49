"""Persistence of user accounts: the UserStore interface and its SQLAlchemy implementation."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from sqlalchemy import case, func, or_, update
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.core.roles import Role
from app.models import User, UserSession


class UserStore(Protocol):
    """
    Repository consumed by the credential verifier and the user service.

    Reads return None (or an empty list) when nothing matches; save is an
    upsert by primary key. The two record_* methods update login security
    state atomically so concurrent logins never lose an increment.
    """

    def find_by_id(self, user_id: int) -> User | None: ...

    def find_by_email(self, email: str) -> User | None: ...

    def save(self, user: User) -> User: ...

    def delete_by_id(self, user_id: int) -> None: ...

    def exists_by_email(self, email: str) -> bool: ...

    def count(self) -> int: ...

    def find_all(self) -> list[User]: ...

    def search(self, term: str) -> list[User]: ...

    def find_by_domain(self, domain: str) -> list[User]: ...

    def find_by_role(self, role: Role) -> list[User]: ...

    def record_failed_login(self, user_id: int, threshold: int) -> User: ...

    def record_successful_login(self, user_id: int, when: datetime) -> User: ...


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlAlchemyUserStore:
    """UserStore over a request-scoped SQLAlchemy session. Each write commits."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_id(self, user_id: int) -> User | None:
        return self.db.query(User).filter(User.id == user_id).first()

    def find_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == email).first()

    def save(self, user: User) -> User:
        if user not in self.db:
            user = self.db.merge(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def delete_by_id(self, user_id: int) -> None:
        self.db.query(UserSession).filter(UserSession.user_id == user_id).delete(
            synchronize_session=False
        )
        self.db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
        self.db.commit()

    def exists_by_email(self, email: str) -> bool:
        return self.db.query(User.id).filter(User.email == email).first() is not None

    def count(self) -> int:
        return self.db.query(User).count()

    def find_all(self) -> list[User]:
        return self.db.query(User).order_by(User.id).all()

    def search(self, term: str) -> list[User]:
        """Case-insensitive match on first name, last name or "first last"."""
        pattern = f"%{_escape_like(term.strip().lower())}%"
        full_name = func.lower(User.first_name + " " + User.last_name)
        return (
            self.db.query(User)
            .filter(
                or_(
                    func.lower(User.first_name).like(pattern, escape="\\"),
                    func.lower(User.last_name).like(pattern, escape="\\"),
                    full_name.like(pattern, escape="\\"),
                )
            )
            .order_by(User.id)
            .all()
        )

    def find_by_domain(self, domain: str) -> list[User]:
        pattern = f"%{_escape_like(domain.strip())}%"
        return (
            self.db.query(User)
            .filter(User.email.like(pattern, escape="\\"))
            .order_by(User.id)
            .all()
        )

    def find_by_role(self, role: Role) -> list[User]:
        return self.db.query(User).filter(User.role == role.value).order_by(User.id).all()

    def record_failed_login(self, user_id: int, threshold: int) -> User:
        """
        Increment the failed-attempt counter in one UPDATE and lock the account
        when the new value reaches threshold. The right-hand sides see the
        pre-update row, so both columns derive from the same counter value.
        """
        attempts = User.failed_login_attempts + 1
        self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                failed_login_attempts=attempts,
                account_non_locked=case(
                    (attempts >= threshold, False),
                    else_=User.account_non_locked,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return self._reload(user_id)

    def record_successful_login(self, user_id: int, when: datetime) -> User:
        self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(failed_login_attempts=0, last_login=when)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return self._reload(user_id)

    def _reload(self, user_id: int) -> User:
        user = self.find_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User not found with id: {user_id}")
        self.db.refresh(user)
        return user
