"""Shared fakes and a SQLite-backed session factory for the test modules."""

import threading
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.roles import Role
from app.models import Base, User

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)


def make_sessionmaker() -> sessionmaker:
    """In-memory SQLite with all tables; one shared connection so every session sees the same data."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_file_sessionmaker(path: str) -> sessionmaker:
    """File-backed SQLite with a connection per session, for tests with concurrent writers."""
    engine = create_engine(f"sqlite:///{path}", connect_args={"timeout": 30, "check_same_thread": False})
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_user(
    user_id: int | None = None,
    email: str = "user@example.com",
    password: str | None = "correct-horse",
    role: str | None = Role.USER.value,
    **overrides: Any,
) -> User:
    """Build a User with every column set (ORM defaults only apply on flush)."""
    fields: dict[str, Any] = {
        "email": email,
        "password_hash": FakeHasher().hash(password) if password is not None else None,
        "first_name": "Test",
        "last_name": "User",
        "phone": None,
        "role": role,
        "enabled": True,
        "account_non_locked": True,
        "failed_login_attempts": 0,
        "last_login": None,
        "created_at": FIXED_NOW,
    }
    fields.update(overrides)
    if fields["created_at"] is None:
        # Leave it to the server default.
        del fields["created_at"]
    user = User(**fields)
    if user_id is not None:
        user.id = user_id
    return user


class FakeHasher:
    """Deterministic PasswordHasher stand-in (bcrypt is exercised separately)."""

    PREFIX = "hashed:"

    def hash(self, plaintext: str) -> str:
        return self.PREFIX + plaintext

    def matches(self, plaintext: str, digest: str) -> bool:
        return digest == self.PREFIX + plaintext


class FakeUserStore:
    """Dict-backed UserStore. record_* updates run under a lock like the single-row UPDATE."""

    def __init__(self, users: list[User] | None = None) -> None:
        self.users: dict[int, User] = {}
        self.saves = 0
        self._lock = threading.Lock()
        self._next_id = 1
        for user in users or []:
            self.save(user)
        self.saves = 0

    def find_by_id(self, user_id: int) -> User | None:
        return self.users.get(user_id)

    def find_by_email(self, email: str) -> User | None:
        return next((u for u in self.users.values() if u.email == email), None)

    def save(self, user: User) -> User:
        if user.id is None:
            user.id = self._next_id
        self._next_id = max(self._next_id, user.id + 1)
        self.users[user.id] = user
        self.saves += 1
        return user

    def delete_by_id(self, user_id: int) -> None:
        self.users.pop(user_id, None)

    def exists_by_email(self, email: str) -> bool:
        return self.find_by_email(email) is not None

    def count(self) -> int:
        return len(self.users)

    def find_all(self) -> list[User]:
        return [self.users[k] for k in sorted(self.users)]

    def search(self, term: str) -> list[User]:
        t = term.lower()
        return [u for u in self.find_all() if t in f"{u.first_name} {u.last_name}".lower()]

    def find_by_domain(self, domain: str) -> list[User]:
        return [u for u in self.find_all() if domain in u.email]

    def find_by_role(self, role: Role) -> list[User]:
        return [u for u in self.find_all() if u.role == role.value]

    def record_failed_login(self, user_id: int, threshold: int) -> User:
        with self._lock:
            user = self.users[user_id]
            user.failed_login_attempts += 1
            if user.failed_login_attempts >= threshold:
                user.account_non_locked = False
            return user

    def record_successful_login(self, user_id: int, when: datetime) -> User:
        with self._lock:
            user = self.users[user_id]
            user.failed_login_attempts = 0
            user.last_login = when
            return user


class RecordingPublisher:
    """EventPublisher that records calls; optionally fails every publish."""

    def __init__(self, fail: bool = False) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []
        self.fail = fail

    def publish(self, topic: str, partition_key: str, payload: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("event channel unreachable")
        self.events.append((topic, partition_key, payload))

    def topics(self) -> list[str]:
        return [topic for topic, _, _ in self.events]

    def read(self, topic: str, count: int = 100) -> list[dict[str, Any]]:
        return [payload for t, _, payload in self.events if t == topic][-count:]

    def clear(self, topics) -> None:
        names = set(topics)
        self.events = [e for e in self.events if e[0] not in names]
