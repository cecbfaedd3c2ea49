"""User management: CRUD, account toggles and reports. Emits lifecycle events after each change."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from app.core.exceptions import ConflictError, NotFoundError
from app.core.roles import Role, parse_role
from app.core.security import PasswordHasher
from app.models import User
from app.schemas.user import ManagerReport, RoleBreakdown, UserCreate, UserUpdate
from app.services.events import USER_CREATED, USER_DELETED, USER_UPDATED, UserEventEmitter
from app.services.user_store import UserStore

logger = logging.getLogger(__name__)

# Window for "recent users" in the manager report.
RECENT_USERS_DAYS = 30


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _as_aware(value: datetime) -> datetime:
    # SQLite returns naive datetimes; treat them as UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class UserService:
    def __init__(
        self,
        store: UserStore,
        hasher: PasswordHasher,
        events: UserEventEmitter,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.events = events
        self.clock = clock

    def create_user(self, data: UserCreate) -> User:
        """
        Create a user with a hashed password; role defaults to USER.
        Raises ConflictError when the email is already registered.
        """
        if self.store.exists_by_email(data.email):
            raise ConflictError(f"User with email {data.email} already exists")
        user = User(
            email=data.email,
            password_hash=self.hasher.hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            role=(data.role or Role.USER).value,
            enabled=True,
            account_non_locked=True,
            failed_login_attempts=0,
        )
        user = self.store.save(user)
        logger.info("User created: user_id=%s, role=%s", user.id, user.role)

        self.events.send_user_event(
            USER_CREATED,
            str(user.id),
            f"User {user.first_name} {user.last_name} created with email {user.email}",
        )
        self.events.send_notification(
            user.email,
            "Welcome to User Management System",
            f"Hello {user.first_name}, your account has been created successfully!",
        )
        return user

    def get_user(self, user_id: int) -> User:
        user = self.store.find_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User not found with id: {user_id}")
        return user

    def get_user_by_email(self, email: str) -> User:
        user = self.store.find_by_email(email)
        if user is None:
            raise NotFoundError(f"User not found with email: {email}")
        return user

    def list_users(self) -> list[User]:
        return self.store.find_all()

    def update_user(self, user_id: int, data: UserUpdate) -> User:
        """
        Update profile fields. Password is re-hashed and role replaced only
        when provided. Raises ConflictError if the new email belongs to someone else.
        """
        user = self.get_user(user_id)
        if user.email != data.email and self.store.exists_by_email(data.email):
            raise ConflictError(f"Email {data.email} is already in use")

        user.first_name = data.first_name
        user.last_name = data.last_name
        user.email = data.email
        user.phone = data.phone
        if data.password:
            user.password_hash = self.hasher.hash(data.password)
        if data.role is not None:
            user.role = data.role.value
        user = self.store.save(user)
        logger.info("User updated: user_id=%s", user.id)

        self.events.send_user_event(
            USER_UPDATED,
            str(user.id),
            f"User {user.first_name} {user.last_name} updated with email {user.email}",
        )
        return user

    def delete_user(self, user_id: int) -> None:
        """Hard delete. The event is emitted before the row is removed."""
        user = self.get_user(user_id)
        self.events.send_user_event(
            USER_DELETED,
            str(user.id),
            f"User {user.first_name} {user.last_name} with email {user.email} was deleted",
        )
        self.store.delete_by_id(user_id)
        logger.info("User deleted: user_id=%s", user_id)

    def search_users(self, term: str) -> list[User]:
        return self.store.search(term)

    def users_by_domain(self, domain: str) -> list[User]:
        return self.store.find_by_domain(domain)

    def users_by_role(self, role: Role) -> list[User]:
        return self.store.find_by_role(role)

    def count(self) -> int:
        return self.store.count()

    def email_exists(self, email: str) -> bool:
        return self.store.exists_by_email(email)

    def set_enabled(self, user_id: int, enabled: bool) -> User:
        user = self.get_user(user_id)
        user.enabled = enabled
        return self.store.save(user)

    def set_locked(self, user_id: int, locked: bool) -> User:
        """
        Lock or unlock. Unlocking also clears the failed-attempt counter, so
        the next failure does not immediately re-lock the account.
        """
        user = self.get_user(user_id)
        user.account_non_locked = not locked
        if not locked:
            user.failed_login_attempts = 0
        user = self.store.save(user)
        logger.info("Account %s: user_id=%s", "locked" if locked else "unlocked", user_id)
        return user

    def change_password(self, user_id: int, new_password: str) -> User:
        user = self.get_user(user_id)
        user.password_hash = self.hasher.hash(new_password)
        return self.store.save(user)

    def change_role(self, user_id: int, role: Role) -> User:
        user = self.get_user(user_id)
        user.role = role.value
        user = self.store.save(user)
        logger.info("Role changed: user_id=%s, role=%s", user_id, role.value)
        return user

    def role_breakdown(self) -> RoleBreakdown:
        users = self.store.find_all()
        roles = [parse_role(u.role) for u in users]
        enabled = sum(1 for u in users if u.enabled)
        return RoleBreakdown(
            total_users=len(users),
            admin_users=roles.count(Role.ADMIN),
            manager_users=roles.count(Role.MANAGER),
            regular_users=roles.count(Role.USER),
            enabled_users=enabled,
            disabled_users=len(users) - enabled,
        )

    def manager_report(self, generated_by: str) -> ManagerReport:
        now = self.clock()
        cutoff = now - timedelta(days=RECENT_USERS_DAYS)
        users = self.store.find_all()
        recent = sum(
            1 for u in users if u.created_at is not None and _as_aware(u.created_at) > cutoff
        )
        return ManagerReport(
            total_users=len(users),
            recent_users=recent,
            active_users=sum(1 for u in users if u.enabled),
            generated_by=generated_by,
            generated_at=now,
        )
