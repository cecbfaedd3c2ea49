"""ORM model for user accounts, including their login security state."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from app.core.roles import Role
from app.models.base import Base


class User(Base):
    """
    User account for authentication and role-based access control.

    role: stored role name, one of USER, MANAGER, ADMIN.
    account_non_locked / failed_login_attempts: lockout state owned by the
    credential verifier. created_at is set by the database and never updated.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    # Nullable only until the user service hashes the initial password.
    password_hash = Column(String(255), nullable=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    phone = Column(String(32), nullable=True)
    role = Column(String(32), nullable=False, default=Role.USER.value, index=True)
    enabled = Column(Boolean, nullable=False, default=True)
    account_non_locked = Column(Boolean, nullable=False, default=True)
    failed_login_attempts = Column(Integer, nullable=False, default=0)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
