"""Request/response schemas for user management endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.core.roles import Role, parse_role
from app.core.security import EMAIL_MAX_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN


def _validate_email(value: str) -> str:
    """Minimal shape check; the address is stored exactly as given (case-sensitive)."""
    v = value.strip()
    local, sep, domain = v.partition("@")
    if not sep or not local or "." not in domain or " " in v:
        raise ValueError("email must be a valid address (e.g. alice@example.com)")
    return v


class UserCreate(BaseModel):
    """Payload for creating a user. Role defaults to USER when omitted."""

    email: str = Field(..., max_length=EMAIL_MAX_LEN)
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str | None = Field(default=None, max_length=32)
    role: Role | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _validate_email(v)


class UserUpdate(BaseModel):
    """Profile update. Password and role are only changed when provided."""

    email: str = Field(..., max_length=EMAIL_MAX_LEN)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str | None = Field(default=None, max_length=32)
    password: str | None = Field(
        default=None, min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN
    )
    role: Role | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _validate_email(v)


class UserResponse(BaseModel):
    """User as returned by the API (never includes the password digest)."""

    id: int
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    role: Role
    enabled: bool
    account_non_locked: bool
    failed_login_attempts: int
    last_login: datetime | None = None
    created_at: datetime | None = None

    @field_validator("role", mode="before")
    @classmethod
    def validate_role(cls, v: object) -> Role:
        return parse_role(v)

    class Config:
        from_attributes = True


class UsersListResponse(BaseModel):
    users: list[UserResponse]
    count: int


class UserStats(BaseModel):
    total_users: int


class RoleBreakdown(BaseModel):
    """Statistics for GET /secure/admin/stats."""

    total_users: int
    admin_users: int
    manager_users: int
    regular_users: int
    enabled_users: int
    disabled_users: int


class ManagerReport(BaseModel):
    """Report for GET /secure/manager/reports."""

    total_users: int
    recent_users: int = Field(description="Users created in the last 30 days")
    active_users: int
    generated_by: str
    generated_at: datetime


class EnabledUpdate(BaseModel):
    enabled: bool


class LockUpdate(BaseModel):
    locked: bool


class RoleUpdate(BaseModel):
    role: Role


class PasswordChange(BaseModel):
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)


class MessageResponse(BaseModel):
    message: str
