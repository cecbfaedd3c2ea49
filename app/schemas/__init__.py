"""Pydantic request/response schemas."""

from app.schemas.auth import (
    LoginRequest,
    LogoutResponse,
    MeResponse,
    Principal,
    TokenResponse,
)
from app.schemas.events import (
    ConsumedEventsResponse,
    CustomMessageRequest,
    EventSentResponse,
    NotificationRequest,
    UserEventRequest,
)
from app.schemas.health import HealthResponse
from app.schemas.user import (
    EnabledUpdate,
    LockUpdate,
    ManagerReport,
    MessageResponse,
    PasswordChange,
    RoleBreakdown,
    RoleUpdate,
    UserCreate,
    UserResponse,
    UsersListResponse,
    UserStats,
    UserUpdate,
)

__all__ = [
    "ConsumedEventsResponse",
    "CustomMessageRequest",
    "EnabledUpdate",
    "EventSentResponse",
    "HealthResponse",
    "LockUpdate",
    "LoginRequest",
    "LogoutResponse",
    "ManagerReport",
    "MeResponse",
    "MessageResponse",
    "NotificationRequest",
    "PasswordChange",
    "Principal",
    "RoleBreakdown",
    "RoleUpdate",
    "TokenResponse",
    "UserCreate",
    "UserEventRequest",
    "UserResponse",
    "UsersListResponse",
    "UserStats",
    "UserUpdate",
]
