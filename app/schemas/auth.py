"""Request/response schemas for auth endpoints and the per-request Principal."""

from pydantic import BaseModel, ConfigDict, Field

from app.core.roles import Role, authorities_for, parse_role
from app.schemas.user import UserResponse


class LoginRequest(BaseModel):
    """Credentials for login. The email is the username."""

    email: str = Field(..., min_length=3, max_length=255, description="Account email")
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class TokenResponse(BaseModel):
    """JWT access token returned after successful login."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")


class Principal(BaseModel):
    """
    Authenticated caller for one request: identity, role and derived authorities.

    Built once per request from the session-bound token; never persisted.
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    email: str
    role: Role
    authorities: frozenset[str]
    session_id: str | None = None

    @classmethod
    def for_user(cls, user, session_id: str | None = None) -> "Principal":
        """Resolve role (repairing a missing one to USER) and its authorities."""
        role = parse_role(user.role)
        return cls(
            user_id=user.id,
            email=user.email,
            role=role,
            authorities=authorities_for(role),
            session_id=session_id,
        )


class MeResponse(BaseModel):
    """Response for GET /auth/me."""

    user: UserResponse
    role: Role
    authorities: list[str]


class LogoutResponse(BaseModel):
    message: str = "Logged out"
