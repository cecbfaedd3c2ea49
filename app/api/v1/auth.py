"""Login, logout and current-user endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.v1.deps import (
    get_credential_verifier,
    get_current_principal,
    get_session_policy,
    get_user_service,
    http_error,
    require,
)
from app.core.exceptions import UserManagementError
from app.core.security import create_access_token
from app.schemas.auth import LoginRequest, LogoutResponse, MeResponse, Principal, TokenResponse
from app.schemas.user import UserResponse
from app.services.credentials import CredentialVerifier
from app.services.endpoint_policies import AUTHENTICATED
from app.services.policy import current_authorities
from app.services.sessions import SessionPolicy
from app.services.users import UserService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/login", response_model=TokenResponse)
def login(
    body: LoginRequest,
    verifier: Annotated[CredentialVerifier, Depends(get_credential_verifier)],
    sessions: Annotated[SessionPolicy, Depends(get_session_policy)],
) -> TokenResponse:
    """
    Authenticate with email and password; returns a JWT bound to a new session.
    Any earlier session of the same user stops working.
    Include the token in the Authorization header as: Bearer <access_token>
    """
    try:
        user = verifier.authenticate(body.email, body.password)
        principal = Principal.for_user(user)
        record = sessions.login(user)
    except UserManagementError as e:
        raise http_error(e) from e
    token = create_access_token(
        sub=user.id, role=principal.role.value, session_id=record.id
    )
    return TokenResponse(access_token=token, token_type="bearer")


@router.post("/logout", response_model=LogoutResponse)
def logout(
    principal: Annotated[Principal, Depends(get_current_principal)],
    sessions: Annotated[SessionPolicy, Depends(get_session_policy)],
) -> LogoutResponse:
    """Invalidate the caller's own session; the token stops working immediately."""
    try:
        sessions.logout(principal.session_id)
    except UserManagementError as e:
        raise http_error(e) from e
    return LogoutResponse()


@router.get("/me", response_model=MeResponse)
def me(
    principal: Annotated[Principal, Depends(require(AUTHENTICATED))],
    users: Annotated[UserService, Depends(get_user_service)],
) -> MeResponse:
    """Current user with role and authorities."""
    try:
        user = users.get_user(principal.user_id)
    except UserManagementError as e:
        raise http_error(e) from e
    return MeResponse(
        user=UserResponse.model_validate(user),
        role=principal.role,
        authorities=sorted(current_authorities(principal)),
    )
