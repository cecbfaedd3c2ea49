"""User CRUD, lookups and administrative account toggles."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from app.api.v1.deps import (
    check,
    get_credential_verifier,
    get_current_principal,
    get_session_policy,
    get_user_service,
    http_error,
    require,
)
from app.core.exceptions import UserManagementError
from app.core.roles import Role, parse_role
from app.schemas.auth import Principal
from app.schemas.user import (
    EnabledUpdate,
    LockUpdate,
    MessageResponse,
    PasswordChange,
    RoleUpdate,
    UserCreate,
    UserResponse,
    UsersListResponse,
    UserStats,
    UserUpdate,
)
from app.services.credentials import CredentialVerifier
from app.services.endpoint_policies import (
    ADMIN_ONLY,
    ANY_ROLE,
    AUTHENTICATED,
    CAN_READ_USERS,
    admin_or_owner,
    staff_or_owner,
)
from app.services.sessions import SessionPolicy
from app.services.users import UserService

router = APIRouter()

Users = Annotated[UserService, Depends(get_user_service)]


def _list(users: list) -> UsersListResponse:
    items = [UserResponse.model_validate(u) for u in users]
    return UsersListResponse(users=items, count=len(items))


@router.get("", response_model=UsersListResponse)
def list_users(
    _principal: Annotated[Principal, Depends(require(CAN_READ_USERS))],
    service: Users,
) -> UsersListResponse:
    return _list(service.list_users())


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreate,
    _admin: Annotated[Principal, Depends(require(ADMIN_ONLY))],
    service: Users,
) -> UserResponse:
    """Create a user (admin only). Role defaults to USER; 400 if the email is taken."""
    try:
        return UserResponse.model_validate(service.create_user(body))
    except UserManagementError as e:
        raise http_error(e) from e


@router.get("/search", response_model=UsersListResponse)
def search_users(
    _principal: Annotated[Principal, Depends(require(CAN_READ_USERS))],
    service: Users,
    name: str = Query(..., min_length=1, max_length=200),
) -> UsersListResponse:
    return _list(service.search_users(name))


@router.get("/email/{email}", response_model=UserResponse)
def get_user_by_email(
    email: str,
    _principal: Annotated[Principal, Depends(require(CAN_READ_USERS))],
    service: Users,
) -> UserResponse:
    try:
        return UserResponse.model_validate(service.get_user_by_email(email))
    except UserManagementError as e:
        raise http_error(e) from e


@router.get("/domain/{domain}", response_model=UsersListResponse)
def get_users_by_domain(
    domain: str,
    _principal: Annotated[Principal, Depends(require(CAN_READ_USERS))],
    service: Users,
) -> UsersListResponse:
    return _list(service.users_by_domain(domain))


@router.get("/role/{role}", response_model=UsersListResponse)
def get_users_by_role(
    role: Role,
    _principal: Annotated[Principal, Depends(require(CAN_READ_USERS))],
    service: Users,
) -> UsersListResponse:
    return _list(service.users_by_role(role))


@router.get("/stats", response_model=UserStats)
def get_user_stats(
    _principal: Annotated[Principal, Depends(require(ANY_ROLE))],
    service: Users,
) -> UserStats:
    return UserStats(total_users=service.count())


@router.get("/exists", response_model=bool)
def email_exists(
    _principal: Annotated[Principal, Depends(require(AUTHENTICATED))],
    service: Users,
    email: str = Query(..., min_length=1, max_length=255),
) -> bool:
    return service.email_exists(email)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Users,
) -> UserResponse:
    """Admins and managers may view any profile; users only their own."""
    check(principal, staff_or_owner(user_id))
    try:
        return UserResponse.model_validate(service.get_user(user_id))
    except UserManagementError as e:
        raise http_error(e) from e


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    body: UserUpdate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Users,
) -> UserResponse:
    """Admins may update any profile; users only their own and never change their role."""
    check(principal, admin_or_owner(user_id))
    try:
        current_role = parse_role(service.get_user(user_id).role)
        if body.role is not None and body.role is not current_role:
            check(principal, ADMIN_ONLY)
        return UserResponse.model_validate(service.update_user(user_id, body))
    except UserManagementError as e:
        raise http_error(e) from e


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    _admin: Annotated[Principal, Depends(require(ADMIN_ONLY))],
    service: Users,
) -> MessageResponse:
    try:
        service.delete_user(user_id)
    except UserManagementError as e:
        raise http_error(e) from e
    return MessageResponse(message="User deleted successfully")


@router.put("/{user_id}/enabled", response_model=UserResponse)
def set_enabled(
    user_id: int,
    body: EnabledUpdate,
    _admin: Annotated[Principal, Depends(require(ADMIN_ONLY))],
    service: Users,
    sessions: Annotated[SessionPolicy, Depends(get_session_policy)],
) -> UserResponse:
    """Enable or disable an account. Disabling ends the user's session."""
    try:
        if not body.enabled:
            # Committed together with the flag by the save below.
            sessions.invalidate_all_for(user_id, commit=False)
        user = service.set_enabled(user_id, body.enabled)
    except UserManagementError as e:
        raise http_error(e) from e
    return UserResponse.model_validate(user)


@router.put("/{user_id}/lock", response_model=UserResponse)
def set_locked(
    user_id: int,
    body: LockUpdate,
    _admin: Annotated[Principal, Depends(require(ADMIN_ONLY))],
    service: Users,
    sessions: Annotated[SessionPolicy, Depends(get_session_policy)],
) -> UserResponse:
    """Lock or unlock an account. Locking ends the user's session."""
    try:
        if body.locked:
            sessions.invalidate_all_for(user_id, commit=False)
        user = service.set_locked(user_id, body.locked)
    except UserManagementError as e:
        raise http_error(e) from e
    return UserResponse.model_validate(user)


@router.post("/{user_id}/unlock", response_model=UserResponse)
def unlock_user(
    user_id: int,
    _admin: Annotated[Principal, Depends(require(ADMIN_ONLY))],
    verifier: Annotated[CredentialVerifier, Depends(get_credential_verifier)],
) -> UserResponse:
    """Lift a lockout: clears the lock flag and the failed-attempt counter."""
    try:
        return UserResponse.model_validate(verifier.unlock(user_id))
    except UserManagementError as e:
        raise http_error(e) from e


@router.put("/{user_id}/role", response_model=UserResponse)
def change_role(
    user_id: int,
    body: RoleUpdate,
    _admin: Annotated[Principal, Depends(require(ADMIN_ONLY))],
    service: Users,
) -> UserResponse:
    try:
        return UserResponse.model_validate(service.change_role(user_id, body.role))
    except UserManagementError as e:
        raise http_error(e) from e


@router.put("/{user_id}/password", response_model=MessageResponse)
def change_password(
    user_id: int,
    body: PasswordChange,
    principal: Annotated[Principal, Depends(get_current_principal)],
    service: Users,
) -> MessageResponse:
    check(principal, admin_or_owner(user_id))
    try:
        service.change_password(user_id, body.password)
    except UserManagementError as e:
        raise http_error(e) from e
    return MessageResponse(message="Password changed successfully")
