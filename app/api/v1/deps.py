"""
FastAPI dependencies: request-scoped services, the current Principal and
policy enforcement.

Services get the request's DB session; the password hasher and the event
publisher are process-wide singletons.
"""

from collections.abc import Callable
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.database import get_db
from app.core.exceptions import UserManagementError
from app.core.security import BcryptPasswordHasher, PasswordHasher, decode_access_token
from app.schemas.auth import Principal
from app.services.credentials import CredentialVerifier
from app.services.events import (
    EventPublisher,
    EventReader,
    LoggingPublisher,
    RedisStreamPublisher,
    UserEventEmitter,
)
from app.services.policy import Requirement, enforce
from app.services.sessions import SessionPolicy
from app.services.user_store import SqlAlchemyUserStore
from app.services.users import UserService

security = HTTPBearer(auto_error=False)

_hasher: PasswordHasher | None = None
_publisher: EventPublisher | None = None


def http_error(e: UserManagementError) -> HTTPException:
    """Map a domain error to the HTTPException the router raises."""
    headers = {"WWW-Authenticate": "Bearer"} if e.status_code == 401 else None
    return HTTPException(status_code=e.status_code, detail=e.message, headers=headers)


def get_password_hasher() -> PasswordHasher:
    global _hasher
    if _hasher is None:
        _hasher = BcryptPasswordHasher()
    return _hasher


def get_event_publisher() -> EventPublisher:
    """Redis stream publisher when EVENTS_ENABLED, otherwise a log-only publisher."""
    global _publisher
    if _publisher is None:
        settings = get_settings()
        if settings.EVENTS_ENABLED:
            _publisher = RedisStreamPublisher.from_settings(settings)
        else:
            _publisher = LoggingPublisher()
    return _publisher


def close_event_publisher() -> None:
    global _publisher
    if isinstance(_publisher, RedisStreamPublisher):
        _publisher.close()
    _publisher = None


def get_event_emitter(
    publisher: Annotated[EventPublisher, Depends(get_event_publisher)],
) -> UserEventEmitter:
    return UserEventEmitter.from_settings(publisher, get_settings())


def get_event_reader(
    publisher: Annotated[EventPublisher, Depends(get_event_publisher)],
) -> EventReader:
    if not isinstance(publisher, EventReader):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Event channel cannot be read",
        )
    return publisher


def get_user_store(db: Annotated[Session, Depends(get_db)]) -> SqlAlchemyUserStore:
    return SqlAlchemyUserStore(db)


def get_user_service(
    store: Annotated[SqlAlchemyUserStore, Depends(get_user_store)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
    events: Annotated[UserEventEmitter, Depends(get_event_emitter)],
) -> UserService:
    return UserService(store, hasher, events)


def get_session_policy(db: Annotated[Session, Depends(get_db)]) -> SessionPolicy:
    return SessionPolicy(db)


def get_credential_verifier(
    store: Annotated[SqlAlchemyUserStore, Depends(get_user_store)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
    sessions: Annotated[SessionPolicy, Depends(get_session_policy)],
) -> CredentialVerifier:
    """A lock caused by failed logins also ends the user's current session."""
    return CredentialVerifier(
        store,
        hasher,
        lockout_threshold=get_settings().LOCKOUT_THRESHOLD,
        on_lock=sessions.invalidate_all_for,
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_optional_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    store: Annotated[SqlAlchemyUserStore, Depends(get_user_store)],
    sessions: Annotated[SessionPolicy, Depends(get_session_policy)],
) -> Principal | None:
    """
    Resolve the caller from a Bearer JWT bound to a login session.

    No credentials -> None. A token that is invalid or expired, whose
    session was logged out or superseded, or whose account has since been
    locked or disabled -> 401.
    """
    if credentials is None:
        return None
    try:
        payload = decode_access_token(credentials.credentials)
    except jwt.PyJWTError:
        raise _unauthorized("Invalid or expired token")
    sub = payload.get("sub")
    session_id = payload.get("sid")
    if not sub or not session_id:
        raise _unauthorized("Invalid token payload")
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token payload")

    record = sessions.get(session_id)
    if record is None or not record.valid or record.user_id != user_id:
        raise _unauthorized("Session is no longer valid")
    user = store.find_by_id(user_id)
    if user is None:
        raise _unauthorized("User not found")
    if not user.enabled:
        raise _unauthorized("Account is disabled.")
    if not user.account_non_locked:
        raise _unauthorized("Account is locked.")
    try:
        return Principal.for_user(user, session_id=session_id)
    except UserManagementError as e:
        raise http_error(e) from e


def get_current_principal(
    principal: Annotated[Principal | None, Depends(get_optional_principal)],
) -> Principal:
    """Dependency: require an authenticated caller. Raises 401 otherwise."""
    if principal is None:
        raise _unauthorized("Not authenticated")
    return principal


def check(principal: Principal | None, requirement: Requirement) -> None:
    """Enforce a requirement inside a route (for requirements bound to path values)."""
    try:
        enforce(principal, requirement)
    except UserManagementError as e:
        raise http_error(e) from e


def require(requirement: Requirement) -> Callable[..., Principal]:
    """
    Build a dependency enforcing a fixed requirement and returning the Principal.

    Usage: Annotated[Principal, Depends(require(ADMIN_ONLY))]
    """

    def dependency(
        principal: Annotated[Principal | None, Depends(get_optional_principal)],
    ) -> Principal:
        check(principal, requirement)
        if principal is None:
            # Only reachable for requirements that allow anonymous callers.
            raise _unauthorized("Not authenticated")
        return principal

    return dependency
