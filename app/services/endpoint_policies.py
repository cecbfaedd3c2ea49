"""Access requirements for each API endpoint, composed once at import time."""

from app.core.roles import READ_USERS, Role
from app.schemas.auth import Principal
from app.services.policy import (
    And,
    CustomPredicate,
    HasAnyRole,
    HasAuthority,
    HasRole,
    IsAuthenticated,
    IsOwner,
    Or,
    Requirement,
)


def can_access_reports(principal: Principal) -> bool:
    """Managers and admins may read user reports."""
    return principal.role in (Role.MANAGER, Role.ADMIN)


AUTHENTICATED = IsAuthenticated()
ADMIN_ONLY = HasRole(Role.ADMIN)
ADMIN_OR_MANAGER = HasAnyRole(Role.ADMIN, Role.MANAGER)
ANY_ROLE = HasAnyRole(Role.USER, Role.MANAGER, Role.ADMIN)
CAN_READ_USERS = HasAuthority(READ_USERS)

REPORTS_ACCESS = Or(
    HasRole(Role.ADMIN),
    And(HasRole(Role.MANAGER), CustomPredicate(can_access_reports, "can_access_reports")),
)


def admin_or_owner(user_id: int) -> Requirement:
    """Admins, or the user the record belongs to (profile updates)."""
    return Or(ADMIN_ONLY, IsOwner(user_id))


def staff_or_owner(user_id: int) -> Requirement:
    """Admins and managers, or the user the record belongs to (profile reads)."""
    return Or(ADMIN_OR_MANAGER, IsOwner(user_id))
