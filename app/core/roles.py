"""Roles and the authority tokens derived from them."""

from enum import Enum

from app.core.exceptions import IntegrityViolationError

# Authority tokens (fine-grained capabilities derived from a role; never stored).
READ_USERS = "READ_USERS"
WRITE_USERS = "WRITE_USERS"
DELETE_USERS = "DELETE_USERS"
USER_ACCESS = "USER_ACCESS"
MANAGER_ACCESS = "MANAGER_ACCESS"
ADMIN_ACCESS = "ADMIN_ACCESS"


class Role(str, Enum):
    """Exactly one role per user. Stored by name in users.role."""

    USER = "USER"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"

    def __str__(self) -> str:
        return self.value

    @property
    def authority(self) -> str:
        """Role token with the ROLE_ prefix, e.g. ROLE_ADMIN."""
        return f"ROLE_{self.value}"

    @property
    def display_name(self) -> str:
        return _DISPLAY[self][0]

    @property
    def description(self) -> str:
        return _DISPLAY[self][1]


_DISPLAY: dict[Role, tuple[str, str]] = {
    Role.USER: ("User", "Basic user with limited access"),
    Role.MANAGER: ("Manager", "Manager with user management capabilities"),
    Role.ADMIN: ("Administrator", "Administrator with full system access"),
}

_ROLE_AUTHORITIES: dict[Role, frozenset[str]] = {
    Role.USER: frozenset({Role.USER.authority, READ_USERS, USER_ACCESS}),
    Role.MANAGER: frozenset(
        {Role.MANAGER.authority, READ_USERS, WRITE_USERS, MANAGER_ACCESS}
    ),
    Role.ADMIN: frozenset(
        {Role.ADMIN.authority, READ_USERS, WRITE_USERS, DELETE_USERS, ADMIN_ACCESS}
    ),
}


def authorities_for(role: Role) -> frozenset[str]:
    """Return the fixed authority set for a role."""
    return _ROLE_AUTHORITIES[role]


def parse_role(value: str | Role | None) -> Role:
    """
    Convert a stored role value to a Role.

    A missing role is repaired to USER. Any unrecognized value raises
    IntegrityViolationError; it is never coerced.
    """
    if value is None:
        return Role.USER
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        raise IntegrityViolationError(f"Unrecognized role value: {value!r}") from None
