"""
Authorization evaluator: requirement combinators and authorize().

Requirements are immutable values composed when endpoints are defined.
authorize() is a pure function of (principal, requirement). A DENY is a
Decision value; a requirement that cannot be evaluated raises
PolicyEvaluationError instead of denying.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from app.core.exceptions import ForbiddenError, PolicyEvaluationError, UnauthorizedError
from app.core.roles import Role
from app.schemas.auth import Principal


class Decision(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


class Requirement:
    """Base of the closed set of requirement shapes below."""


@dataclass(frozen=True)
class IsAuthenticated(Requirement):
    pass


@dataclass(frozen=True)
class HasRole(Requirement):
    role: Role


@dataclass(frozen=True)
class HasAnyRole(Requirement):
    roles: frozenset[Role]

    def __init__(self, *roles: Role) -> None:
        object.__setattr__(self, "roles", frozenset(roles))


@dataclass(frozen=True)
class HasAuthority(Requirement):
    authority: str


@dataclass(frozen=True)
class IsOwner(Requirement):
    """Principal's user id equals the id of the user record being accessed."""

    resource_user_id: int


@dataclass(frozen=True)
class And(Requirement):
    left: Requirement
    right: Requirement


@dataclass(frozen=True)
class Or(Requirement):
    left: Requirement
    right: Requirement


@dataclass(frozen=True)
class CustomPredicate(Requirement):
    fn: Callable[[Principal], bool] = field(compare=False)
    name: str = ""


def _evaluate(principal: Principal | None, requirement: Requirement) -> bool:
    if isinstance(requirement, IsAuthenticated):
        return principal is not None
    if isinstance(requirement, Or):
        return _evaluate(principal, requirement.left) or _evaluate(
            principal, requirement.right
        )
    if isinstance(requirement, And):
        return _evaluate(principal, requirement.left) and _evaluate(
            principal, requirement.right
        )
    if not isinstance(
        requirement, (HasRole, HasAnyRole, HasAuthority, IsOwner, CustomPredicate)
    ):
        raise PolicyEvaluationError(
            f"Unsupported requirement type: {type(requirement).__name__}"
        )
    if principal is None:
        return False
    if isinstance(requirement, HasRole):
        return principal.role == requirement.role
    if isinstance(requirement, HasAnyRole):
        return principal.role in requirement.roles
    if isinstance(requirement, HasAuthority):
        return requirement.authority in principal.authorities
    if isinstance(requirement, IsOwner):
        return principal.user_id == requirement.resource_user_id

    name = requirement.name or getattr(requirement.fn, "__name__", "predicate")
    try:
        result = requirement.fn(principal)
    except Exception as e:
        raise PolicyEvaluationError(f"Predicate {name} failed: {e}") from e
    if not isinstance(result, bool):
        raise PolicyEvaluationError(
            f"Predicate {name} returned {type(result).__name__}, expected bool"
        )
    return result


def authorize(principal: Principal | None, requirement: Requirement) -> Decision:
    """Return ALLOW or DENY for this principal. Never raises for a plain denial."""
    return Decision.ALLOW if _evaluate(principal, requirement) else Decision.DENY


def enforce(principal: Principal | None, requirement: Requirement) -> None:
    """
    Raise when authorize() denies: UnauthorizedError without a principal,
    ForbiddenError otherwise. For the HTTP layer only.
    """
    if authorize(principal, requirement) is Decision.ALLOW:
        return
    if principal is None:
        raise UnauthorizedError("Not authenticated")
    raise ForbiddenError("Access denied")


def current_authorities(principal: Principal) -> frozenset[str]:
    """Authority tokens carried by the principal (derived from its role at login)."""
    return principal.authorities
