"""Role-restricted reporting endpoints and the composite authorization check."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.v1.deps import get_user_service, require
from app.core.roles import Role
from app.schemas.auth import Principal
from app.schemas.user import ManagerReport, RoleBreakdown
from app.services.endpoint_policies import ADMIN_OR_MANAGER, REPORTS_ACCESS
from app.services.policy import current_authorities
from app.services.users import UserService

router = APIRouter()


class AuthorizationTestResponse(BaseModel):
    message: str
    user: str
    role: Role
    authorities: list[str]
    test_result: str
    checked_at: datetime


@router.get("/admin/stats", response_model=RoleBreakdown)
def get_user_stats(
    _principal: Annotated[Principal, Depends(require(ADMIN_OR_MANAGER))],
    service: Annotated[UserService, Depends(get_user_service)],
) -> RoleBreakdown:
    """Users per role and enabled/disabled counts (admins and managers)."""
    return service.role_breakdown()


@router.get("/manager/reports", response_model=ManagerReport)
def get_manager_reports(
    principal: Annotated[Principal, Depends(require(ADMIN_OR_MANAGER))],
    service: Annotated[UserService, Depends(get_user_service)],
) -> ManagerReport:
    return service.manager_report(generated_by=principal.email)


@router.get("/test/authorization", response_model=AuthorizationTestResponse)
def test_authorization(
    principal: Annotated[Principal, Depends(require(REPORTS_ACCESS))],
) -> AuthorizationTestResponse:
    """Admins, or managers who pass the report-access predicate."""
    return AuthorizationTestResponse(
        message="Authorization test successful!",
        user=principal.email,
        role=principal.role,
        authorities=sorted(current_authorities(principal)),
        test_result="PASSED",
        checked_at=datetime.now(UTC),
    )
