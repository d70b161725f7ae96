"""Admin router - organization wizard and user administration endpoints"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...audit import request_context
from ...auth import get_current_user, require_super_admin
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from .schemas import (
    AdminOrganizationResponse,
    AdminUserCreate,
    AdminUserResponse,
    AdminUserUpdate,
    WizardRequest,
    WizardResponse,
)
from .service import AdminService

router = APIRouter(prefix="/admin", tags=["Admin"])

rate_limit_wizard = create_rate_limiter(limit=10, window_seconds=300, key_prefix="org_wizard")


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    """Dependency injection for AdminService"""
    return AdminService(db)


def _user_response(user: User, organization_count: int = 0, email_account_count: int = 0) -> AdminUserResponse:
    return AdminUserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        is_super_admin=user.is_super_admin,
        two_factor_enabled=user.two_factor_enabled,
        created_at=user.created_at,
        last_login_at=user.last_login_at,
        organization_count=organization_count,
        email_account_count=email_account_count,
    )


# ============================================================================
# ORGANIZATIONS
# ============================================================================


@router.post(
    "/organizations/wizard",
    response_model=WizardResponse,
    status_code=201,
    dependencies=[Depends(rate_limit_wizard)],
)
async def organization_wizard(
    data: WizardRequest,
    request: Request,
    admin: User = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service),
):
    """
    Create an organization with its users, API key and billing record in one call.

    Welcome and billing emails are best effort and never fail the request.
    """
    return await service.run_wizard(data, admin, request_context(request))


@router.get("/organizations")
async def list_organizations(
    admin: User = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service),
):
    rows = service.list_organizations()
    return {
        "organizations": [
            AdminOrganizationResponse(
                id=org.id,
                name=org.name,
                slug=org.slug,
                plan=org.plan,
                seats=org.seats,
                seats_used=org.seats_used,
                billing_cycle=org.billing_cycle,
                mrr=org.mrr,
                arr=org.arr,
                member_count=count,
                created_at=org.created_at,
            )
            for org, count in rows
        ]
    }


# ============================================================================
# USERS
# ============================================================================


@router.get("/users")
async def list_users(
    current_user: User = Depends(get_current_user),
    service: AdminService = Depends(get_admin_service),
):
    rows = service.list_users(current_user)
    return {"users": [_user_response(u, orgs, accounts) for u, orgs, accounts in rows]}


@router.post("/users", status_code=201)
async def create_user(
    data: AdminUserCreate,
    current_user: User = Depends(get_current_user),
    service: AdminService = Depends(get_admin_service),
):
    user = await service.create_user(data, current_user)
    return {"user": _user_response(user)}


@router.patch("/users/{user_id}")
async def update_user(
    user_id: int,
    data: AdminUserUpdate,
    admin: User = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service),
):
    user = await service.update_user(user_id, data, admin)
    return {"user": _user_response(user)}


@router.post("/users/{user_id}/reset-password")
async def reset_user_password(
    user_id: int,
    admin: User = Depends(require_super_admin),
    service: AdminService = Depends(get_admin_service),
):
    return await service.send_password_reset(user_id, admin)


__all__ = ["router"]
