"""Organization router - FastAPI endpoints for organizations, members and invites"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...audit import request_context
from ...auth import get_current_user
from ...database import get_db
from ...models import Organization, OrganizationMember, User
from ...rate_limiter import create_rate_limiter
from .schemas import (
    InviteAccept,
    InviteResponse,
    MemberInvite,
    MemberResponse,
    OrganizationCreate,
    OrganizationDetailResponse,
    OrganizationResponse,
    OrganizationUpdate,
    RoleChange,
    TransferOwnership,
)
from .service import OrganizationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizations", tags=["Organizations"])
invites_router = APIRouter(prefix="/invites", tags=["Organizations"])

rate_limit_invite_accept = create_rate_limiter(
    limit=20, window_seconds=300, key_prefix="invite_accept"
)


def get_organization_service(db: Session = Depends(get_db)) -> OrganizationService:
    """Dependency injection for OrganizationService"""
    return OrganizationService(db)


def _organization_response(organization: Organization, role: Optional[str] = None) -> OrganizationResponse:
    response = OrganizationResponse.model_validate(organization)
    response.role = role
    return response


def _member_response(member: OrganizationMember) -> MemberResponse:
    return MemberResponse(
        id=member.id,
        user_id=member.user_id,
        role=member.role,
        joined_at=member.joined_at,
        email=member.user.email,
        name=member.user.name,
        last_login_at=member.user.last_login_at,
        login_count=member.user.login_count or 0,
    )


# ============================================================================
# ORGANIZATIONS
# ============================================================================


@router.get("")
async def list_organizations(
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    """Organizations the current user belongs to, with the user's role in each"""
    rows = service.list_for_user(current_user)
    return {"organizations": [_organization_response(org, role) for org, role in rows]}


@router.post("", status_code=201)
async def create_organization(
    data: OrganizationCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    organization = service.create_organization(data, current_user, request_context(request))
    return {"organization": _organization_response(organization, "OWNER")}


@router.get("/{organization_id}", response_model=OrganizationDetailResponse)
async def get_organization(
    organization_id: int,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    detail = service.get_detail(organization_id, current_user)
    return OrganizationDetailResponse(
        organization=_organization_response(detail["organization"], detail["currentUserRole"]),
        members=[_member_response(m) for m in detail["members"]],
        pendingInvites=[InviteResponse.model_validate(i) for i in detail["pendingInvites"]],
        currentUserRole=detail["currentUserRole"],
    )


@router.patch("/{organization_id}")
async def update_organization(
    organization_id: int,
    data: OrganizationUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    organization = await service.update_organization(
        organization_id, data, current_user, request_context(request)
    )
    return {"organization": _organization_response(organization)}


@router.delete("/{organization_id}")
async def delete_organization(
    organization_id: int,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.delete_organization(organization_id, current_user)


# ============================================================================
# MEMBERS
# ============================================================================


@router.post("/{organization_id}/members", status_code=201)
async def invite_member(
    organization_id: int,
    data: MemberInvite,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    """Invite a user by email; the invite email is sent best effort"""
    invite = await service.invite_member(organization_id, data, current_user, request_context(request))
    return {"invite": InviteResponse.model_validate(invite)}


@router.delete("/{organization_id}/members")
async def remove_member(
    organization_id: int,
    request: Request,
    userId: int = Query(...),
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return await service.remove_member(organization_id, userId, current_user, request_context(request))


@router.patch("/{organization_id}/members/role")
async def change_member_role(
    organization_id: int,
    data: RoleChange,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return await service.change_role(organization_id, data, current_user, request_context(request))


@router.post("/{organization_id}/transfer-ownership")
async def transfer_ownership(
    organization_id: int,
    data: TransferOwnership,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return await service.transfer_ownership(
        organization_id, data, current_user, request_context(request)
    )


# ============================================================================
# INVITES
# ============================================================================


@router.delete("/{organization_id}/invites/{invite_id}")
async def revoke_invite(
    organization_id: int,
    invite_id: int,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.revoke_invite(organization_id, invite_id, current_user, request_context(request))


@router.post("/{organization_id}/invites/{invite_id}/resend")
async def resend_invite(
    organization_id: int,
    invite_id: int,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    invite = await service.resend_invite(
        organization_id, invite_id, current_user, request_context(request)
    )
    return {"invite": InviteResponse.model_validate(invite)}


@invites_router.get("/accept", dependencies=[Depends(rate_limit_invite_accept)])
async def preview_invite(
    token: str = Query(..., min_length=1),
    service: OrganizationService = Depends(get_organization_service),
):
    """Public invite preview so the accept page can show the organization"""
    return {"invite": service.preview_invite(token)}


@invites_router.post("/accept", dependencies=[Depends(rate_limit_invite_accept)])
async def accept_invite(
    data: InviteAccept,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return await service.accept_invite(data.token, current_user, request_context(request))


# ============================================================================
# AUDIT LOGS & DASHBOARD
# ============================================================================


@router.get("/{organization_id}/audit-logs")
async def list_audit_logs(
    organization_id: int,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    action: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.list_audit_logs(organization_id, current_user, limit, offset, action)


@router.get("/{organization_id}/dashboard")
async def organization_dashboard(
    organization_id: int,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.dashboard(organization_id, current_user)


__all__ = ["router", "invites_router"]
