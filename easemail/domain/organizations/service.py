"""Organization service - Business logic for organizations, members and invites"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ... import email_service
from ...audit import create_audit_log, get_action_icon, get_action_label
from ...config import INVITE_EXPIRY_DAYS
from ...models import (
    PLAN_FREE,
    ROLE_ADMIN,
    ROLE_MEMBER,
    ROLE_OWNER,
    Organization,
    OrganizationInvite,
    User,
)
from ..webhooks.delivery import dispatch_event
from .access import MANAGER_ROLES, require_org_role
from .repository import (
    AuditLogRepository,
    InviteRepository,
    MemberRepository,
    OrganizationRepository,
    get_user_by_id,
    unique_slug,
)
from .schemas import MemberInvite, OrganizationCreate, OrganizationUpdate, RoleChange, TransferOwnership

logger = logging.getLogger(__name__)


def display_name(user: Optional[User]) -> str:
    if not user:
        return "Someone"
    return user.name or user.email.split("@")[0]


class OrganizationService:
    """Service layer for organization business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrganizationRepository()
        self.members = MemberRepository()
        self.invites = InviteRepository()
        self.audit_logs = AuditLogRepository()

    def _get_or_404(self, organization_id: int) -> Organization:
        organization = self.repo.get(self.db, organization_id)
        if not organization:
            raise HTTPException(status_code=404, detail="Organization not found")
        return organization

    def _audit(self, organization_id, user, action, details=None, context=None):
        create_audit_log(self.db, organization_id, user.id, action, details, **(context or {}))

    # ------------------------------------------------------------------
    # Organizations
    # ------------------------------------------------------------------

    def list_for_user(self, user: User) -> list[tuple[Organization, str]]:
        return [(m.organization, m.role) for m in self.repo.list_memberships(self.db, user.id)]

    def create_organization(
        self, data: OrganizationCreate, user: User, context: Optional[dict] = None
    ) -> Organization:
        try:
            organization = self.repo.create(
                self.db,
                commit=False,
                name=data.name,
                slug=unique_slug(data.name),
                plan=PLAN_FREE,
                seats=1,
                seats_used=1,
                billing_email=user.email,
            )
            self.members.add(self.db, organization.id, user.id, ROLE_OWNER, added_by=user.id, commit=False)
            self.db.commit()
            self.db.refresh(organization)
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create organization for user {user.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create organization") from e

        logger.info(f"🏢 Organization {organization.id} created by user {user.id}")
        self._audit(organization.id, user, "organization_created", {"name": organization.name}, context)
        return organization

    def get_detail(self, organization_id: int, user: User) -> dict:
        """Organization with members and pending invites; OWNER, ADMIN or super admin only"""
        membership = require_org_role(self.db, organization_id, user, allow_super_admin=True)
        organization = self._get_or_404(organization_id)

        if user.is_super_admin:
            current_role = "SUPER_ADMIN"
        else:
            current_role = membership.role

        return {
            "organization": organization,
            "members": self.members.list_members(self.db, organization_id),
            "pendingInvites": self.invites.list_pending(self.db, organization_id, datetime.utcnow()),
            "currentUserRole": current_role,
        }

    async def update_organization(
        self, organization_id: int, data: OrganizationUpdate, user: User, context: Optional[dict] = None
    ) -> Organization:
        membership = require_org_role(self.db, organization_id, user, allow_super_admin=True)
        organization = self._get_or_404(organization_id)

        updates = {}
        if data.name is not None:
            updates["name"] = data.name
        if data.seats is not None:
            is_owner = membership is not None and membership.role == ROLE_OWNER
            if not (is_owner or user.is_super_admin):
                raise HTTPException(status_code=403, detail="Only the owner can change seats")
            if data.seats < organization.seats_used:
                raise HTTPException(
                    status_code=400,
                    detail=f"Seats cannot be lower than seats in use ({organization.seats_used})",
                )
            updates["seats"] = data.seats

        if not updates:
            return organization

        previous = {key: getattr(organization, key) for key in updates}
        organization = self.repo.update(self.db, organization, **updates)
        self._audit(
            organization_id, user, "organization_updated", {"from": previous, "to": updates}, context
        )
        await dispatch_event(
            self.db, organization_id, "organization.updated", {"organization_id": organization_id, **updates}
        )
        return organization

    def delete_organization(self, organization_id: int, user: User) -> dict:
        membership = require_org_role(
            self.db, organization_id, user, roles=(ROLE_OWNER,), allow_super_admin=True
        )
        organization = self._get_or_404(organization_id)
        deleted_as = "owner" if membership and membership.role == ROLE_OWNER else "super admin"
        self.repo.delete(self.db, organization)
        logger.info(f"🗑️ Organization {organization_id} deleted by user {user.id} ({deleted_as})")
        # The audit trail is removed with the organization, so record the deletion globally
        create_audit_log(
            self.db, None, user.id, "organization_deleted", {"organization_id": organization_id}
        )
        return {"success": True}

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    async def invite_member(
        self, organization_id: int, data: MemberInvite, user: User, context: Optional[dict] = None
    ) -> OrganizationInvite:
        require_org_role(self.db, organization_id, user)
        organization = self._get_or_404(organization_id)

        if data.role == ROLE_OWNER:
            raise HTTPException(
                status_code=400, detail="Invite as ADMIN or MEMBER, then transfer ownership"
            )
        if organization.seats_used >= organization.seats:
            raise HTTPException(status_code=400, detail="No available seats")

        existing_user = self.db.query(User).filter(User.email == data.email).first()
        if existing_user and self.members.get(self.db, organization_id, existing_user.id):
            raise HTTPException(status_code=400, detail="User is already a member")

        now = datetime.utcnow()
        if self.invites.get_pending_for_email(self.db, organization_id, data.email, now):
            raise HTTPException(status_code=400, detail="An invitation is already pending for this email")

        invite = self.invites.create(
            self.db,
            organization_id,
            data.email,
            data.role,
            invited_by=user.id,
            expires_at=now + timedelta(days=INVITE_EXPIRY_DAYS),
        )
        logger.info(f"📧 Invite {invite.id} created for {data.email} to organization {organization_id}")

        await email_service.send_safely(
            email_service.send_organization_invite_email(
                to=invite.email,
                invitee_name=display_name(existing_user) if existing_user else "",
                organization_name=organization.name,
                inviter_name=display_name(user),
                role=invite.role,
                token=invite.token,
            ),
            "organization invite email",
        )
        self._audit(
            organization_id, user, "invite_sent", {"email": invite.email, "role": invite.role}, context
        )
        await dispatch_event(
            self.db, organization_id, "invite.sent", {"email": invite.email, "role": invite.role}
        )
        return invite

    async def remove_member(
        self, organization_id: int, member_user_id: int, user: User, context: Optional[dict] = None
    ) -> dict:
        require_org_role(self.db, organization_id, user)
        organization = self._get_or_404(organization_id)

        member = self.members.get(self.db, organization_id, member_user_id)
        if not member:
            raise HTTPException(status_code=404, detail="Member not found")
        if member.role == ROLE_OWNER and self.members.count_owners(self.db, organization_id) <= 1:
            raise HTTPException(status_code=400, detail="Cannot remove the last owner")

        removed_user = member.user
        self.db.delete(member)
        organization.seats_used = max(0, (organization.seats_used or 0) - 1)
        self.db.commit()
        logger.info(f"👤 User {member_user_id} removed from organization {organization_id}")

        await email_service.send_safely(
            email_service.send_member_removal_email(
                to=removed_user.email,
                user_name=display_name(removed_user),
                organization_name=organization.name,
                removed_by=display_name(user),
            ),
            "member removal email",
        )
        self._audit(
            organization_id,
            user,
            "member_removed",
            {"user_id": member_user_id, "email": removed_user.email},
            context,
        )
        await dispatch_event(
            self.db,
            organization_id,
            "member.removed",
            {"user_id": member_user_id, "email": removed_user.email},
        )
        return {"success": True}

    async def change_role(
        self, organization_id: int, data: RoleChange, user: User, context: Optional[dict] = None
    ) -> dict:
        require_org_role(self.db, organization_id, user)
        organization = self._get_or_404(organization_id)

        member = self.members.get(self.db, organization_id, data.userId)
        if not member:
            raise HTTPException(status_code=404, detail="Member not found")
        if member.role == ROLE_OWNER or data.role == ROLE_OWNER:
            raise HTTPException(
                status_code=400, detail="Cannot change owner role. Use transfer ownership instead"
            )

        old_role = member.role
        if old_role == data.role:
            return {"success": True, "role": old_role}

        member.role = data.role
        self.db.commit()
        logger.info(f"🔄 User {data.userId} role {old_role} -> {data.role} in organization {organization_id}")

        await email_service.send_safely(
            email_service.send_role_change_email(
                to=member.user.email,
                user_name=display_name(member.user),
                organization_name=organization.name,
                old_role=old_role,
                new_role=data.role,
                changed_by=display_name(user),
            ),
            "role change email",
        )
        details = {"user_id": data.userId, "old_role": old_role, "new_role": data.role}
        self._audit(organization_id, user, "member_role_changed", details, context)
        await dispatch_event(self.db, organization_id, "member.role_changed", details)
        return {"success": True, "role": data.role}

    async def transfer_ownership(
        self, organization_id: int, data: TransferOwnership, user: User, context: Optional[dict] = None
    ) -> dict:
        current = require_org_role(self.db, organization_id, user, roles=(ROLE_OWNER,))
        organization = self._get_or_404(organization_id)

        if data.newOwnerId == user.id:
            raise HTTPException(status_code=400, detail="You are already the owner")
        target = self.members.get(self.db, organization_id, data.newOwnerId)
        if not target:
            raise HTTPException(
                status_code=404, detail="New owner must be a member of the organization"
            )
        if target.role == ROLE_OWNER:
            raise HTTPException(status_code=400, detail="User is already an owner")

        previous_role = target.role
        try:
            current.role = ROLE_ADMIN
            target.role = ROLE_OWNER
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Ownership transfer failed for organization {organization_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to transfer ownership") from e

        logger.info(f"👑 Organization {organization_id} ownership: {user.id} -> {data.newOwnerId}")

        new_owner = target.user
        await email_service.send_safely(
            email_service.send_ownership_transfer_emails(
                new_owner_email=new_owner.email,
                new_owner_name=display_name(new_owner),
                previous_owner_email=user.email,
                previous_owner_name=display_name(user),
                organization_name=organization.name,
            ),
            "ownership transfer emails",
        )
        self._audit(
            organization_id,
            user,
            "transfer_ownership",
            {"old_owner_id": user.id, "new_owner_id": new_owner.id},
            context,
        )
        await dispatch_event(
            self.db,
            organization_id,
            "member.role_changed",
            {"user_id": new_owner.id, "old_role": previous_role, "new_role": ROLE_OWNER},
        )
        return {"success": True}

    # ------------------------------------------------------------------
    # Invites
    # ------------------------------------------------------------------

    def revoke_invite(
        self, organization_id: int, invite_id: int, user: User, context: Optional[dict] = None
    ) -> dict:
        require_org_role(self.db, organization_id, user)
        invite = self.invites.get(self.db, organization_id, invite_id)
        if not invite or invite.accepted_at:
            raise HTTPException(status_code=404, detail="Invite not found")

        email = invite.email
        self.db.delete(invite)
        self.db.commit()
        self._audit(organization_id, user, "invite_revoked", {"email": email}, context)
        return {"success": True}

    async def resend_invite(
        self, organization_id: int, invite_id: int, user: User, context: Optional[dict] = None
    ) -> OrganizationInvite:
        require_org_role(self.db, organization_id, user)
        organization = self._get_or_404(organization_id)
        invite = self.invites.get(self.db, organization_id, invite_id)
        if not invite or invite.accepted_at:
            raise HTTPException(status_code=404, detail="Invite not found")

        invite.token = self.invites.new_token()
        invite.expires_at = datetime.utcnow() + timedelta(days=INVITE_EXPIRY_DAYS)
        self.db.commit()
        self.db.refresh(invite)

        await email_service.send_safely(
            email_service.send_organization_invite_email(
                to=invite.email,
                invitee_name="",
                organization_name=organization.name,
                inviter_name=display_name(user),
                role=invite.role,
                token=invite.token,
            ),
            "organization invite email",
        )
        self._audit(organization_id, user, "invite_resent", {"email": invite.email}, context)
        return invite

    def _open_invite_or_error(self, token: str) -> OrganizationInvite:
        invite = self.invites.get_open_by_token(self.db, token)
        if not invite:
            raise HTTPException(status_code=404, detail="Invalid or already used invitation")
        if invite.expires_at < datetime.utcnow():
            raise HTTPException(status_code=400, detail="Invitation has expired")
        return invite

    def preview_invite(self, token: str) -> dict:
        invite = self._open_invite_or_error(token)
        inviter = get_user_by_id(self.db, invite.invited_by) if invite.invited_by else None
        return {
            "email": invite.email,
            "role": invite.role,
            "expires_at": invite.expires_at,
            "organization": {"id": invite.organization.id, "name": invite.organization.name},
            "invited_by": display_name(inviter) if inviter else None,
        }

    async def accept_invite(self, token: str, user: User, context: Optional[dict] = None) -> dict:
        invite = self._open_invite_or_error(token)
        organization = invite.organization

        if invite.email.lower() != (user.email or "").lower():
            logger.warning(f"⚠️ User {user.id} tried to accept invite {invite.id} for {invite.email}")
            raise HTTPException(status_code=403, detail="This invitation was sent to a different email")

        if organization.seats_used >= organization.seats:
            raise HTTPException(status_code=400, detail="No available seats")

        now = datetime.utcnow()
        if self.members.get(self.db, organization.id, user.id):
            invite.accepted_at = now
            self.db.commit()
            return {"success": True, "organization_id": organization.id, "alreadyMember": True}

        self.members.add(
            self.db, organization.id, user.id, invite.role, added_by=invite.invited_by, commit=False
        )
        organization.seats_used = (organization.seats_used or 0) + 1
        invite.accepted_at = now
        self.db.commit()
        logger.info(f"✅ User {user.id} joined organization {organization.id} as {invite.role}")

        details = {"user_id": user.id, "email": user.email, "role": invite.role}
        self._audit(organization.id, user, "invite_accepted", details, context)
        await dispatch_event(self.db, organization.id, "invite.accepted", details)
        await dispatch_event(self.db, organization.id, "member.added", details)
        return {"success": True, "organization_id": organization.id, "alreadyMember": False}

    # ------------------------------------------------------------------
    # Audit trail and dashboard
    # ------------------------------------------------------------------

    def list_audit_logs(
        self,
        organization_id: int,
        user: User,
        limit: int = 50,
        offset: int = 0,
        action: Optional[str] = None,
    ) -> dict:
        require_org_role(self.db, organization_id, user)
        entries, total = self.audit_logs.list_for_organization(
            self.db, organization_id, limit, offset, action
        )
        return {
            "logs": [
                {
                    "id": entry.id,
                    "action": entry.action,
                    "action_label": get_action_label(entry.action),
                    "action_icon": get_action_icon(entry.action),
                    "details": entry.details,
                    "user_id": entry.user_id,
                    "user_email": entry.user.email if entry.user else None,
                    "ip_address": entry.ip_address,
                    "timestamp": entry.timestamp,
                }
                for entry in entries
            ],
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "hasMore": total > offset + limit,
            },
        }

    def dashboard(self, organization_id: int, user: User) -> dict:
        require_org_role(self.db, organization_id, user, allow_super_admin=True)
        organization = self._get_or_404(organization_id)
        by_role = self.members.count_by_role(self.db, organization_id)
        recent, _ = self.audit_logs.list_for_organization(self.db, organization_id, limit=10)

        return {
            "organization": {"id": organization.id, "name": organization.name, "plan": organization.plan},
            "members": {
                "total": sum(by_role.values()),
                "owners": by_role.get(ROLE_OWNER, 0),
                "admins": by_role.get(ROLE_ADMIN, 0),
                "members": by_role.get(ROLE_MEMBER, 0),
            },
            "seats": {
                "total": organization.seats,
                "used": organization.seats_used,
                "available": max(0, organization.seats - organization.seats_used),
            },
            "pendingInvites": len(self.invites.list_pending(self.db, organization_id, datetime.utcnow())),
            "activeWebhooks": self.repo.count_active_webhooks(self.db, organization_id),
            "recentActivity": [
                {
                    "action": e.action,
                    "label": get_action_label(e.action),
                    "icon": get_action_icon(e.action),
                    "timestamp": e.timestamp,
                }
                for e in recent
            ],
        }


__all__ = ["OrganizationService", "MANAGER_ROLES", "display_name"]
