"""Organization repository - Database operations for organizations, members and invites"""

import secrets
import time
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import (
    ROLE_OWNER,
    AuditLog,
    Organization,
    OrganizationInvite,
    OrganizationMember,
    User,
    Webhook,
)
from ...shared.validators import slugify


def unique_slug(name: str) -> str:
    """Slug from the name with a millisecond timestamp suffix"""
    base = slugify(name) or "org"
    return f"{base}-{int(time.time() * 1000)}{secrets.randbelow(1000):03d}"


class OrganizationRepository:
    """Repository for organization database operations"""

    @staticmethod
    def get(db: Session, organization_id: int) -> Optional[Organization]:
        return db.query(Organization).filter(Organization.id == organization_id).first()

    @staticmethod
    def list_memberships(db: Session, user_id: int) -> list[OrganizationMember]:
        return (
            db.query(OrganizationMember)
            .options(joinedload(OrganizationMember.organization))
            .filter(OrganizationMember.user_id == user_id)
            .order_by(OrganizationMember.joined_at.asc(), OrganizationMember.id.asc())
            .all()
        )

    @staticmethod
    def create(db: Session, commit: bool = True, **data) -> Organization:
        organization = Organization(**data)
        db.add(organization)
        if commit:
            db.commit()
            db.refresh(organization)
        else:
            db.flush()
        return organization

    @staticmethod
    def update(db: Session, organization: Organization, **updates) -> Organization:
        for key, value in updates.items():
            setattr(organization, key, value)
        db.commit()
        db.refresh(organization)
        return organization

    @staticmethod
    def delete(db: Session, organization: Organization) -> None:
        db.delete(organization)
        db.commit()

    @staticmethod
    def count_active_webhooks(db: Session, organization_id: int) -> int:
        return (
            db.query(func.count(Webhook.id))
            .filter(Webhook.organization_id == organization_id, Webhook.is_active.is_(True))
            .scalar()
        )


class MemberRepository:
    """Repository for organization membership rows"""

    @staticmethod
    def list_members(db: Session, organization_id: int) -> list[OrganizationMember]:
        return (
            db.query(OrganizationMember)
            .options(joinedload(OrganizationMember.user))
            .filter(OrganizationMember.organization_id == organization_id)
            .order_by(OrganizationMember.joined_at.asc(), OrganizationMember.id.asc())
            .all()
        )

    @staticmethod
    def get(db: Session, organization_id: int, user_id: int) -> Optional[OrganizationMember]:
        return (
            db.query(OrganizationMember)
            .filter(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.user_id == user_id,
            )
            .first()
        )

    @staticmethod
    def add(
        db: Session,
        organization_id: int,
        user_id: int,
        role: str,
        added_by: Optional[int] = None,
        commit: bool = True,
    ) -> OrganizationMember:
        member = OrganizationMember(
            organization_id=organization_id, user_id=user_id, role=role, added_by=added_by
        )
        db.add(member)
        if commit:
            db.commit()
            db.refresh(member)
        else:
            db.flush()
        return member

    @staticmethod
    def count_owners(db: Session, organization_id: int) -> int:
        return (
            db.query(func.count(OrganizationMember.id))
            .filter(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.role == ROLE_OWNER,
            )
            .scalar()
        )

    @staticmethod
    def count_by_role(db: Session, organization_id: int) -> dict[str, int]:
        rows = (
            db.query(OrganizationMember.role, func.count(OrganizationMember.id))
            .filter(OrganizationMember.organization_id == organization_id)
            .group_by(OrganizationMember.role)
            .all()
        )
        return {role: count for role, count in rows}


class InviteRepository:
    """Repository for organization invitations"""

    @staticmethod
    def new_token() -> str:
        return secrets.token_urlsafe(32)

    @staticmethod
    def create(
        db: Session, organization_id: int, email: str, role: str, invited_by: int, expires_at: datetime
    ) -> OrganizationInvite:
        invite = OrganizationInvite(
            organization_id=organization_id,
            email=email,
            role=role,
            token=InviteRepository.new_token(),
            invited_by=invited_by,
            expires_at=expires_at,
        )
        db.add(invite)
        db.commit()
        db.refresh(invite)
        return invite

    @staticmethod
    def get(db: Session, organization_id: int, invite_id: int) -> Optional[OrganizationInvite]:
        return (
            db.query(OrganizationInvite)
            .filter(
                OrganizationInvite.id == invite_id,
                OrganizationInvite.organization_id == organization_id,
            )
            .first()
        )

    @staticmethod
    def get_open_by_token(db: Session, token: str) -> Optional[OrganizationInvite]:
        """Invite with this token that has not been accepted yet"""
        return (
            db.query(OrganizationInvite)
            .options(joinedload(OrganizationInvite.organization))
            .filter(OrganizationInvite.token == token, OrganizationInvite.accepted_at.is_(None))
            .first()
        )

    @staticmethod
    def get_pending_for_email(
        db: Session, organization_id: int, email: str, now: datetime
    ) -> Optional[OrganizationInvite]:
        return (
            db.query(OrganizationInvite)
            .filter(
                OrganizationInvite.organization_id == organization_id,
                func.lower(OrganizationInvite.email) == email.lower(),
                OrganizationInvite.accepted_at.is_(None),
                OrganizationInvite.expires_at > now,
            )
            .first()
        )

    @staticmethod
    def list_pending(db: Session, organization_id: int, now: datetime) -> list[OrganizationInvite]:
        return (
            db.query(OrganizationInvite)
            .filter(
                OrganizationInvite.organization_id == organization_id,
                OrganizationInvite.accepted_at.is_(None),
                OrganizationInvite.expires_at > now,
            )
            .order_by(OrganizationInvite.created_at.desc(), OrganizationInvite.id.desc())
            .all()
        )


class AuditLogRepository:
    """Read side of the organization audit trail"""

    @staticmethod
    def list_for_organization(
        db: Session,
        organization_id: int,
        limit: int = 50,
        offset: int = 0,
        action: Optional[str] = None,
    ) -> tuple[list[AuditLog], int]:
        query = db.query(AuditLog).filter(AuditLog.organization_id == organization_id)
        if action:
            query = query.filter(AuditLog.action == action)
        total = query.count()
        entries = (
            query.options(joinedload(AuditLog.user))
            .order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return entries, total


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()
