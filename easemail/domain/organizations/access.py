"""Organization role checks shared by every organization-scoped domain"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ROLE_ADMIN, ROLE_OWNER, Organization, OrganizationMember, User

logger = logging.getLogger(__name__)

MANAGER_ROLES = (ROLE_OWNER, ROLE_ADMIN)


def get_membership(db: Session, organization_id: int, user_id: int) -> Optional[OrganizationMember]:
    return (
        db.query(OrganizationMember)
        .filter(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user_id,
        )
        .first()
    )


def get_organization_or_404(db: Session, organization_id: int) -> Organization:
    organization = db.query(Organization).filter(Organization.id == organization_id).first()
    if not organization:
        raise HTTPException(status_code=404, detail="Organization not found")
    return organization


def require_org_role(
    db: Session,
    organization_id: int,
    user: User,
    roles: tuple[str, ...] = MANAGER_ROLES,
    allow_super_admin: bool = False,
) -> Optional[OrganizationMember]:
    """
    Ensure the user holds one of roles in the organization.
    Returns the membership, or None when a super admin was let through without one.
    """
    membership = get_membership(db, organization_id, user.id)
    if membership and membership.role in roles:
        return membership
    if allow_super_admin and user.is_super_admin:
        return membership
    logger.warning(
        f"⚠️ User {user.id} denied on organization {organization_id}"
        f" (role: {membership.role if membership else None}, required: {roles})"
    )
    raise HTTPException(status_code=403, detail="Insufficient permissions")
