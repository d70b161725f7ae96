"""Admin repository - Cross-tenant queries for super admins and organization admins"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import EmailAccount, Organization, OrganizationMember, User
from ..organizations.access import MANAGER_ROLES


class AdminRepository:
    """Read-mostly queries across users and organizations"""

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    @staticmethod
    def is_org_manager(db: Session, user_id: int) -> bool:
        return (
            db.query(OrganizationMember.id)
            .filter(OrganizationMember.user_id == user_id, OrganizationMember.role.in_(MANAGER_ROLES))
            .first()
            is not None
        )

    @staticmethod
    def list_users_with_stats(db: Session) -> list[tuple[User, int, int]]:
        """Users newest first with their organization and email account counts"""
        org_counts = (
            db.query(OrganizationMember.user_id, func.count(OrganizationMember.id).label("n"))
            .group_by(OrganizationMember.user_id)
            .subquery()
        )
        account_counts = (
            db.query(EmailAccount.user_id, func.count(EmailAccount.id).label("n"))
            .group_by(EmailAccount.user_id)
            .subquery()
        )
        rows = (
            db.query(
                User,
                func.coalesce(org_counts.c.n, 0),
                func.coalesce(account_counts.c.n, 0),
            )
            .outerjoin(org_counts, org_counts.c.user_id == User.id)
            .outerjoin(account_counts, account_counts.c.user_id == User.id)
            .order_by(User.created_at.desc(), User.id.desc())
            .all()
        )
        return [(user, org_count, account_count) for user, org_count, account_count in rows]

    @staticmethod
    def list_organizations_with_counts(db: Session) -> list[tuple[Organization, int]]:
        member_counts = (
            db.query(OrganizationMember.organization_id, func.count(OrganizationMember.id).label("n"))
            .group_by(OrganizationMember.organization_id)
            .subquery()
        )
        rows = (
            db.query(Organization, func.coalesce(member_counts.c.n, 0))
            .outerjoin(member_counts, member_counts.c.organization_id == Organization.id)
            .order_by(Organization.created_at.desc(), Organization.id.desc())
            .all()
        )
        return [(organization, count) for organization, count in rows]
