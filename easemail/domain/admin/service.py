"""Admin service - Organization wizard and user administration"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ... import email_service
from ...audit import create_audit_log
from ...encryption import encrypt_secret
from ...models import (
    PLAN_FREE,
    ROLE_OWNER,
    ApiKey,
    BillingHistory,
    EmailAccount,
    Organization,
    OrganizationMember,
    User,
    UserPreferences,
)
from ...pricing import billing_amount, calculate_arr, calculate_mrr, next_billing_date, price_per_seat
from ..organizations.repository import unique_slug
from .repository import AdminRepository
from .schemas import AdminUserCreate, AdminUserUpdate, WizardRequest, WizardUser
from .wizard import validate_wizard

logger = logging.getLogger(__name__)

DEFAULT_API_KEY_NAME = "Primary OpenAI Key"


def _name_for(email: str, name: Optional[str]) -> str:
    return (name or "").strip() or email.split("@")[0]


def _wizard_message(created: list, existing_owners: list, skipped: list[str]) -> str:
    message = f"Organization created successfully with {len(created)} user(s)"
    if existing_owners:
        message += f"; {len(existing_owners)} existing account(s) added as owner"
    if skipped:
        message += f"; {len(skipped)} existing user(s) skipped"
    return message


class AdminService:
    """Service layer for super admin and organization admin tooling"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AdminRepository()

    # ------------------------------------------------------------------
    # Organization wizard
    # ------------------------------------------------------------------

    def _create_wizard_user(self, spec: WizardUser, admin: User, now: datetime) -> User:
        """Stage a user with completed onboarding and any pre-configured mail accounts"""
        user = User(email=spec.email.strip().lower(), name=spec.name.strip(), is_super_admin=False)
        self.db.add(user)
        self.db.flush()

        # Admin-created users skip onboarding
        self.db.add(
            UserPreferences(
                user_id=user.id,
                onboarding_completed=True,
                onboarding_completed_at=now,
                ai_features_enabled=True,
                auto_categorize=True,
            )
        )
        for account in spec.emailAccounts:
            self.db.add(
                EmailAccount(
                    user_id=user.id,
                    email=account.email.strip().lower(),
                    provider=account.provider,
                    is_primary=False,
                    needs_oauth_connection=True,
                    added_by_admin=admin.id,
                    account_metadata={"added_via": "org_creation_wizard"},
                )
            )
        return user

    async def run_wizard(self, data: WizardRequest, admin: User, context: Optional[dict] = None) -> dict:
        errors = validate_wizard(data)
        if errors:
            logger.warning(f"⚠️ Wizard validation failed: {errors}")
            raise HTTPException(status_code=400, detail="; ".join(errors))

        org_data = data.organization
        plan = org_data.plan
        seats = org_data.seats
        cycle = org_data.billing_cycle
        mrr = calculate_mrr(plan, seats)
        arr = calculate_arr(mrr, cycle)
        now = datetime.utcnow()

        created: list[tuple[User, WizardUser]] = []
        existing_owners: list[tuple[User, WizardUser]] = []
        skipped: list[str] = []
        try:
            for spec in data.users:
                existing = self.repo.get_user_by_email(self.db, spec.email)
                if existing and spec.role == ROLE_OWNER:
                    # An existing account named as owner still owns the new organization
                    logger.info(f"🔗 Wizard: existing user {spec.email} joins as OWNER")
                    existing_owners.append((existing, spec))
                    continue
                if existing:
                    logger.info(f"🔍 Wizard: user {spec.email} already exists, skipping")
                    skipped.append(spec.email.strip().lower())
                    continue
                created.append((self._create_wizard_user(spec, admin, now), spec))

            if not created:
                self.db.rollback()
                raise HTTPException(status_code=500, detail="Failed to create any users")

            organization = Organization(
                name=org_data.name.strip(),
                slug=unique_slug(org_data.name),
                domain=org_data.domain or None,
                plan=plan,
                seats=seats,
                seats_used=len(created) + len(existing_owners),
                billing_email=org_data.billing_email or created[0][0].email,
                billing_cycle=cycle,
                next_billing_date=next_billing_date(cycle, now),
                mrr=mrr,
                arr=arr,
                uses_master_api_key=True,
            )
            self.db.add(organization)
            self.db.flush()

            for user, spec in created + existing_owners:
                self.db.add(
                    OrganizationMember(
                        organization_id=organization.id,
                        user_id=user.id,
                        role=spec.role,
                        added_by=admin.id,
                    )
                )

            if not data.api_key.uses_master_key and data.api_key.key_value:
                api_key = ApiKey(
                    organization_id=organization.id,
                    key_name=(data.api_key.key_name or "").strip() or DEFAULT_API_KEY_NAME,
                    key_value=encrypt_secret(data.api_key.key_value.strip()),
                    is_active=True,
                    created_by=admin.id,
                )
                self.db.add(api_key)
                self.db.flush()
                organization.api_key_id = api_key.id
                organization.uses_master_api_key = False
                logger.info(f"🔑 Custom API key stored for organization {organization.id}")

            self.db.add(
                BillingHistory(
                    organization_id=organization.id,
                    event_type="subscription_created",
                    new_value={
                        "plan": plan,
                        "seats": seats,
                        "billing_cycle": cycle,
                        "mrr": mrr,
                        "arr": arr,
                    },
                    amount=billing_amount(mrr, arr, cycle),
                    triggered_by=admin.id,
                )
            )
            self.db.commit()
            self.db.refresh(organization)
        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Wizard failed to create organization {org_data.name}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create organization") from e

        logger.info(
            f"🏢 Wizard created organization {organization.id} with {len(created)} user(s),"
            f" {seats} seat(s), MRR {mrr}"
        )
        create_audit_log(
            self.db,
            organization.id,
            admin.id,
            "organization_created",
            {"via": "wizard", "users": len(created), "plan": plan, "seats": seats},
            **(context or {}),
        )

        await self._send_wizard_emails(organization, created, existing_owners, org_data.billing_email)

        return {
            "success": True,
            "organization": {
                "id": organization.id,
                "name": organization.name,
                "domain": organization.domain,
                "plan": organization.plan,
                "seats": organization.seats,
                "billing_cycle": organization.billing_cycle,
                "mrr": organization.mrr,
                "arr": organization.arr,
            },
            "users": [{"id": u.id, "email": u.email, "role": spec.role} for u, spec in created],
            "existingOwners": [u.email for u, _ in existing_owners],
            "skipped": skipped,
            "message": _wizard_message(created, existing_owners, skipped),
        }

    async def _send_wizard_emails(
        self,
        organization: Organization,
        created: list[tuple[User, WizardUser]],
        existing_owners: list[tuple[User, WizardUser]],
        billing_email: Optional[str],
    ) -> None:
        members = created + existing_owners
        owner = next((spec for _, spec in members if spec.role == ROLE_OWNER), None)
        inviter_name = _name_for(owner.email, owner.name) if owner else "Organization Admin"
        new_user_ids = {user.id for user, _ in created}

        for user, spec in members:
            await email_service.send_safely(
                email_service.send_org_welcome_email(
                    to=user.email,
                    role=spec.role,
                    user_name=_name_for(user.email, spec.name),
                    organization_name=organization.name,
                    plan=organization.plan,
                    seats=organization.seats,
                    inviter_name=inviter_name,
                    temporary_password=spec.password if user.id in new_user_ids else None,
                ),
                f"{spec.role} welcome email to {user.email}",
            )

        if billing_email and organization.plan != PLAN_FREE:
            contact = next((spec for _, spec in members if spec.email.lower() == billing_email.lower()), None)
            await email_service.send_safely(
                email_service.send_billing_setup_email(
                    to=billing_email,
                    user_name=_name_for(billing_email, contact.name if contact else None),
                    organization_name=organization.name,
                    plan=organization.plan,
                    seats=organization.seats,
                    price_per_seat=price_per_seat(organization.plan, organization.seats),
                    billing_cycle=organization.billing_cycle,
                ),
                f"billing setup email to {billing_email}",
            )

    # ------------------------------------------------------------------
    # Organizations and users
    # ------------------------------------------------------------------

    def list_organizations(self) -> list[tuple[Organization, int]]:
        return self.repo.list_organizations_with_counts(self.db)

    def _require_admin(self, caller: User) -> None:
        if caller.is_super_admin or self.repo.is_org_manager(self.db, caller.id):
            return
        raise HTTPException(status_code=403, detail="Admin access required")

    def list_users(self, caller: User) -> list[tuple[User, int, int]]:
        self._require_admin(caller)
        return self.repo.list_users_with_stats(self.db)

    async def create_user(self, data: AdminUserCreate, caller: User) -> User:
        """Pre-create a user record; the Supabase account links to it by email on first sign-in"""
        self._require_admin(caller)
        if self.repo.get_user_by_email(self.db, data.email):
            raise HTTPException(status_code=409, detail="A user with this email already exists")

        user = User(email=data.email, name=(data.name or "").strip() or None)
        self.db.add(user)
        try:
            self.db.commit()
            self.db.refresh(user)
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create user {data.email}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create user") from e

        logger.info(f"🆕 User {user.id} ({user.email}) created by admin {caller.id}")
        await email_service.send_safely(
            email_service.send_welcome_email(user.email, _name_for(user.email, user.name)),
            f"welcome email to {user.email}",
        )
        return user

    async def update_user(self, user_id: int, data: AdminUserUpdate, caller: User) -> User:
        user = self.repo.get_user(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        updates = data.model_dump(exclude_unset=True, exclude_none=True)
        if "email" in updates and updates["email"] != user.email:
            existing = self.repo.get_user_by_email(self.db, updates["email"])
            if existing and existing.id != user.id:
                raise HTTPException(status_code=409, detail="A user with this email already exists")
        if updates.get("is_super_admin") is False and user.id == caller.id:
            raise HTTPException(status_code=400, detail="You cannot remove your own super admin access")

        promoted = updates.get("is_super_admin") is True and not user.is_super_admin
        for key, value in updates.items():
            setattr(user, key, value)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"✏️ User {user.id} updated by super admin {caller.id}: {list(updates)}")

        if promoted:
            await email_service.send_safely(
                email_service.send_super_admin_welcome_email(user.email, _name_for(user.email, user.name)),
                f"super admin welcome email to {user.email}",
            )
        return user

    async def send_password_reset(self, user_id: int, caller: User) -> dict:
        """Email the user a link to choose a new password; the send is the whole action so failures surface"""
        user = self.repo.get_user(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        try:
            result = await email_service.send_admin_password_reset_email(
                to=user.email,
                user_name=_name_for(user.email, user.name),
                reset_link=email_service.build_reset_link(user.email),
                admin_name=_name_for(caller.email, caller.name),
            )
        except email_service.EmailNotConfigured as e:
            raise HTTPException(status_code=503, detail="Email service not configured") from e
        except email_service.EmailSendError as e:
            logger.error(f"❌ Password reset email to {user.email} failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to send password reset email") from e

        logger.info(f"🔑 Password reset sent to user {user.id} by super admin {caller.id}")
        email_id = result.get("id") if isinstance(result, dict) else None
        return {"success": True, "message": f"Password reset email sent to {user.email}", "emailId": email_id}
