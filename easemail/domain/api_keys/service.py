"""API key service - Business logic for organization provider keys"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...audit import create_audit_log
from ...encryption import decrypt_secret, encrypt_secret
from ...models import ApiKey, Organization, User
from ..organizations.access import MANAGER_ROLES
from ..organizations.repository import OrganizationRepository
from .repository import ApiKeyRepository
from .schemas import ApiKeyCreate

logger = logging.getLogger(__name__)


def get_decrypted_api_key(db: Session, key_id: Optional[int]) -> Optional[str]:
    """
    Plaintext for an active key, recording the use.

    Returns None for a missing or inactive key, or one that no longer decrypts.
    """
    if not key_id:
        return None
    api_key = ApiKeyRepository.get(db, key_id)
    if not api_key or not api_key.is_active:
        return None

    plaintext = decrypt_secret(api_key.key_value)
    if plaintext is None:
        return None

    try:
        api_key.usage_count = (api_key.usage_count or 0) + 1
        api_key.last_used_at = datetime.utcnow()
        db.commit()
    except Exception as e:
        db.rollback()
        logger.warning(f"⚠️ Failed to record usage for API key {key_id}: {e}")
    return plaintext


class ApiKeyService:
    """Service layer for the caller's organization API key"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ApiKeyRepository()

    def _managed_organization(self, user: User) -> Organization:
        """First organization where the user is OWNER or ADMIN"""
        memberships = OrganizationRepository.list_memberships(self.db, user.id)
        if not memberships:
            raise HTTPException(status_code=404, detail="No organization found")
        for membership in memberships:
            if membership.role in MANAGER_ROLES:
                return membership.organization
        raise HTTPException(status_code=403, detail="Only owners and admins can manage API keys")

    def get_active_key(self, user: User) -> Optional[ApiKey]:
        organization = self._managed_organization(user)
        return self.repo.get_active(self.db, organization.id)

    def set_key(self, user: User, data: ApiKeyCreate, context: Optional[dict] = None) -> ApiKey:
        key_name = (data.key_name or "").strip()
        key_value = (data.key_value or "").strip()
        if not key_name or not key_value:
            raise HTTPException(status_code=400, detail="Key name and key value are required")

        organization = self._managed_organization(user)
        try:
            rotated = self.repo.deactivate_all(self.db, organization.id) > 0
            api_key = self.repo.add(
                self.db,
                organization_id=organization.id,
                key_name=key_name,
                key_value=encrypt_secret(key_value),
                is_active=True,
                created_by=user.id,
            )
            organization.api_key_id = api_key.id
            organization.uses_master_api_key = False
            self.db.commit()
            self.db.refresh(api_key)
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to store API key for organization {organization.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to save API key") from e

        action = "api_key_rotated" if rotated else "api_key_created"
        logger.info(f"🔑 {action} for organization {organization.id} by user {user.id}")
        create_audit_log(
            self.db, organization.id, user.id, action, {"key_name": key_name}, **(context or {})
        )
        return api_key

    def revoke_keys(self, user: User, context: Optional[dict] = None) -> dict:
        organization = self._managed_organization(user)
        revoked = self.repo.deactivate_all(self.db, organization.id)
        organization.api_key_id = None
        organization.uses_master_api_key = True
        self.db.commit()

        logger.info(f"🔒 Revoked {revoked} API key(s) for organization {organization.id}")
        create_audit_log(
            self.db, organization.id, user.id, "api_key_revoked", {"revoked": revoked}, **(context or {})
        )
        return {"success": True}
