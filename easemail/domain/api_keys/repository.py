"""API key repository - Database operations for organization API keys"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import ApiKey


class ApiKeyRepository:
    """Repository for API key database operations"""

    @staticmethod
    def get(db: Session, key_id: int) -> Optional[ApiKey]:
        return db.query(ApiKey).filter(ApiKey.id == key_id).first()

    @staticmethod
    def get_active(db: Session, organization_id: int) -> Optional[ApiKey]:
        return (
            db.query(ApiKey)
            .filter(ApiKey.organization_id == organization_id, ApiKey.is_active.is_(True))
            .order_by(ApiKey.created_at.desc(), ApiKey.id.desc())
            .first()
        )

    @staticmethod
    def deactivate_all(db: Session, organization_id: int) -> int:
        """Flag every active key inactive; the caller commits"""
        return (
            db.query(ApiKey)
            .filter(ApiKey.organization_id == organization_id, ApiKey.is_active.is_(True))
            .update({ApiKey.is_active: False}, synchronize_session="fetch")
        )

    @staticmethod
    def add(db: Session, **data) -> ApiKey:
        """Stage a new key and flush it for an id; the caller commits"""
        api_key = ApiKey(**data)
        db.add(api_key)
        db.flush()
        return api_key
