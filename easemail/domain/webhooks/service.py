"""Webhook service - Business logic for organization webhooks"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...audit import create_audit_log
from ...models import User, Webhook, WebhookDelivery
from ..organizations.access import require_org_role
from .delivery import attempt_delivery, build_event_payload
from .repository import DELIVERY_STATUS_FILTERS, DeliveryRepository, WebhookRepository
from .schemas import TEST_EVENT, WebhookCreate, WebhookUpdate

logger = logging.getLogger(__name__)


class WebhookService:
    """Service layer for webhook business logic. Every operation needs OWNER or ADMIN."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = WebhookRepository()
        self.deliveries = DeliveryRepository()

    def _audit(self, organization_id: int, user: User, details: dict, context: Optional[dict]):
        create_audit_log(
            self.db, organization_id, user.id, "settings_changed", details, **(context or {})
        )

    def get_webhook(self, organization_id: int, webhook_id: int, user: User) -> Webhook:
        require_org_role(self.db, organization_id, user)
        webhook = self.repo.get(self.db, webhook_id, organization_id)
        if not webhook:
            raise HTTPException(status_code=404, detail="Webhook not found")
        return webhook

    def list_webhooks(self, organization_id: int, user: User) -> list[Webhook]:
        require_org_role(self.db, organization_id, user)
        return self.repo.list_for_organization(self.db, organization_id)

    def create_webhook(
        self, organization_id: int, data: WebhookCreate, user: User, context: Optional[dict] = None
    ) -> Webhook:
        require_org_role(self.db, organization_id, user)

        webhook = self.repo.create(
            self.db,
            organization_id,
            name=data.name,
            url=data.url,
            events=data.events,
            secret=data.secret or None,
            is_active=True,
            created_by=user.id,
        )
        logger.info(f"✅ Webhook {webhook.id} created for organization {organization_id}")
        self._audit(
            organization_id,
            user,
            {"type": "webhook_created", "webhook_id": webhook.id, "name": webhook.name},
            context,
        )
        return webhook

    def update_webhook(
        self,
        organization_id: int,
        webhook_id: int,
        data: WebhookUpdate,
        user: User,
        context: Optional[dict] = None,
    ) -> Webhook:
        webhook = self.get_webhook(organization_id, webhook_id, user)

        updates = data.model_dump(exclude_unset=True)
        if "secret" in updates:
            updates["secret"] = updates["secret"] or None
        for field in ("name", "url", "events", "is_active"):
            if field in updates and updates[field] is None:
                del updates[field]

        webhook = self.repo.update(self.db, webhook, **updates)
        self._audit(
            organization_id,
            user,
            {"type": "webhook_updated", "webhook_id": webhook.id, "fields": sorted(updates)},
            context,
        )
        return webhook

    def delete_webhook(
        self, organization_id: int, webhook_id: int, user: User, context: Optional[dict] = None
    ) -> dict:
        webhook = self.get_webhook(organization_id, webhook_id, user)
        self.repo.delete(self.db, webhook)
        self._audit(
            organization_id, user, {"type": "webhook_deleted", "webhook_id": webhook_id}, context
        )
        return {"success": True}

    async def send_test(self, organization_id: int, webhook_id: int, user: User) -> dict:
        """Send a webhook.test event right away; the attempt is recorded but never retried"""
        webhook = self.get_webhook(organization_id, webhook_id, user)
        payload = build_event_payload(
            TEST_EVENT,
            organization_id,
            {"message": "This is a test webhook from EaseMail", "webhook_id": webhook.id},
        )
        delivery = self.deliveries.create(self.db, webhook.id, TEST_EVENT, payload)
        success, status = await attempt_delivery(self.db, delivery, schedule_retry=False)
        return {"success": success, "status": status, "delivery_id": delivery.id}

    def list_deliveries(
        self,
        organization_id: int,
        webhook_id: int,
        user: User,
        limit: int = 50,
        offset: int = 0,
        status: Optional[str] = None,
        event_type: Optional[str] = None,
    ) -> tuple[list[WebhookDelivery], int]:
        if status is not None and status not in DELIVERY_STATUS_FILTERS:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status filter. Use one of: {', '.join(DELIVERY_STATUS_FILTERS)}",
            )
        webhook = self.get_webhook(organization_id, webhook_id, user)
        return self.deliveries.list_for_webhook(
            self.db, webhook.id, limit=limit, offset=offset, status=status, event_type=event_type
        )

    async def retry_delivery(
        self, organization_id: int, webhook_id: int, delivery_id: int, user: User
    ) -> dict:
        require_org_role(self.db, organization_id, user)

        delivery = self.deliveries.get_for_webhook(self.db, delivery_id, webhook_id)
        if not delivery:
            raise HTTPException(status_code=404, detail="Delivery not found")
        if delivery.webhook.organization_id != organization_id:
            raise HTTPException(status_code=403, detail="Unauthorized")

        success, status = await attempt_delivery(
            self.db, delivery, is_retry=True, schedule_retry=False
        )
        if success:
            message = "Webhook delivered successfully"
        elif status == 0:
            message = "Failed to connect to webhook URL"
        else:
            message = "Webhook delivery failed"
        return {"success": success, "status": status, "message": message}
