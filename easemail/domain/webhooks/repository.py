"""Webhook repository - Database operations for webhooks and their deliveries"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Webhook, WebhookDelivery

DELIVERY_STATUS_FILTERS = ("success", "failed", "pending")


class WebhookRepository:
    """Repository for webhook database operations"""

    @staticmethod
    def list_for_organization(db: Session, organization_id: int) -> list[Webhook]:
        return (
            db.query(Webhook)
            .filter(Webhook.organization_id == organization_id)
            .order_by(Webhook.created_at.desc(), Webhook.id.desc())
            .all()
        )

    @staticmethod
    def get(db: Session, webhook_id: int, organization_id: int) -> Optional[Webhook]:
        return (
            db.query(Webhook)
            .filter(Webhook.id == webhook_id, Webhook.organization_id == organization_id)
            .first()
        )

    @staticmethod
    def get_subscribed(db: Session, organization_id: int, event_type: str) -> list[Webhook]:
        """Active webhooks of the organization that listen for event_type"""
        webhooks = (
            db.query(Webhook)
            .filter(Webhook.organization_id == organization_id, Webhook.is_active.is_(True))
            .all()
        )
        # events is a JSON list; filter in Python to stay portable across databases
        return [w for w in webhooks if event_type in (w.events or [])]

    @staticmethod
    def create(db: Session, organization_id: int, **data) -> Webhook:
        webhook = Webhook(organization_id=organization_id, **data)
        db.add(webhook)
        db.commit()
        db.refresh(webhook)
        return webhook

    @staticmethod
    def update(db: Session, webhook: Webhook, **updates) -> Webhook:
        for key, value in updates.items():
            setattr(webhook, key, value)
        db.commit()
        db.refresh(webhook)
        return webhook

    @staticmethod
    def delete(db: Session, webhook: Webhook) -> None:
        db.delete(webhook)
        db.commit()


class DeliveryRepository:
    """Repository for webhook delivery records"""

    @staticmethod
    def create(db: Session, webhook_id: int, event_type: str, payload: dict) -> WebhookDelivery:
        delivery = WebhookDelivery(webhook_id=webhook_id, event_type=event_type, payload=payload)
        db.add(delivery)
        db.commit()
        db.refresh(delivery)
        return delivery

    @staticmethod
    def get(db: Session, delivery_id: int) -> Optional[WebhookDelivery]:
        return db.query(WebhookDelivery).filter(WebhookDelivery.id == delivery_id).first()

    @staticmethod
    def get_for_webhook(db: Session, delivery_id: int, webhook_id: int) -> Optional[WebhookDelivery]:
        return (
            db.query(WebhookDelivery)
            .filter(WebhookDelivery.id == delivery_id, WebhookDelivery.webhook_id == webhook_id)
            .first()
        )

    @staticmethod
    def list_for_webhook(
        db: Session,
        webhook_id: int,
        limit: int = 50,
        offset: int = 0,
        status: Optional[str] = None,
        event_type: Optional[str] = None,
    ) -> tuple[list[WebhookDelivery], int]:
        """Page of deliveries, newest first, plus the total matching the filters"""
        query = db.query(WebhookDelivery).filter(WebhookDelivery.webhook_id == webhook_id)

        if status == "success":
            query = query.filter(
                WebhookDelivery.response_status >= 200, WebhookDelivery.response_status < 300
            )
        elif status == "failed":
            query = query.filter(
                or_(
                    WebhookDelivery.response_status.is_(None),
                    WebhookDelivery.response_status == 0,
                    WebhookDelivery.response_status >= 400,
                )
            )
        elif status == "pending":
            query = query.filter(WebhookDelivery.next_retry_at.isnot(None))

        if event_type:
            query = query.filter(WebhookDelivery.event_type == event_type)

        total = query.count()
        deliveries = (
            query.order_by(WebhookDelivery.created_at.desc(), WebhookDelivery.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return deliveries, total

    @staticmethod
    def get_due_for_retry(db: Session, now: datetime, limit: int = 100) -> list[WebhookDelivery]:
        return (
            db.query(WebhookDelivery)
            .filter(WebhookDelivery.next_retry_at.isnot(None), WebhookDelivery.next_retry_at <= now)
            .order_by(WebhookDelivery.next_retry_at.asc())
            .limit(limit)
            .all()
        )
