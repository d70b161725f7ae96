"""Webhook router - FastAPI endpoints for organization webhooks"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...audit import request_context
from ...auth import get_current_user
from ...database import get_db
from ...models import User, Webhook
from .schemas import (
    WEBHOOK_EVENTS,
    DeliveryAttemptResponse,
    DeliveryListResponse,
    DeliveryResponse,
    Pagination,
    WebhookCreate,
    WebhookResponse,
    WebhookUpdate,
)
from .service import WebhookService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizations/{organization_id}/webhooks", tags=["Webhooks"])


def get_webhook_service(db: Session = Depends(get_db)) -> WebhookService:
    """Dependency injection for WebhookService"""
    return WebhookService(db)


def _to_response(webhook: Webhook) -> WebhookResponse:
    return WebhookResponse(
        id=webhook.id,
        organization_id=webhook.organization_id,
        name=webhook.name,
        url=webhook.url,
        events=webhook.events or [],
        has_secret=bool(webhook.secret),
        is_active=webhook.is_active,
        created_by=webhook.created_by,
        created_at=webhook.created_at,
        updated_at=webhook.updated_at,
    )


# ============================================================================
# WEBHOOK CRUD
# ============================================================================


@router.get("/events")
async def list_available_events(organization_id: int):
    """Event types a webhook can subscribe to"""
    return {"events": WEBHOOK_EVENTS}


@router.get("")
async def list_webhooks(
    organization_id: int,
    current_user: User = Depends(get_current_user),
    service: WebhookService = Depends(get_webhook_service),
):
    webhooks = service.list_webhooks(organization_id, current_user)
    return {"webhooks": [_to_response(w) for w in webhooks]}


@router.post("", status_code=201)
async def create_webhook(
    organization_id: int,
    data: WebhookCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: WebhookService = Depends(get_webhook_service),
):
    webhook = service.create_webhook(organization_id, data, current_user, request_context(request))
    return {"webhook": _to_response(webhook)}


@router.patch("/{webhook_id}")
async def update_webhook(
    organization_id: int,
    webhook_id: int,
    data: WebhookUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: WebhookService = Depends(get_webhook_service),
):
    webhook = service.update_webhook(
        organization_id, webhook_id, data, current_user, request_context(request)
    )
    return {"webhook": _to_response(webhook)}


@router.delete("/{webhook_id}")
async def delete_webhook(
    organization_id: int,
    webhook_id: int,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: WebhookService = Depends(get_webhook_service),
):
    return service.delete_webhook(organization_id, webhook_id, current_user, request_context(request))


@router.post("/{webhook_id}/test")
async def test_webhook(
    organization_id: int,
    webhook_id: int,
    current_user: User = Depends(get_current_user),
    service: WebhookService = Depends(get_webhook_service),
):
    """Send a webhook.test event synchronously"""
    return await service.send_test(organization_id, webhook_id, current_user)


# ============================================================================
# DELIVERIES
# ============================================================================


@router.get("/{webhook_id}/deliveries", response_model=DeliveryListResponse)
async def list_deliveries(
    organization_id: int,
    webhook_id: int,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    status: Optional[str] = Query(None),
    event_type: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: WebhookService = Depends(get_webhook_service),
):
    """Delivery history, newest first. status: success | failed | pending"""
    deliveries, total = service.list_deliveries(
        organization_id, webhook_id, current_user, limit, offset, status, event_type
    )
    return DeliveryListResponse(
        deliveries=[DeliveryResponse.model_validate(d) for d in deliveries],
        pagination=Pagination(
            total=total, limit=limit, offset=offset, hasMore=total > offset + limit
        ),
    )


@router.post(
    "/{webhook_id}/deliveries/{delivery_id}/retry", response_model=DeliveryAttemptResponse
)
async def retry_delivery(
    organization_id: int,
    webhook_id: int,
    delivery_id: int,
    current_user: User = Depends(get_current_user),
    service: WebhookService = Depends(get_webhook_service),
):
    """Resend a stored delivery now"""
    return await service.retry_delivery(organization_id, webhook_id, delivery_id, current_user)


__all__ = ["router"]
