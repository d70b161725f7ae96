"""
Outgoing webhook delivery

Events are recorded as WebhookDelivery rows before any network I/O, then sent
either by the ARQ worker or inline when no worker queue is reachable. Failed
automatic attempts are rescheduled with exponential backoff
(WEBHOOK_RETRY_BASE_SECONDS * 2^retry_count) until WEBHOOK_MAX_RETRIES retries
have been made; the worker's cron picks up rows whose next_retry_at has passed.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

import httpx
from sqlalchemy.orm import Session

from ...config import WEBHOOK_MAX_RETRIES, WEBHOOK_RETRY_BASE_SECONDS, WEBHOOK_TIMEOUT_SECONDS
from ...jobs import enqueue_job
from ...models import WebhookDelivery
from ...webhook_security import build_delivery_headers, serialize_payload
from .repository import DeliveryRepository, WebhookRepository

logger = logging.getLogger(__name__)

MAX_RESPONSE_BODY = 5000


def get_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT_SECONDS, follow_redirects=False)


def build_event_payload(
    event_type: str, organization_id: Optional[int], data: dict[str, Any], now: Optional[datetime] = None
) -> dict[str, Any]:
    now = now or datetime.utcnow()
    payload = {"event": event_type, "timestamp": now.isoformat() + "Z", "data": data}
    if organization_id is not None:
        payload["organization_id"] = organization_id
    return payload


def retry_delay(retry_count: int) -> timedelta:
    return timedelta(seconds=WEBHOOK_RETRY_BASE_SECONDS * (2**retry_count))


async def attempt_delivery(
    db: Session,
    delivery: WebhookDelivery,
    is_retry: bool = False,
    schedule_retry: bool = True,
) -> tuple[bool, int]:
    """
    POST the stored payload to the webhook URL and record the outcome.

    Args:
        is_retry: count this attempt in retry_count
        schedule_retry: on failure, set next_retry_at by backoff; otherwise clear it

    Returns:
        (success, response_status); status 0 means the request never got a response
    """
    webhook = delivery.webhook
    body = serialize_payload(delivery.payload)
    headers = build_delivery_headers(body, delivery.event_type, delivery.id, webhook.secret)

    try:
        async with get_http_client() as client:
            response = await client.post(webhook.url, content=body, headers=headers)
        status = response.status_code
        response_body = response.text[:MAX_RESPONSE_BODY]
        success = response.is_success
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning(f"⚠️ Webhook {webhook.id} delivery {delivery.id} connection error: {e}")
        status = 0
        response_body = (str(e) or type(e).__name__)[:MAX_RESPONSE_BODY]
        success = False

    now = datetime.utcnow()
    delivery.response_status = status
    delivery.response_body = response_body
    delivery.delivered_at = now if success else None
    if is_retry:
        delivery.retry_count = (delivery.retry_count or 0) + 1

    if not success and schedule_retry and delivery.retry_count < WEBHOOK_MAX_RETRIES:
        delivery.next_retry_at = now + retry_delay(delivery.retry_count)
    else:
        delivery.next_retry_at = None

    db.commit()

    if success:
        logger.info(f"✅ Webhook {webhook.id} delivered {delivery.event_type} ({status})")
    else:
        logger.warning(
            f"⚠️ Webhook {webhook.id} delivery {delivery.id} failed with status {status}"
            f" (retry {delivery.retry_count}, next: {delivery.next_retry_at})"
        )
    return success, status


async def dispatch_event(
    db: Session, organization_id: int, event_type: str, data: dict[str, Any]
) -> list[int]:
    """
    Fan an organization event out to every active webhook subscribed to it.
    Never raises: webhook problems must not fail the action that emitted the event.

    Returns:
        ids of the created delivery records
    """
    delivery_ids: list[int] = []
    try:
        webhooks = WebhookRepository.get_subscribed(db, organization_id, event_type)
    except Exception as e:
        logger.error(f"❌ Failed to load webhooks for organization {organization_id}: {e}")
        db.rollback()
        return delivery_ids

    for webhook in webhooks:
        try:
            payload = build_event_payload(event_type, organization_id, data)
            delivery = DeliveryRepository.create(db, webhook.id, event_type, payload)
            delivery_ids.append(delivery.id)

            if not await enqueue_job("deliver_webhook_task", delivery.id):
                await attempt_delivery(db, delivery)
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Failed to dispatch {event_type} to webhook {webhook.id}: {e}")

    if webhooks:
        logger.info(f"📤 Dispatched {event_type} to {len(webhooks)} webhook(s)")
    return delivery_ids


async def retry_due_deliveries(db: Session, now: Optional[datetime] = None) -> dict[str, int]:
    """Resend every delivery whose next_retry_at has passed"""
    now = now or datetime.utcnow()
    due = DeliveryRepository.get_due_for_retry(db, now)
    summary = {"due": len(due), "delivered": 0, "failed": 0, "skipped": 0}

    for delivery in due:
        if not delivery.webhook.is_active:
            delivery.next_retry_at = None
            db.commit()
            summary["skipped"] += 1
            continue
        try:
            success, _ = await attempt_delivery(db, delivery, is_retry=True)
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Retry of delivery {delivery.id} crashed: {e}")
            success = False
        summary["delivered" if success else "failed"] += 1

    return summary
