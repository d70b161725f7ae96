"""
ARQ Background Worker for Async Jobs
Handles webhook delivery and the retry schedule for failed deliveries
"""

import logging
import os

from arq.cron import cron

from . import models  # noqa: F401 - register models before any database work
from .database import SessionLocal
from .domain.webhooks.delivery import attempt_delivery, retry_due_deliveries
from .domain.webhooks.repository import DeliveryRepository
from .jobs import get_redis_settings

logger = logging.getLogger(__name__)


async def deliver_webhook_task(ctx, delivery_id: int):
    """
    Send one queued webhook delivery.

    Deliveries that already have a response were handled elsewhere (manual
    retry or the cron) and are left alone.
    """
    logger.info(f"🚀 ARQ Worker: delivering webhook delivery {delivery_id} (job {ctx.get('job_id', 'unknown')})")

    db = SessionLocal()
    try:
        delivery = DeliveryRepository.get(db, delivery_id)
        if not delivery:
            logger.error(f"❌ Delivery not found: {delivery_id}")
            return {"success": False, "error": "not_found"}
        if delivery.response_status is not None:
            logger.info(f"🔍 Delivery {delivery_id} already attempted, skipping")
            return {"success": delivery.delivered_at is not None, "skipped": True}
        if not delivery.webhook.is_active:
            logger.info(f"🚫 Webhook {delivery.webhook_id} inactive, skipping delivery {delivery_id}")
            return {"success": False, "skipped": True}

        success, status = await attempt_delivery(db, delivery)
        return {"success": success, "status": status}
    finally:
        db.close()


async def retry_due_webhook_deliveries(ctx):
    """Cron: resend deliveries whose backoff has elapsed"""
    db = SessionLocal()
    try:
        summary = await retry_due_deliveries(db)
        if summary["due"]:
            logger.info(f"🔄 Webhook retry run: {summary}")
        return summary
    finally:
        db.close()


class WorkerSettings:
    """ARQ Worker Settings"""

    functions = [deliver_webhook_task, retry_due_webhook_deliveries]
    redis_settings = get_redis_settings()

    max_jobs = int(os.getenv("ARQ_MAX_JOBS", "20"))
    job_timeout = int(os.getenv("ARQ_JOB_TIMEOUT", "120"))
    keep_result = int(os.getenv("ARQ_KEEP_RESULT", "3600"))

    health_check_interval = 60

    # Delivery failures are retried by the backoff schedule, not by ARQ
    max_tries = 1

    cron_jobs = [
        cron(retry_due_webhook_deliveries, minute=set(range(60)), run_at_startup=True),
    ]

    logger.info(f"🔧 ARQ Worker configured: max_jobs={max_jobs}, timeout={job_timeout}s")
