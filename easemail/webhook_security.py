"""
Signing for outgoing organization webhooks.

Every delivery carries X-EaseMail-Timestamp and, when the webhook has a secret,
X-EaseMail-Signature: sha256=<hex HMAC-SHA256 of "{timestamp}.{raw body}">.
Receivers recompute the HMAC with their copy of the secret and reject
requests older than MAX_WEBHOOK_AGE_SECONDS.
"""

import hashlib
import hmac
import json
import logging
import time
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300

SIGNATURE_HEADER = "X-EaseMail-Signature"
TIMESTAMP_HEADER = "X-EaseMail-Timestamp"
EVENT_HEADER = "X-EaseMail-Event"
DELIVERY_HEADER = "X-EaseMail-Delivery"
SIGNATURE_PREFIX = "sha256="


def constant_time_compare(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def serialize_payload(payload: Any) -> bytes:
    """Canonical JSON body; the exact bytes sent are the bytes signed"""
    return json.dumps(payload, separators=(",", ":"), sort_keys=True, default=str).encode("utf-8")


def sign_payload(secret: str, timestamp: str, body: bytes) -> str:
    signed = timestamp.encode("utf-8") + b"." + body
    return SIGNATURE_PREFIX + compute_hmac_sha256(secret, signed)


def build_delivery_headers(
    body: bytes,
    event_type: str,
    delivery_id: Optional[int],
    secret: Optional[str],
    timestamp: Optional[str] = None,
) -> dict[str, str]:
    timestamp = timestamp or str(int(time.time()))
    headers = {
        "Content-Type": "application/json",
        "User-Agent": "EaseMail-Webhooks/1.0",
        EVENT_HEADER: event_type,
        TIMESTAMP_HEADER: timestamp,
    }
    if delivery_id is not None:
        headers[DELIVERY_HEADER] = str(delivery_id)
    if secret:
        headers[SIGNATURE_HEADER] = sign_payload(secret, timestamp, body)
    return headers


def verify_timestamp(timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS) -> bool:
    if not timestamp:
        return False

    try:
        age = abs(int(time.time()) - int(timestamp))
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False

    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


def verify_signature(
    secret: str,
    body: bytes,
    timestamp: Optional[str],
    signature: Optional[str],
    max_age: int = MAX_WEBHOOK_AGE_SECONDS,
) -> bool:
    """Receiver-side check, shipped so integrators and tests share one implementation"""
    if not signature or not verify_timestamp(timestamp, max_age):
        return False
    expected = sign_payload(secret, timestamp, body)
    return constant_time_compare(expected, signature)
