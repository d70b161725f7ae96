"""Organization audit trail"""

import logging
from typing import Any, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from .models import AuditLog

logger = logging.getLogger(__name__)

AUDIT_ACTIONS = {
    "member_added": ("Member Added", "👥"),
    "member_removed": ("Member Removed", "👤"),
    "member_role_changed": ("Member Role Changed", "🔄"),
    "invite_sent": ("Invitation Sent", "📧"),
    "invite_accepted": ("Invitation Accepted", "✅"),
    "invite_revoked": ("Invitation Revoked", "❌"),
    "invite_resent": ("Invitation Resent", "📨"),
    "organization_created": ("Organization Created", "🏢"),
    "organization_updated": ("Organization Updated", "✏️"),
    "organization_deleted": ("Organization Deleted", "🗑️"),
    "transfer_ownership": ("Ownership Transferred", "👑"),
    "plan_changed": ("Plan Changed", "📦"),
    "billing_cycle_changed": ("Billing Cycle Changed", "📅"),
    "subscription_cancelled": ("Subscription Cancelled", "🚫"),
    "seats_added": ("Seats Added", "➕"),
    "payment_method_added": ("Payment Method Added", "💳"),
    "payment_method_removed": ("Payment Method Removed", "💳"),
    "api_key_created": ("API Key Created", "🔑"),
    "api_key_rotated": ("API Key Rotated", "🔄"),
    "api_key_revoked": ("API Key Revoked", "🔒"),
    "settings_changed": ("Settings Changed", "⚙️"),
    "security_settings_changed": ("Security Settings Changed", "🔐"),
}


def get_action_label(action: str) -> str:
    return AUDIT_ACTIONS.get(action, (action, ""))[0]


def get_action_icon(action: str) -> str:
    entry = AUDIT_ACTIONS.get(action)
    return entry[1] if entry else "📝"


def request_context(request: Optional[Request]) -> dict:
    """Client IP and user agent for an audit entry"""
    if request is None:
        return {}
    forwarded = request.headers.get("X-Forwarded-For")
    ip = forwarded.split(",")[0].strip() if forwarded else (request.client.host if request.client else None)
    return {"ip_address": ip, "user_agent": request.headers.get("user-agent")}


def create_audit_log(
    db: Session,
    organization_id: Optional[int],
    user_id: Optional[int],
    action: str,
    details: Optional[dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Optional[AuditLog]:
    """
    Record an audit entry in its own commit.
    Failures are logged and swallowed so the calling operation still succeeds.
    """
    if action not in AUDIT_ACTIONS:
        logger.warning(f"⚠️ Unknown audit action: {action}")

    try:
        entry = AuditLog(
            organization_id=organization_id,
            user_id=user_id,
            action=action,
            details=details or {},
            ip_address=ip_address,
            user_agent=(user_agent or "")[:500] or None,
        )
        db.add(entry)
        db.commit()
        return entry
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to create audit log ({action}): {e}")
        return None
