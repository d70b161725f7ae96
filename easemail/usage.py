"""Feature usage counters"""

import logging

from sqlalchemy.orm import Session

from .models import UsageTracking

logger = logging.getLogger(__name__)

CONTACT_CREATE = "contact_create"
CALENDAR_EVENT = "calendar_event"
CALENDAR_RSVP = "calendar_rsvp"
ONBOARDING_COMPLETED = "onboarding_completed"


def track_usage(db: Session, user_id: int, feature: str) -> bool:
    """Record one use of a feature. Never raises."""
    try:
        db.add(UsageTracking(user_id=user_id, feature=feature))
        db.commit()
        return True
    except Exception as e:
        db.rollback()
        logger.warning(f"⚠️ Failed to track usage {feature} for user {user_id}: {e}")
        return False
