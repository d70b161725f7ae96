import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User, UserPreferences
from ..shared.validators import is_valid_email
from ..usage import ONBOARDING_COMPLETED, track_usage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["Onboarding"])

ONBOARDING_STEPS = ("welcome", "profile", "email_connection", "signature")
EMAIL_PROVIDERS = ("google", "microsoft", "imap")
MAX_SIGNATURE_LENGTH = 10000


class OnboardingRequest(BaseModel):
    use_case: Optional[str] = None
    ai_features_enabled: Optional[bool] = None
    auto_categorize: Optional[bool] = None
    notification_schedule: Optional[dict[str, Any]] = None


class PreferencesResponse(BaseModel):
    id: int
    user_id: int
    use_case: Optional[str] = None
    ai_features_enabled: bool
    auto_categorize: bool
    notification_schedule: Optional[dict[str, Any]] = None
    onboarding_completed: bool
    onboarding_completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def validate_step(step: str, data: dict[str, Any]) -> list[str]:
    """Field errors for one onboarding step; an empty list means the step is complete"""
    if step not in ONBOARDING_STEPS:
        raise ValueError(f"Unknown onboarding step: {step}")

    errors = []
    if step == "profile":
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append("Name is required")
    elif step == "email_connection":
        if data.get("provider") not in EMAIL_PROVIDERS:
            errors.append(f"Provider must be one of: {', '.join(EMAIL_PROVIDERS)}")
        if not is_valid_email(data.get("email")):
            errors.append("A valid email address is required")
    elif step == "signature":
        signature = data.get("signature")
        if signature is not None and not isinstance(signature, str):
            errors.append("Signature must be text")
        elif len(signature or "") > MAX_SIGNATURE_LENGTH:
            errors.append(f"Signature must be {MAX_SIGNATURE_LENGTH} characters or fewer")
    return errors


@router.get("")
async def get_onboarding(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    prefs = db.query(UserPreferences).filter(UserPreferences.user_id == current_user.id).first()
    return {"preferences": PreferencesResponse.model_validate(prefs) if prefs else None}


@router.post("")
async def complete_onboarding(
    data: OnboardingRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Save preferences and mark onboarding complete"""
    prefs = db.query(UserPreferences).filter(UserPreferences.user_id == current_user.id).first()
    if not prefs:
        prefs = UserPreferences(user_id=current_user.id)
        db.add(prefs)

    prefs.use_case = data.use_case
    prefs.ai_features_enabled = True if data.ai_features_enabled is None else data.ai_features_enabled
    prefs.auto_categorize = True if data.auto_categorize is None else data.auto_categorize
    prefs.notification_schedule = data.notification_schedule or {}
    prefs.onboarding_completed = True
    prefs.onboarding_completed_at = datetime.utcnow()

    try:
        db.commit()
        db.refresh(prefs)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Onboarding save error for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save preferences") from e

    track_usage(db, current_user.id, ONBOARDING_COMPLETED)
    logger.info(f"✅ Onboarding completed for user {current_user.id}")
    return {"preferences": PreferencesResponse.model_validate(prefs)}


@router.post("/steps/{step}")
async def validate_onboarding_step(
    step: str,
    data: dict[str, Any],
    current_user: User = Depends(get_current_user),
):
    try:
        errors = validate_step(step, data)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return {"valid": not errors, "errors": errors}
