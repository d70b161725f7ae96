import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..domain.admin.repository import AdminRepository
from ..email_service import EmailNotConfigured, EmailSendError, send_notification_email
from ..models import User
from ..shared.validators import validate_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/emails", tags=["Emails"])


class NotificationRequest(BaseModel):
    to: Union[str, list[str]]
    title: str
    message: str
    action_url: Optional[str] = None
    action_label: Optional[str] = None

    @field_validator("to")
    @classmethod
    def validate_recipients(cls, v):
        recipients = [v] if isinstance(v, str) else v
        if not recipients:
            raise ValueError("At least one recipient is required")
        return [validate_email(r) for r in recipients]

    @field_validator("title", "message")
    @classmethod
    def validate_text(cls, v):
        if not v or not v.strip():
            raise ValueError("Field is required")
        return v.strip()


@router.post("/notification")
async def send_notification(
    data: NotificationRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Send a notification email. Super admins and organization owners/admins only."""
    if not (current_user.is_super_admin or AdminRepository.is_org_manager(db, current_user.id)):
        raise HTTPException(status_code=403, detail="Admin access required")

    try:
        result = await send_notification_email(
            to=data.to,
            title=data.title,
            message=data.message,
            action_url=data.action_url,
            action_label=data.action_label,
        )
    except EmailNotConfigured as e:
        raise HTTPException(status_code=503, detail="Email service not configured") from e
    except EmailSendError as e:
        logger.error(f"❌ Notification email failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to send notification email") from e

    email_id = result.get("id") if isinstance(result, dict) else None
    logger.info(f"📧 Notification '{data.title}' sent to {data.to} by user {current_user.id}")
    return {"success": True, "message": "Notification email sent successfully", "emailId": email_id}
