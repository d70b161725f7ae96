import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from .. import email_service
from ..database import get_db
from ..domain.admin.repository import AdminRepository
from ..rate_limiter import create_rate_limiter
from ..shared.validators import validate_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Password Reset"])

rate_limit_password_reset = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="password_reset")

RESET_REQUESTED_MESSAGE = "If an account exists for this email, a password reset link has been sent."


class PasswordResetRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        if not v:
            raise ValueError("Email is required")
        return validate_email(v)


@router.post("/password-reset", dependencies=[Depends(rate_limit_password_reset)])
async def request_password_reset(data: PasswordResetRequest, db: Session = Depends(get_db)):
    """
    Send a reset link to a known address.

    The response is identical whether or not the account exists.
    """
    user = AdminRepository.get_user_by_email(db, data.email)
    if user:
        sent = await email_service.send_safely(
            email_service.send_password_reset_email(user.email, email_service.build_reset_link(user.email)),
            f"password reset email to {user.email}",
        )
        if sent:
            logger.info(f"🔑 Password reset link sent to user {user.id}")
    else:
        logger.info("🔍 Password reset requested for unknown email")
    return {"success": True, "message": RESET_REQUESTED_MESSAGE}
