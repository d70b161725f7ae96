import base64
import hashlib
import io
import logging
import secrets
import string
from datetime import datetime
from typing import Optional

import pyotp
import qrcode
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..audit import create_audit_log, request_context
from ..auth import get_current_user
from ..database import get_db
from ..models import BackupCode, OrganizationMember, User
from ..rate_limiter import create_rate_limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/2fa", tags=["Two-Factor Authentication"])

TOTP_ISSUER = "EaseMail"
BACKUP_CODE_COUNT = 10
BACKUP_CODE_LENGTH = 8

rate_limit_2fa_verify = create_rate_limiter(limit=10, window_seconds=300, key_prefix="2fa_verify")

# ==================== Schemas ====================


class EnableRequest(BaseModel):
    token: str
    backupCodes: Optional[list[str]] = None


class VerifyRequest(BaseModel):
    token: Optional[str] = None
    backupCode: Optional[str] = None


class DisableRequest(BaseModel):
    token: str


class SetupResponse(BaseModel):
    secret: str
    qr_code: str
    backup_codes: list[str]


class StatusResponse(BaseModel):
    enabled: bool
    backup_codes_remaining: int


# ==================== Helper Functions ====================


def generate_backup_codes(count: int = BACKUP_CODE_COUNT) -> list[str]:
    """Generate cryptographically secure backup codes"""
    charset = string.ascii_uppercase + string.digits
    return ["".join(secrets.choice(charset) for _ in range(BACKUP_CODE_LENGTH)) for _ in range(count)]


def hash_backup_code(code: str) -> str:
    return hashlib.sha256(code.strip().upper().encode()).hexdigest()


def verify_totp(secret: str, token: Optional[str]) -> bool:
    """Current code or one step either side"""
    if not secret or not token:
        return False
    return pyotp.TOTP(secret).verify(token.strip(), valid_window=1)


def qr_code_data_url(provisioning_uri: str) -> str:
    qr = qrcode.QRCode(version=1, box_size=10, border=5)
    qr.add_data(provisioning_uri)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return f"data:image/png;base64,{base64.b64encode(buffer.getvalue()).decode()}"


def consume_backup_code(db: Session, user: User, code: str) -> bool:
    """Mark a matching unused backup code as used"""
    match = (
        db.query(BackupCode)
        .filter(
            BackupCode.user_id == user.id,
            BackupCode.code_hash == hash_backup_code(code),
            BackupCode.used.is_(False),
        )
        .first()
    )
    if not match:
        return False
    match.used = True
    match.used_at = datetime.utcnow()
    db.commit()
    return True


def _audit_security_change(db: Session, user: User, change: str, request: Request) -> None:
    """Security changes are recorded against every organization the user belongs to"""
    memberships = db.query(OrganizationMember).filter(OrganizationMember.user_id == user.id).all()
    for membership in memberships:
        create_audit_log(
            db,
            membership.organization_id,
            user.id,
            "security_settings_changed",
            {"change": change},
            **request_context(request),
        )


# ==================== Endpoints ====================


@router.get("/status", response_model=StatusResponse)
async def get_2fa_status(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    remaining = (
        db.query(BackupCode)
        .filter(BackupCode.user_id == current_user.id, BackupCode.used.is_(False))
        .count()
    )
    return StatusResponse(enabled=current_user.two_factor_enabled, backup_codes_remaining=remaining)


@router.post("/setup", response_model=SetupResponse)
async def setup_2fa(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Generate a secret and QR code. 2FA stays disabled until /enable confirms a code."""
    if current_user.two_factor_enabled:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="2FA is already enabled")

    secret = pyotp.random_base32()
    provisioning_uri = pyotp.TOTP(secret).provisioning_uri(
        name=current_user.email, issuer_name=TOTP_ISSUER
    )

    current_user.two_factor_secret = secret
    db.commit()
    logger.info(f"🔐 2FA setup started for user {current_user.id}")

    return SetupResponse(
        secret=secret,
        qr_code=qr_code_data_url(provisioning_uri),
        backup_codes=generate_backup_codes(),
    )


@router.post("/enable")
async def enable_2fa(
    data: EnableRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Verify a code against the pending secret and turn 2FA on"""
    if not current_user.two_factor_secret:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="2FA setup not initialized. Call /auth/2fa/setup first.",
        )
    if current_user.two_factor_enabled:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="2FA is already enabled")
    if not verify_totp(current_user.two_factor_secret, data.token):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid verification code")

    current_user.two_factor_enabled = True
    db.query(BackupCode).filter(BackupCode.user_id == current_user.id).delete()
    for code in dict.fromkeys(c for c in data.backupCodes or [] if c and c.strip()):
        db.add(BackupCode(user_id=current_user.id, code_hash=hash_backup_code(code)))
    db.commit()

    logger.info(f"✅ 2FA enabled for user {current_user.id}")
    _audit_security_change(db, current_user, "2fa_enabled", request)
    return {"success": True, "message": "2FA enabled successfully"}


@router.post("/verify", dependencies=[Depends(rate_limit_2fa_verify)])
async def verify_2fa(
    data: VerifyRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Check a TOTP code, falling back to a one-time backup code"""
    if not data.token and not data.backupCode:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Token or backup code is required"
        )
    if not current_user.two_factor_enabled:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="2FA is not enabled")

    if data.token and verify_totp(current_user.two_factor_secret, data.token):
        return {"success": True, "method": "totp"}

    if data.backupCode and consume_backup_code(db, current_user, data.backupCode):
        logger.info(f"🔑 Backup code used by user {current_user.id}")
        return {"success": True, "method": "backup_code"}

    logger.warning(f"⚠️ Failed 2FA verification for user {current_user.id}")
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid verification code")


@router.post("/disable")
async def disable_2fa(
    data: DisableRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not current_user.two_factor_enabled:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="2FA is not enabled")
    if not verify_totp(current_user.two_factor_secret, data.token):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid verification code")

    current_user.two_factor_enabled = False
    current_user.two_factor_secret = None
    db.query(BackupCode).filter(BackupCode.user_id == current_user.id).delete()
    db.commit()

    logger.info(f"🔓 2FA disabled for user {current_user.id}")
    _audit_security_change(db, current_user, "2fa_disabled", request)
    return {"success": True, "message": "2FA disabled successfully"}
