import logging
from datetime import datetime

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from .config import SUPABASE_JWT_AUDIENCE, SUPABASE_JWT_SECRET
from .database import get_db
from .models import User

logger = logging.getLogger(__name__)

security = HTTPBearer()

SUPABASE_JWT_ALGORITHM = "HS256"


def verify_supabase_token(token: str) -> dict:
    """
    Verify a Supabase access token.
    Supabase signs session JWTs with the project's JWT secret (HS256).
    """
    if not SUPABASE_JWT_SECRET:
        logger.error("❌ SUPABASE_JWT_SECRET not configured")
        raise HTTPException(status_code=500, detail="Authentication not configured")

    try:
        payload = jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            algorithms=[SUPABASE_JWT_ALGORITHM],
            audience=SUPABASE_JWT_AUDIENCE,
            options={"require_exp": True, "require_sub": True},
        )
    except ExpiredSignatureError as e:
        logger.warning("⚠️ Expired Supabase token")
        raise HTTPException(status_code=401, detail="Token expired") from e
    except JWTError as e:
        logger.warning(f"⚠️ Supabase token verification failed: {e}")
        raise HTTPException(status_code=401, detail="Token verification failed") from e

    logger.debug(f"✅ Token verified for user: {payload.get('email')}")
    return payload


def _display_name(claims: dict) -> str:
    metadata = claims.get("user_metadata") or {}
    return metadata.get("full_name") or metadata.get("name") or ""


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from Supabase token"""

    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    claims = verify_supabase_token(token)
    supabase_uid = claims.get("sub")
    email = (claims.get("email") or "").lower()
    name = _display_name(claims)

    if not supabase_uid:
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(claims.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    # Find or create user in our database
    user = db.query(User).filter(User.supabase_uid == supabase_uid).first()

    if not user and email:
        # Users created by an admin exist before their first Supabase login
        user = db.query(User).filter(User.email == email).first()
        if user:
            logger.info(f"🔄 Linking user {email} to Supabase UID {supabase_uid}")
            user.supabase_uid = supabase_uid
            if name and not user.name:
                user.name = name

    if not user:
        logger.info(f"🆕 Creating new user: {email}")
        user = User(supabase_uid=supabase_uid, email=email, name=name or None)
        db.add(user)

    user.last_login_at = datetime.utcnow()
    user.login_count = (user.login_count or 0) + 1

    try:
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        if "unique" in str(e).lower() or "duplicate key" in str(e).lower():
            logger.error(f"❌ Email {email} was taken by another account (race condition)")
            raise HTTPException(
                status_code=409,
                detail="This email is already registered. Please sign in with your existing account.",
            ) from e
        logger.error(f"❌ Authentication failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Authentication failed") from e

    return user


async def require_super_admin(user: User = Depends(get_current_user)) -> User:
    """Only platform super admins may continue"""
    if not user.is_super_admin:
        logger.warning(f"⚠️ User {user.email} attempted super admin route")
        raise HTTPException(status_code=403, detail="Super admin access required")
    return user
