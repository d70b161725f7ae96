"""Symmetric encryption for secrets stored in the database (organization API keys)"""

import base64
import hashlib
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from .config import ENCRYPTION_KEY, SECRET_KEY

logger = logging.getLogger(__name__)


def get_fernet_key() -> bytes:
    """Derive a Fernet key from ENCRYPTION_KEY, or SECRET_KEY when it is unset"""
    material = ENCRYPTION_KEY or SECRET_KEY
    if not ENCRYPTION_KEY:
        logger.warning("⚠️ ENCRYPTION_KEY not set - deriving API key encryption from SECRET_KEY")
    key = hashlib.sha256(material.encode()).digest()
    return base64.urlsafe_b64encode(key)


cipher = Fernet(get_fernet_key())


def encrypt_secret(plaintext: str) -> str:
    if not plaintext or not plaintext.strip():
        raise ValueError("Cannot encrypt empty value")
    return cipher.encrypt(plaintext.encode()).decode()


def decrypt_secret(ciphertext: str) -> Optional[str]:
    """Returns None when the value is empty or was not produced by this key"""
    if not ciphertext:
        return None
    try:
        return cipher.decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        logger.error("❌ Failed to decrypt stored secret (wrong key or corrupted value)")
        return None
