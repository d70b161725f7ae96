"""Shared validation utilities"""

import re
from typing import Any, Optional
from urllib.parse import urlparse

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"


def is_valid_email(email: Any) -> bool:
    if not isinstance(email, str) or not email:
        return False
    return re.match(EMAIL_PATTERN, email.strip()) is not None


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase, stripped email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()
    if not re.match(EMAIL_PATTERN, email):
        raise ValueError("Invalid email format")
    return email


def validate_http_url(url: str) -> str:
    """Webhook targets must be absolute http(s) URLs"""
    url = (url or "").strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("URL must be a valid http or https URL")
    return url


def validate_required_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{field} is required")
    return value.strip()


def slugify(name: str) -> str:
    """Lowercase with every run of non-alphanumerics collapsed to '-'"""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
