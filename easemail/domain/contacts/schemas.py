"""Contact domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email


class ContactWrite(BaseModel):
    """Body for both create and full update"""

    givenName: Optional[str] = None
    surname: Optional[str] = None
    emails: list[str]
    phoneNumbers: Optional[list[str]] = None
    companyName: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("emails")
    @classmethod
    def validate_emails(cls, v):
        cleaned = [e for e in (v or []) if e and e.strip()]
        if not cleaned:
            raise ValueError("At least one email is required")
        # Keep order, drop duplicates
        return list(dict.fromkeys(validate_email(e) for e in cleaned))

    @field_validator("phoneNumbers")
    @classmethod
    def validate_phone_numbers(cls, v):
        if v is None:
            return v
        return [p.strip() for p in v if p and p.strip()]

    @field_validator("givenName", "surname", "companyName")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if v else v


class ContactResponse(BaseModel):
    id: int
    givenName: Optional[str] = None
    surname: Optional[str] = None
    emails: list[dict[str, Any]] = []
    phoneNumbers: list[dict[str, Any]] = []
    companyName: Optional[str] = None
    notes: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class RecipientVariables(BaseModel):
    firstName: str
    lastName: str
    fullName: str
    email: str
    company: str
    date: str
    time: str
