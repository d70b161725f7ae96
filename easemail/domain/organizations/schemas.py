"""Organization domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...models import ORG_ROLES
from ...shared.validators import validate_email


def _validate_role(v: str) -> str:
    role = (v or "").upper()
    if role not in ORG_ROLES:
        raise ValueError(f"Role must be one of: {', '.join(ORG_ROLES)}")
    return role


class OrganizationCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = (v or "").strip()
        if len(v) < 2:
            raise ValueError("Organization name must be at least 2 characters")
        return v


class OrganizationUpdate(BaseModel):
    name: Optional[str] = None
    seats: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Organization name must be at least 2 characters")
        return v

    @field_validator("seats")
    @classmethod
    def validate_seats(cls, v):
        if v is not None and v < 1:
            raise ValueError("Seats must be at least 1")
        return v


class OrganizationResponse(BaseModel):
    id: int
    name: str
    slug: str
    domain: Optional[str] = None
    plan: str
    seats: int
    seats_used: int
    billing_email: Optional[str] = None
    billing_cycle: str
    next_billing_date: Optional[datetime] = None
    mrr: float
    arr: float
    uses_master_api_key: bool
    created_at: Optional[datetime] = None
    role: Optional[str] = None

    class Config:
        from_attributes = True


class MemberResponse(BaseModel):
    id: int
    user_id: int
    role: str
    joined_at: Optional[datetime] = None
    email: str
    name: Optional[str] = None
    last_login_at: Optional[datetime] = None
    login_count: int = 0


class InviteResponse(BaseModel):
    id: int
    email: str
    role: str
    expires_at: datetime
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrganizationDetailResponse(BaseModel):
    organization: OrganizationResponse
    members: list[MemberResponse]
    pendingInvites: list[InviteResponse]
    currentUserRole: str


class MemberInvite(BaseModel):
    email: str
    role: str = "MEMBER"

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        if not v:
            raise ValueError("Email is required")
        return validate_email(v)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _validate_role(v)


class RoleChange(BaseModel):
    userId: int
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        return _validate_role(v)


class TransferOwnership(BaseModel):
    newOwnerId: int


class InviteAccept(BaseModel):
    token: str

    @field_validator("token")
    @classmethod
    def validate_token(cls, v):
        if not v or not v.strip():
            raise ValueError("Token is required")
        return v.strip()


class AuditLogEntry(BaseModel):
    id: int
    action: str
    action_label: str
    action_icon: str
    details: Optional[dict[str, Any]] = None
    user_id: Optional[int] = None
    user_email: Optional[str] = None
    ip_address: Optional[str] = None
    timestamp: Optional[datetime] = None
