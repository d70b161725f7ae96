"""Webhook domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_http_url

WEBHOOK_EVENTS = [
    "member.added",
    "member.removed",
    "member.role_changed",
    "invite.sent",
    "invite.accepted",
    "organization.updated",
    "plan.changed",
    "subscription.cancelled",
    "payment.succeeded",
    "payment.failed",
]

TEST_EVENT = "webhook.test"


def _validate_events(events: list[str]) -> list[str]:
    if not events:
        raise ValueError("At least one event is required")
    unknown = [e for e in events if e not in WEBHOOK_EVENTS]
    if unknown:
        raise ValueError(f"Unknown events: {', '.join(unknown)}")
    # Keep order, drop duplicates
    return list(dict.fromkeys(events))


class WebhookCreate(BaseModel):
    name: str
    url: str
    events: list[str]
    secret: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Name is required")
        return v.strip()

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        return validate_http_url(v)

    @field_validator("events")
    @classmethod
    def validate_events(cls, v):
        return _validate_events(v)


class WebhookUpdate(BaseModel):
    name: Optional[str] = None
    url: Optional[str] = None
    events: Optional[list[str]] = None
    secret: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip() if v else v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        return validate_http_url(v) if v is not None else v

    @field_validator("events")
    @classmethod
    def validate_events(cls, v):
        return _validate_events(v) if v is not None else v


class WebhookResponse(BaseModel):
    id: int
    organization_id: int
    name: str
    url: str
    events: list[str]
    has_secret: bool = False
    is_active: bool
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DeliveryResponse(BaseModel):
    id: int
    webhook_id: int
    event_type: str
    payload: dict[str, Any]
    response_status: Optional[int] = None
    response_body: Optional[str] = None
    delivered_at: Optional[datetime] = None
    retry_count: int
    next_retry_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    hasMore: bool


class DeliveryListResponse(BaseModel):
    deliveries: list[DeliveryResponse]
    pagination: Pagination


class DeliveryAttemptResponse(BaseModel):
    success: bool
    status: int
    message: str
