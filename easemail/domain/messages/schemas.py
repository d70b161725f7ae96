"""Message domain schemas - Pydantic models for validation"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

COLOR_PATTERN = re.compile(r"^#[0-9a-fA-F]{6}$")


class MessageResponse(BaseModel):
    id: int
    account_id: int
    from_email: Optional[str] = None
    from_name: Optional[str] = None
    to: list[str] = []
    subject: Optional[str] = None
    snippet: Optional[str] = None
    folder: str
    is_read: bool
    is_starred: bool
    has_attachments: bool
    received_at: Optional[datetime] = None
    labels: list[str] = []


class MessageDetailResponse(MessageResponse):
    body: Optional[str] = None


class MessageUpdate(BaseModel):
    is_read: Optional[bool] = None
    is_starred: Optional[bool] = None
    folder: Optional[str] = None

    @field_validator("folder")
    @classmethod
    def validate_folder(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Folder cannot be empty")
        return v.strip().lower() if v else v


class LabelCreate(BaseModel):
    name: str
    color: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError("Label name is required")
        if len(v) > 100:
            raise ValueError("Label name must be 100 characters or fewer")
        return v

    @field_validator("color")
    @classmethod
    def validate_color(cls, v):
        if v is not None and not COLOR_PATTERN.match(v):
            raise ValueError("Color must be a hex value like #1A73E8")
        return v


class LabelResponse(BaseModel):
    id: int
    name: str
    color: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
