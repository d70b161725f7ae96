"""API key schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ApiKeyCreate(BaseModel):
    # Presence is checked by the service so a blank value is a 400, not a 422
    key_name: Optional[str] = None
    key_value: Optional[str] = None


class ApiKeyResponse(BaseModel):
    """Key metadata. The key value is never returned."""

    id: int
    key_name: str
    is_active: bool
    created_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    usage_count: int = 0

    class Config:
        from_attributes = True
