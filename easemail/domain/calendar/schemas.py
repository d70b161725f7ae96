"""Calendar domain schemas - Pydantic models for validation

Titles and times arrive as raw strings and are checked by the service so that
bad input yields 400 with a specific message.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

RSVP_STATUSES = ("yes", "no", "maybe")


class Participant(BaseModel):
    email: str
    name: Optional[str] = None
    status: Optional[str] = None


class EventCreate(BaseModel):
    title: Optional[str] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    participants: Optional[list[Participant]] = None


class EventUpdate(EventCreate):
    pass


class RsvpRequest(BaseModel):
    status: str


class EventResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    startTime: datetime
    endTime: datetime
    rsvpStatus: Optional[str] = None
    organizerEmail: Optional[str] = None
    participants: list[dict[str, Any]] = []
