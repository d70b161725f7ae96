"""Calendar router - FastAPI endpoints for calendar events"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import EventCreate, EventResponse, EventUpdate, RsvpRequest
from .service import CalendarService, serialize_event

router = APIRouter(prefix="/calendar", tags=["Calendar"])


def get_calendar_service(db: Session = Depends(get_db)) -> CalendarService:
    """Dependency injection for CalendarService"""
    return CalendarService(db)


@router.get("")
async def list_events(
    start: Optional[str] = Query(None, description="ISO datetime, window start"),
    end: Optional[str] = Query(None, description="ISO datetime, window end"),
    current_user: User = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service),
):
    """Events overlapping the window, ordered by start time"""
    events = service.list_events(current_user, start, end)
    return {"events": [EventResponse(**e) for e in events]}


@router.post("", status_code=201)
async def create_event(
    data: EventCreate,
    current_user: User = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service),
):
    event = service.create_event(current_user, data)
    return {"event": EventResponse(**serialize_event(event))}


@router.patch("/{event_id}")
async def update_event(
    event_id: int,
    data: EventUpdate,
    current_user: User = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service),
):
    event = service.update_event(current_user, event_id, data)
    return {"event": EventResponse(**serialize_event(event))}


@router.delete("/{event_id}")
async def delete_event(
    event_id: int,
    current_user: User = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service),
):
    return service.delete_event(current_user, event_id)


@router.post("/{event_id}/rsvp")
async def rsvp_event(
    event_id: int,
    data: RsvpRequest,
    current_user: User = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service),
):
    return service.rsvp(current_user, event_id, data.status)


__all__ = ["router"]
