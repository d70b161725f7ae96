"""Calendar service - Business logic for calendar events"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import EVENTS_TTL, cache, events_key, invalidate_events
from ...models import CalendarEvent, User
from ...usage import CALENDAR_EVENT, CALENDAR_RSVP, track_usage
from .repository import CalendarRepository
from .schemas import RSVP_STATUSES, EventCreate, EventUpdate

logger = logging.getLogger(__name__)


def parse_datetime(value: str) -> datetime:
    """ISO 8601 to naive UTC. Raises ValueError on anything unparseable."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def serialize_event(event: CalendarEvent) -> dict:
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "location": event.location,
        "startTime": event.start_time,
        "endTime": event.end_time,
        "rsvpStatus": event.rsvp_status,
        "organizerEmail": event.organizer_email,
        "participants": event.participants or [],
    }


def _validated_fields(title, start_time, end_time) -> tuple[str, datetime, datetime]:
    if not title or not title.strip():
        raise HTTPException(status_code=400, detail="Title is required")
    if not start_time or not end_time:
        raise HTTPException(status_code=400, detail="Start time and end time are required")

    try:
        start = parse_datetime(start_time) if isinstance(start_time, str) else start_time
        end = parse_datetime(end_time) if isinstance(end_time, str) else end_time
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid date format") from e

    if end <= start:
        raise HTTPException(status_code=400, detail="End time must be after start time")
    return title.strip(), start, end


class CalendarService:
    """Service layer for calendar events"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CalendarRepository()

    def list_events(self, user: User, start: Optional[str] = None, end: Optional[str] = None) -> list[dict]:
        try:
            start_at = parse_datetime(start) if start else None
            end_at = parse_datetime(end) if end else None
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Invalid date format") from e

        key = events_key(user.id, start, end)
        events = cache.get(key)
        if events is None:
            events = [serialize_event(e) for e in self.repo.list_in_range(self.db, user.id, start_at, end_at)]
            cache.set(key, events, EVENTS_TTL)
        return events

    def get_event(self, user: User, event_id: int) -> CalendarEvent:
        event = self.repo.get(self.db, user.id, event_id)
        if not event:
            raise HTTPException(status_code=404, detail="Event not found")
        return event

    def create_event(self, user: User, data: EventCreate) -> CalendarEvent:
        title, start, end = _validated_fields(data.title, data.startTime, data.endTime)
        event = self.repo.create(
            self.db,
            user.id,
            title=title,
            start_time=start,
            end_time=end,
            description=data.description or "",
            location=data.location or "",
            organizer_email=user.email,
            participants=[p.model_dump(exclude_none=True) for p in data.participants or []],
        )
        invalidate_events(user.id)
        track_usage(self.db, user.id, CALENDAR_EVENT)
        logger.info(f"📅 Event {event.id} created for user {user.id}")
        return event

    def update_event(self, user: User, event_id: int, data: EventUpdate) -> CalendarEvent:
        event = self.get_event(user, event_id)
        provided = data.model_dump(exclude_unset=True)

        title, start, end = _validated_fields(
            provided.get("title", event.title),
            provided.get("startTime", event.start_time),
            provided.get("endTime", event.end_time),
        )
        updates = {"title": title, "start_time": start, "end_time": end}
        if "description" in provided:
            updates["description"] = data.description or ""
        if "location" in provided:
            updates["location"] = data.location or ""
        if "participants" in provided:
            updates["participants"] = [p.model_dump(exclude_none=True) for p in data.participants or []]

        event = self.repo.update(self.db, event, **updates)
        invalidate_events(user.id)
        return event

    def delete_event(self, user: User, event_id: int) -> dict:
        event = self.get_event(user, event_id)
        self.repo.delete(self.db, event)
        invalidate_events(user.id)
        return {"success": True}

    def rsvp(self, user: User, event_id: int, status: str) -> dict:
        if status not in RSVP_STATUSES:
            raise HTTPException(status_code=400, detail="Invalid RSVP status")
        event = self.get_event(user, event_id)
        self.repo.update(self.db, event, rsvp_status=status)
        invalidate_events(user.id)
        track_usage(self.db, user.id, CALENDAR_RSVP)
        return {"success": True, "status": status}
