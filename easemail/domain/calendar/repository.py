"""Calendar repository - Database operations for calendar events"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import CalendarEvent


class CalendarRepository:
    """Repository for calendar event database operations"""

    @staticmethod
    def list_in_range(
        db: Session, user_id: int, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> list[CalendarEvent]:
        """Events overlapping [start, end]; either bound may be open"""
        query = db.query(CalendarEvent).filter(CalendarEvent.user_id == user_id)
        if start:
            query = query.filter(CalendarEvent.end_time >= start)
        if end:
            query = query.filter(CalendarEvent.start_time <= end)
        return query.order_by(CalendarEvent.start_time.asc(), CalendarEvent.id.asc()).all()

    @staticmethod
    def get(db: Session, user_id: int, event_id: int) -> Optional[CalendarEvent]:
        return (
            db.query(CalendarEvent)
            .filter(CalendarEvent.id == event_id, CalendarEvent.user_id == user_id)
            .first()
        )

    @staticmethod
    def create(db: Session, user_id: int, **data) -> CalendarEvent:
        event = CalendarEvent(user_id=user_id, **data)
        db.add(event)
        db.commit()
        db.refresh(event)
        return event

    @staticmethod
    def update(db: Session, event: CalendarEvent, **updates) -> CalendarEvent:
        for key, value in updates.items():
            setattr(event, key, value)
        db.commit()
        db.refresh(event)
        return event

    @staticmethod
    def delete(db: Session, event: CalendarEvent) -> None:
        db.delete(event)
        db.commit()
