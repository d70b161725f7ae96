"""Contact repository - Database operations for contacts"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Contact


class ContactRepository:
    """Repository for contact database operations"""

    @staticmethod
    def list_for_user(db: Session, user_id: int) -> list[Contact]:
        return (
            db.query(Contact)
            .filter(Contact.user_id == user_id)
            .order_by(Contact.given_name.asc(), Contact.id.asc())
            .all()
        )

    @staticmethod
    def get(db: Session, user_id: int, contact_id: int) -> Optional[Contact]:
        return db.query(Contact).filter(Contact.id == contact_id, Contact.user_id == user_id).first()

    @staticmethod
    def find_by_email(db: Session, user_id: int, email: str) -> Optional[Contact]:
        """Contact holding this address; the JSON list is scanned in Python so any backend works"""
        target = email.strip().lower()
        for contact in ContactRepository.list_for_user(db, user_id):
            if any((e.get("email") or "").lower() == target for e in contact.emails or []):
                return contact
        return None

    @staticmethod
    def create(db: Session, user_id: int, **data) -> Contact:
        contact = Contact(user_id=user_id, **data)
        db.add(contact)
        db.commit()
        db.refresh(contact)
        return contact

    @staticmethod
    def update(db: Session, contact: Contact, **updates) -> Contact:
        for key, value in updates.items():
            setattr(contact, key, value)
        db.commit()
        db.refresh(contact)
        return contact

    @staticmethod
    def delete(db: Session, contact: Contact) -> None:
        db.delete(contact)
        db.commit()
