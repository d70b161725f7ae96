"""Contact service - Business logic for the address book"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import CONTACTS_TTL, cache, contacts_key, invalidate_contacts
from ...models import Contact, User
from ...template_variables import variables_from_address, variables_from_contact
from ...usage import CONTACT_CREATE, track_usage
from .repository import ContactRepository
from .schemas import ContactWrite

logger = logging.getLogger(__name__)


def serialize_contact(contact: Contact) -> dict:
    return {
        "id": contact.id,
        "givenName": contact.given_name,
        "surname": contact.surname,
        "emails": contact.emails or [],
        "phoneNumbers": contact.phone_numbers or [],
        "companyName": contact.company_name,
        "notes": contact.notes,
        "createdAt": contact.created_at,
        "updatedAt": contact.updated_at,
    }


def _matches(contact: dict, term: str) -> bool:
    haystack = [contact.get("givenName"), contact.get("surname"), contact.get("companyName")]
    haystack += [e.get("email") for e in contact.get("emails") or []]
    return any(term in value.lower() for value in haystack if value)


def recipient_variables(db: Session, user: User, email: str) -> dict[str, str]:
    """Template variables for a recipient, from the saved contact when there is one"""
    contact = ContactRepository.find_by_email(db, user.id, email)
    if contact:
        return variables_from_contact(email, contact.given_name, contact.surname, contact.company_name)
    return variables_from_address(email)


class ContactService:
    """Service layer for contacts"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ContactRepository()

    def _fields(self, data: ContactWrite) -> dict:
        return {
            "given_name": data.givenName,
            "surname": data.surname,
            "emails": [{"email": e, "type": "work"} for e in data.emails],
            "phone_numbers": [{"number": p, "type": "mobile"} for p in data.phoneNumbers or []],
            "company_name": data.companyName,
            "notes": data.notes,
        }

    def list_contacts(self, user: User, search: Optional[str] = None) -> list[dict]:
        key = contacts_key(user.id)
        contacts = cache.get(key)
        if contacts is None:
            contacts = [serialize_contact(c) for c in self.repo.list_for_user(self.db, user.id)]
            cache.set(key, contacts, CONTACTS_TTL)

        term = (search or "").strip().lower()
        if term:
            contacts = [c for c in contacts if _matches(c, term)]
        return contacts

    def get_contact(self, user: User, contact_id: int) -> Contact:
        contact = self.repo.get(self.db, user.id, contact_id)
        if not contact:
            raise HTTPException(status_code=404, detail="Contact not found")
        return contact

    def create_contact(self, user: User, data: ContactWrite) -> Contact:
        contact = self.repo.create(self.db, user.id, **self._fields(data))
        invalidate_contacts(user.id)
        track_usage(self.db, user.id, CONTACT_CREATE)
        logger.info(f"🆕 Contact {contact.id} created for user {user.id}")
        return contact

    def update_contact(self, user: User, contact_id: int, data: ContactWrite) -> Contact:
        contact = self.get_contact(user, contact_id)
        contact = self.repo.update(self.db, contact, **self._fields(data))
        invalidate_contacts(user.id)
        return contact

    def delete_contact(self, user: User, contact_id: int) -> dict:
        contact = self.get_contact(user, contact_id)
        self.repo.delete(self.db, contact)
        invalidate_contacts(user.id)
        return {"success": True}
