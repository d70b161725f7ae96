"""Contact router - FastAPI endpoints for contacts"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...shared.validators import validate_email
from ...template_variables import DEFAULT_VARIABLES
from .schemas import ContactResponse, ContactWrite, RecipientVariables
from .service import ContactService, recipient_variables, serialize_contact

router = APIRouter(prefix="/contacts", tags=["Contacts"])


def get_contact_service(db: Session = Depends(get_db)) -> ContactService:
    """Dependency injection for ContactService"""
    return ContactService(db)


@router.get("")
async def list_contacts(
    search: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    contacts = service.list_contacts(current_user, search)
    return {"contacts": [ContactResponse(**c) for c in contacts]}


@router.get("/variables")
async def get_recipient_variables(
    email: str = Query(..., min_length=3),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Template variable values for one recipient plus the list of supported placeholders"""
    try:
        email = validate_email(email)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {
        "variables": RecipientVariables(**recipient_variables(db, current_user, email)),
        "available": DEFAULT_VARIABLES,
    }


@router.post("", status_code=201)
async def create_contact(
    data: ContactWrite,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    contact = service.create_contact(current_user, data)
    return {"contact": ContactResponse(**serialize_contact(contact))}


@router.put("/{contact_id}")
async def update_contact(
    contact_id: int,
    data: ContactWrite,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    contact = service.update_contact(current_user, contact_id, data)
    return {"contact": ContactResponse(**serialize_contact(contact))}


@router.delete("/{contact_id}")
async def delete_contact(
    contact_id: int,
    current_user: User = Depends(get_current_user),
    service: ContactService = Depends(get_contact_service),
):
    return service.delete_contact(current_user, contact_id)


__all__ = ["router"]
