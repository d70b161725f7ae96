"""Message router - FastAPI endpoints for messages and labels"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Message, User
from .schemas import LabelCreate, LabelResponse, MessageDetailResponse, MessageResponse, MessageUpdate
from .service import MessageService

router = APIRouter(tags=["Messages"])


def get_message_service(db: Session = Depends(get_db)) -> MessageService:
    """Dependency injection for MessageService"""
    return MessageService(db)


def _message_fields(message: Message) -> dict:
    return {
        "id": message.id,
        "account_id": message.account_id,
        "from_email": message.from_email,
        "from_name": message.from_name,
        "to": message.to or [],
        "subject": message.subject,
        "snippet": message.snippet,
        "folder": message.folder,
        "is_read": message.is_read,
        "is_starred": message.is_starred,
        "has_attachments": message.has_attachments,
        "received_at": message.received_at,
        "labels": [label.name for label in message.labels],
    }


# ============================================================================
# MESSAGES
# ============================================================================


@router.get("/messages")
async def list_messages(
    folder: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    messages, total = service.list_messages(current_user, folder, limit, offset)
    return {
        "messages": [MessageResponse(**_message_fields(m)) for m in messages],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": total > offset + limit,
        },
    }


@router.get("/messages/{message_id}", response_model=MessageDetailResponse)
async def get_message(
    message_id: int,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    message = service.get_message(current_user, message_id)
    return MessageDetailResponse(**_message_fields(message), body=message.body)


@router.patch("/messages/{message_id}", response_model=MessageResponse)
async def update_message(
    message_id: int,
    data: MessageUpdate,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    message = service.update_message(current_user, message_id, data)
    return MessageResponse(**_message_fields(message))


# ============================================================================
# LABELS
# ============================================================================


@router.get("/labels")
async def list_labels(
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    return {"labels": [LabelResponse.model_validate(l) for l in service.list_labels(current_user)]}


@router.post("/labels", status_code=201, response_model=LabelResponse)
async def create_label(
    data: LabelCreate,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    return service.create_label(current_user, data)


@router.delete("/labels/{label_id}")
async def delete_label(
    label_id: int,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
):
    return service.delete_label(current_user, label_id)


__all__ = ["router"]
