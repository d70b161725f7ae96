"""Message service - Business logic for the local message store and labels"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Label, Message, User
from .repository import LabelRepository, MessageRepository
from .schemas import LabelCreate, MessageUpdate

logger = logging.getLogger(__name__)


class MessageService:
    """Service layer for messages and labels"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = MessageRepository()
        self.labels = LabelRepository()

    def list_messages(
        self, user: User, folder: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> tuple[list[Message], int]:
        return self.repo.list_for_user(self.db, user.id, folder, limit, offset)

    def get_message(self, user: User, message_id: int) -> Message:
        message = self.repo.get(self.db, user.id, message_id)
        if not message:
            raise HTTPException(status_code=404, detail="Message not found")
        return message

    def update_message(self, user: User, message_id: int, data: MessageUpdate) -> Message:
        message = self.get_message(user, message_id)
        updates = data.model_dump(exclude_unset=True, exclude_none=True)
        if not updates:
            return message
        return self.repo.update(self.db, message, **updates)

    def list_labels(self, user: User) -> list[Label]:
        return self.labels.list_for_user(self.db, user.id)

    def create_label(self, user: User, data: LabelCreate) -> Label:
        if self.labels.get_by_name(self.db, user.id, data.name):
            raise HTTPException(status_code=409, detail="A label with this name already exists")
        try:
            return self.labels.create(self.db, user.id, data.name, data.color)
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(
                status_code=409, detail="A label with this name already exists"
            ) from e

    def delete_label(self, user: User, label_id: int) -> dict:
        label = self.labels.get(self.db, user.id, label_id)
        if not label:
            raise HTTPException(status_code=404, detail="Label not found")
        self.labels.delete(self.db, label)
        logger.info(f"🗑️ Label {label_id} deleted for user {user.id}")
        return {"success": True}
