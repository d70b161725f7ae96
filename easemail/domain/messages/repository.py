"""Message repository - Database operations for messages, labels and mail accounts"""

from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...models import EmailAccount, Label, Message


class MessageRepository:
    """Repository for the local message store"""

    @staticmethod
    def list_for_user(
        db: Session, user_id: int, folder: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> tuple[list[Message], int]:
        query = db.query(Message).filter(Message.user_id == user_id, Message.is_deleted.is_(False))
        if folder:
            query = query.filter(Message.folder == folder)
        total = query.count()
        messages = (
            query.options(selectinload(Message.labels))
            .order_by(Message.received_at.desc(), Message.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return messages, total

    @staticmethod
    def get(db: Session, user_id: int, message_id: int) -> Optional[Message]:
        return (
            db.query(Message)
            .options(selectinload(Message.labels))
            .filter(Message.id == message_id, Message.user_id == user_id)
            .first()
        )

    @staticmethod
    def get_many(db: Session, user_id: int, message_ids: list[int]) -> list[Message]:
        if not message_ids:
            return []
        return (
            db.query(Message)
            .filter(Message.user_id == user_id, Message.id.in_(message_ids))
            .order_by(Message.received_at.desc(), Message.id.desc())
            .all()
        )

    @staticmethod
    def recent_inbox(db: Session, user_id: int, limit: int = 50) -> list[Message]:
        return (
            db.query(Message)
            .filter(
                Message.user_id == user_id,
                Message.folder == "inbox",
                Message.is_deleted.is_(False),
            )
            .order_by(Message.received_at.desc(), Message.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def update(db: Session, message: Message, **updates) -> Message:
        for key, value in updates.items():
            setattr(message, key, value)
        db.commit()
        db.refresh(message)
        return message


class LabelRepository:
    """Repository for per-user labels"""

    @staticmethod
    def list_for_user(db: Session, user_id: int) -> list[Label]:
        return db.query(Label).filter(Label.user_id == user_id).order_by(Label.name.asc()).all()

    @staticmethod
    def get(db: Session, user_id: int, label_id: int) -> Optional[Label]:
        return db.query(Label).filter(Label.id == label_id, Label.user_id == user_id).first()

    @staticmethod
    def get_by_name(db: Session, user_id: int, name: str) -> Optional[Label]:
        return db.query(Label).filter(Label.user_id == user_id, Label.name == name).first()

    @staticmethod
    def create(db: Session, user_id: int, name: str, color: Optional[str] = None) -> Label:
        label = Label(user_id=user_id, name=name, color=color)
        db.add(label)
        db.commit()
        db.refresh(label)
        return label

    @staticmethod
    def delete(db: Session, label: Label) -> None:
        db.delete(label)
        db.commit()


def get_primary_account(db: Session, user_id: int) -> Optional[EmailAccount]:
    return (
        db.query(EmailAccount)
        .filter(EmailAccount.user_id == user_id, EmailAccount.is_primary.is_(True))
        .first()
    )
