"""Email rule repository - Database operations for email rules"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import EmailRule


class EmailRuleRepository:
    """Repository for email rule database operations"""

    @staticmethod
    def list_for_user(db: Session, user_id: int, enabled_only: bool = False) -> list[EmailRule]:
        query = db.query(EmailRule).filter(EmailRule.user_id == user_id)
        if enabled_only:
            query = query.filter(EmailRule.enabled.is_(True))
        return query.order_by(EmailRule.priority.asc(), EmailRule.id.asc()).all()

    @staticmethod
    def get(db: Session, user_id: int, rule_id: int) -> Optional[EmailRule]:
        return db.query(EmailRule).filter(EmailRule.id == rule_id, EmailRule.user_id == user_id).first()

    @staticmethod
    def create(db: Session, user_id: int, **data) -> EmailRule:
        rule = EmailRule(user_id=user_id, **data)
        db.add(rule)
        db.commit()
        db.refresh(rule)
        return rule

    @staticmethod
    def update(db: Session, rule: EmailRule, **updates) -> EmailRule:
        for key, value in updates.items():
            setattr(rule, key, value)
        db.commit()
        db.refresh(rule)
        return rule

    @staticmethod
    def delete(db: Session, rule: EmailRule) -> None:
        db.delete(rule)
        db.commit()
