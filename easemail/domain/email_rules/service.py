"""Email rule service - Business logic for rule CRUD and processing"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import EmailRule, User
from ..messages.repository import MessageRepository, get_primary_account
from .engine import apply_actions, matches_rule
from .repository import EmailRuleRepository
from .schemas import EmailRuleCreate, EmailRuleUpdate

logger = logging.getLogger(__name__)

RECENT_INBOX_LIMIT = 50


class EmailRuleService:
    """Service layer for email rules"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = EmailRuleRepository()
        self.messages = MessageRepository()

    def list_rules(self, user: User) -> list[EmailRule]:
        return self.repo.list_for_user(self.db, user.id)

    def get_rule(self, user: User, rule_id: int) -> EmailRule:
        rule = self.repo.get(self.db, user.id, rule_id)
        if not rule:
            raise HTTPException(status_code=404, detail="Rule not found")
        return rule

    def create_rule(self, user: User, data: EmailRuleCreate) -> EmailRule:
        rule = self.repo.create(
            self.db,
            user.id,
            name=data.name,
            conditions=[c.model_dump() for c in data.conditions],
            actions=[a.model_dump(exclude_none=True) for a in data.actions],
            enabled=data.enabled,
            priority=data.priority,
        )
        logger.info(f"🆕 Email rule {rule.id} created for user {user.id}")
        return rule

    def update_rule(self, user: User, rule_id: int, data: EmailRuleUpdate) -> EmailRule:
        rule = self.get_rule(user, rule_id)
        updates = data.model_dump(exclude_unset=True, exclude_none=True)
        if "conditions" in updates:
            updates["conditions"] = [c.model_dump() for c in data.conditions]
        if "actions" in updates:
            updates["actions"] = [a.model_dump(exclude_none=True) for a in data.actions]
        if not updates:
            return rule
        return self.repo.update(self.db, rule, **updates)

    def delete_rule(self, user: User, rule_id: int) -> dict:
        rule = self.get_rule(user, rule_id)
        self.repo.delete(self.db, rule)
        return {"success": True}

    def process_rules(self, user: User, message_ids: Optional[list[int]] = None) -> dict:
        """
        Run the user's enabled rules over the given messages, or the most recent inbox.

        Rules run in priority order and every matching rule applies; a message is
        counted once per rule that applied at least one action.
        """
        if not get_primary_account(self.db, user.id):
            raise HTTPException(status_code=400, detail="No email account connected")

        rules = self.repo.list_for_user(self.db, user.id, enabled_only=True)
        if not rules:
            return {"message": "No active rules to process", "processed": 0, "results": []}

        if message_ids:
            messages = self.messages.get_many(self.db, user.id, message_ids)
        else:
            messages = self.messages.recent_inbox(self.db, user.id, RECENT_INBOX_LIMIT)

        processed = 0
        results = []
        for message in messages:
            for rule in rules:
                if not matches_rule(message, rule):
                    continue
                applied = apply_actions(self.db, message, rule)
                if applied:
                    processed += 1
                    results.append(
                        {
                            "messageId": message.id,
                            "subject": message.subject,
                            "rule": rule.name,
                            "actions": applied,
                        }
                    )

        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to save rule results for user {user.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to process email rules") from e

        logger.info(f"✅ Processed {processed} message(s) with {len(rules)} rule(s) for user {user.id}")
        return {"message": f"Processed {processed} message(s)", "processed": processed, "results": results}
