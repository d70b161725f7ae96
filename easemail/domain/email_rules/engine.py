"""Rule matching and action application against the local message store"""

import logging
from typing import Any

from sqlalchemy.orm import Session

from ...models import EmailRule, Message
from ..messages.repository import LabelRepository

logger = logging.getLogger(__name__)


def field_value(message: Message, field: str) -> str:
    if field == "from":
        return message.from_email or ""
    if field == "to":
        return ", ".join(message.to or [])
    if field == "subject":
        return message.subject or ""
    if field == "body":
        return message.body or message.snippet or ""
    return ""


def matches_condition(message: Message, condition: dict[str, Any]) -> bool:
    """Case-insensitive match of one condition; unknown fields or operators never match"""
    field = condition.get("field")
    operator = condition.get("operator")
    value = condition.get("value")

    if field == "has_attachment":
        return bool(message.has_attachments)
    if field not in ("from", "to", "subject", "body"):
        return False

    actual = field_value(message, field).lower()
    expected = value.lower() if isinstance(value, str) else ""

    if operator == "contains":
        return expected in actual
    if operator == "equals":
        return actual == expected
    if operator == "starts_with":
        return actual.startswith(expected)
    if operator == "ends_with":
        return actual.endswith(expected)
    if operator == "not_contains":
        return expected not in actual
    return False


def matches_rule(message: Message, rule: EmailRule) -> bool:
    # All conditions must hold
    return all(matches_condition(message, c) for c in rule.conditions or [])


def _apply_action(db: Session, message: Message, rule: EmailRule, action: dict[str, Any]):
    """Apply one action in memory; returns the result text or None when skipped"""
    action_type = action.get("type")
    value = action.get("value")

    if action_type == "mark_as_read":
        message.is_read = True
        return "Marked as read"
    if action_type == "mark_as_starred":
        message.is_starred = True
        return "Starred"
    if action_type == "archive":
        message.folder = "archive"
        return "Archived"
    if action_type == "delete":
        message.is_deleted = True
        message.folder = "trash"
        return "Deleted"
    if action_type == "move_to_folder" and value:
        message.folder = value
        return f"Moved to {value}"
    if action_type == "apply_label" and value:
        label = LabelRepository.get_by_name(db, rule.user_id, value)
        if not label:
            logger.info(f"🔍 Label '{value}' not found for user {rule.user_id}, skipping")
            return None
        if label not in message.labels:
            message.labels.append(label)
        return f"Applied label: {value}"
    return None


def apply_actions(db: Session, message: Message, rule: EmailRule) -> list[str]:
    applied = []
    for action in rule.actions or []:
        try:
            result = _apply_action(db, message, rule, action)
        except Exception as e:
            logger.error(f"❌ Failed to apply action {action.get('type')} on message {message.id}: {e}")
            continue
        if result:
            applied.append(result)
    return applied
