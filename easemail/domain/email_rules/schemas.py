"""Email rule schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator, model_validator

CONDITION_FIELDS = ("from", "to", "subject", "body", "has_attachment")
CONDITION_OPERATORS = ("contains", "equals", "starts_with", "ends_with", "not_contains")
ACTION_TYPES = (
    "move_to_folder",
    "apply_label",
    "mark_as_read",
    "mark_as_starred",
    "delete",
    "archive",
)
# Actions that need a target folder or label name
VALUED_ACTIONS = ("move_to_folder", "apply_label")


class RuleCondition(BaseModel):
    field: str
    operator: str
    value: Any = None

    @field_validator("field")
    @classmethod
    def validate_field(cls, v):
        if v not in CONDITION_FIELDS:
            raise ValueError(f"Condition field must be one of: {', '.join(CONDITION_FIELDS)}")
        return v

    @field_validator("operator")
    @classmethod
    def validate_operator(cls, v):
        if v not in CONDITION_OPERATORS:
            raise ValueError(
                f"Condition operator must be one of: {', '.join(CONDITION_OPERATORS)}"
            )
        return v


class RuleAction(BaseModel):
    type: str
    value: Optional[str] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v not in ACTION_TYPES:
            raise ValueError(f"Action type must be one of: {', '.join(ACTION_TYPES)}")
        return v

    @model_validator(mode="after")
    def validate_value(self):
        if self.type in VALUED_ACTIONS and not (self.value and self.value.strip()):
            raise ValueError(f"Action '{self.type}' requires a value")
        return self


class EmailRuleCreate(BaseModel):
    name: str
    conditions: list[RuleCondition]
    actions: list[RuleAction]
    enabled: bool = True
    priority: int = 0

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Name is required")
        return v.strip()

    @field_validator("conditions")
    @classmethod
    def validate_conditions(cls, v):
        if not v:
            raise ValueError("At least one condition is required")
        return v

    @field_validator("actions")
    @classmethod
    def validate_actions(cls, v):
        if not v:
            raise ValueError("At least one action is required")
        return v


class EmailRuleUpdate(BaseModel):
    name: Optional[str] = None
    conditions: Optional[list[RuleCondition]] = None
    actions: Optional[list[RuleAction]] = None
    enabled: Optional[bool] = None
    priority: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip() if v else v

    @field_validator("conditions")
    @classmethod
    def validate_conditions(cls, v):
        if v is not None and not v:
            raise ValueError("At least one condition is required")
        return v

    @field_validator("actions")
    @classmethod
    def validate_actions(cls, v):
        if v is not None and not v:
            raise ValueError("At least one action is required")
        return v


class EmailRuleResponse(BaseModel):
    id: int
    user_id: int
    name: str
    conditions: list[dict[str, Any]]
    actions: list[dict[str, Any]]
    enabled: bool
    priority: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProcessRulesRequest(BaseModel):
    messageIds: Optional[list[int]] = None


class RuleResult(BaseModel):
    messageId: int
    subject: Optional[str] = None
    rule: str
    actions: list[str]


class ProcessRulesResponse(BaseModel):
    message: str
    processed: int
    results: list[RuleResult] = []
