"""Email rule router - FastAPI endpoints for email rules"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from .schemas import (
    EmailRuleCreate,
    EmailRuleResponse,
    EmailRuleUpdate,
    ProcessRulesRequest,
    ProcessRulesResponse,
)
from .service import EmailRuleService

router = APIRouter(prefix="/email-rules", tags=["Email Rules"])

rate_limit_process = create_rate_limiter(limit=10, window_seconds=60, key_prefix="rules_process")


def get_email_rule_service(db: Session = Depends(get_db)) -> EmailRuleService:
    """Dependency injection for EmailRuleService"""
    return EmailRuleService(db)


@router.get("")
async def list_rules(
    current_user: User = Depends(get_current_user),
    service: EmailRuleService = Depends(get_email_rule_service),
):
    return {"rules": [EmailRuleResponse.model_validate(r) for r in service.list_rules(current_user)]}


@router.post("", status_code=201)
async def create_rule(
    data: EmailRuleCreate,
    current_user: User = Depends(get_current_user),
    service: EmailRuleService = Depends(get_email_rule_service),
):
    rule = service.create_rule(current_user, data)
    return {"rule": EmailRuleResponse.model_validate(rule)}


@router.post(
    "/process",
    response_model=ProcessRulesResponse,
    dependencies=[Depends(rate_limit_process)],
)
async def process_rules(
    data: Optional[ProcessRulesRequest] = None,
    current_user: User = Depends(get_current_user),
    service: EmailRuleService = Depends(get_email_rule_service),
):
    """Run enabled rules on the given messages or the 50 most recent inbox messages"""
    return service.process_rules(current_user, data.messageIds if data else None)


@router.get("/{rule_id}")
async def get_rule(
    rule_id: int,
    current_user: User = Depends(get_current_user),
    service: EmailRuleService = Depends(get_email_rule_service),
):
    return {"rule": EmailRuleResponse.model_validate(service.get_rule(current_user, rule_id))}


@router.patch("/{rule_id}")
async def update_rule(
    rule_id: int,
    data: EmailRuleUpdate,
    current_user: User = Depends(get_current_user),
    service: EmailRuleService = Depends(get_email_rule_service),
):
    rule = service.update_rule(current_user, rule_id, data)
    return {"rule": EmailRuleResponse.model_validate(rule)}


@router.delete("/{rule_id}")
async def delete_rule(
    rule_id: int,
    current_user: User = Depends(get_current_user),
    service: EmailRuleService = Depends(get_email_rule_service),
):
    return service.delete_rule(current_user, rule_id)


__all__ = ["router"]
