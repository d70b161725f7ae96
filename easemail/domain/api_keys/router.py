"""API key router - FastAPI endpoints for the caller's organization API key"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...audit import request_context
from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import ApiKeyCreate, ApiKeyResponse
from .service import ApiKeyService

router = APIRouter(prefix="/api-keys", tags=["API Keys"])


def get_api_key_service(db: Session = Depends(get_db)) -> ApiKeyService:
    """Dependency injection for ApiKeyService"""
    return ApiKeyService(db)


@router.get("")
async def get_api_key(
    current_user: User = Depends(get_current_user),
    service: ApiKeyService = Depends(get_api_key_service),
):
    api_key = service.get_active_key(current_user)
    return {"apiKey": ApiKeyResponse.model_validate(api_key) if api_key else None}


@router.post("", status_code=201)
async def set_api_key(
    data: ApiKeyCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: ApiKeyService = Depends(get_api_key_service),
):
    """Store a new key, replacing any active one"""
    api_key = service.set_key(current_user, data, request_context(request))
    return {"apiKey": ApiKeyResponse.model_validate(api_key)}


@router.delete("")
async def revoke_api_key(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: ApiKeyService = Depends(get_api_key_service),
):
    return service.revoke_keys(current_user, request_context(request))


__all__ = ["router"]
