"""
Inkwell Backend - Usage Route Handler
=======================================
"""

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_current_account, get_usage_service
from app.schemas.account import AccountRecord
from app.schemas.common import ErrorResponse
from app.schemas.usage import UsageResponse
from app.services.usage_service import MAX_RECENT_EVENTS, UsageService

router = APIRouter(tags=["Usage"])


@router.get(
    "/usage",
    response_model=UsageResponse,
    response_model_by_alias=True,
    responses={401: {"model": ErrorResponse}},
    summary="Usage totals and recent history",
)
async def usage(
    limit: int = Query(
        default=MAX_RECENT_EVENTS,
        ge=1,
        le=MAX_RECENT_EVENTS,
        description="Number of recent events to return, newest first",
    ),
    account: AccountRecord = Depends(get_current_account),
    service: UsageService = Depends(get_usage_service),
) -> UsageResponse:
    return await service.summary(account.id, limit)
