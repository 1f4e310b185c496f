"""
Inkwell Backend - Payment Route Handler
=========================================

POST /payment upgrades the caller's plan. Simulated: there is no payment
provider behind it.
"""

from fastapi import APIRouter, Depends

from app.dependencies import get_current_account, get_payment_service
from app.schemas.account import AccountRecord
from app.schemas.common import ErrorResponse
from app.schemas.payment import PaymentRequest, PaymentResponse
from app.services.payment_service import PaymentService

router = APIRouter(tags=["Payment"])


@router.post(
    "/payment",
    response_model=PaymentResponse,
    response_model_by_alias=True,
    responses={
        400: {"description": "Missing field or unknown plan", "model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
    summary="Purchase a plan",
)
async def payment(
    body: PaymentRequest,
    account: AccountRecord = Depends(get_current_account),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentResponse:
    return await service.process(account, body)
