"""
Inkwell Backend - Text Processing Route Handlers
==================================================

What:  POST /echo_text (open), POST /humanize_text and POST /detect_ai
       (auth + payment gated).
How:   The payment guard dependency admits the request; ProcessingService
       does the work and the accounting.
"""

import logging

from fastapi import APIRouter, Depends

from app.dependencies import get_processing_service, require_payment
from app.exceptions import ValidationError
from app.schemas.account import AccountRecord
from app.schemas.common import ErrorResponse
from app.schemas.processing import (
    DetectInput,
    DetectResponse,
    EchoResponse,
    HumanizeResponse,
    TextInput,
)
from app.services.processing_service import ProcessingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Processing"])

_GATED_RESPONSES = {
    400: {"description": "Blank input", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Payment required", "model": ErrorResponse},
    500: {"description": "Transform failed", "model": ErrorResponse},
}


@router.post(
    "/echo_text",
    response_model=EchoResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Echo the input back (connectivity check)",
)
async def echo_text(body: TextInput) -> EchoResponse:
    if not body.input_text:
        raise ValidationError(message="No input text provided", field="input_text")
    return EchoResponse(result=body.input_text)


@router.post(
    "/humanize_text",
    response_model=HumanizeResponse,
    response_model_by_alias=True,
    responses=_GATED_RESPONSES,
    summary="Rewrite text to read as human-written",
    description=(
        "Input beyond the plan's word limit is truncated before processing "
        "and `limitExceeded` is set."
    ),
)
async def humanize_text(
    body: TextInput,
    account: AccountRecord = Depends(require_payment),
    service: ProcessingService = Depends(get_processing_service),
) -> HumanizeResponse:
    return await service.humanize(account, body.input_text)


@router.post(
    "/detect_ai",
    response_model=DetectResponse,
    response_model_by_alias=True,
    responses=_GATED_RESPONSES,
    summary="Score how likely a text is AI-generated",
)
async def detect_ai(
    body: DetectInput,
    account: AccountRecord = Depends(require_payment),
    service: ProcessingService = Depends(get_processing_service),
) -> DetectResponse:
    return await service.detect(account, body.text)
