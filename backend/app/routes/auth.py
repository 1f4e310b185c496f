"""
Inkwell Backend - Account Route Handlers
==========================================

What:  POST /api/auth/register, POST /api/auth/login, GET /api/auth/me,
       PUT /api/auth/api-keys.
How:   Thin handlers; AuthService owns validation and persistence.
"""

from fastapi import APIRouter, Depends, status

from app.dependencies import get_auth_service, get_current_account
from app.schemas.account import (
    AccountRecord,
    ApiKeysResponse,
    ApiKeysUpdateRequest,
    AuthResponse,
    LoginRequest,
    ProfileResponse,
    RegisterRequest,
)
from app.schemas.common import ErrorResponse
from app.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    return await service.register(body)


@router.post(
    "/login",
    response_model=AuthResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    responses={401: {"model": ErrorResponse}},
    summary="Exchange credentials for a bearer token",
)
async def login(
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    return await service.login(body)


@router.get(
    "/me",
    response_model=ProfileResponse,
    response_model_by_alias=True,
    responses={401: {"model": ErrorResponse}},
    summary="Current account",
)
async def me(
    account: AccountRecord = Depends(get_current_account),
    service: AuthService = Depends(get_auth_service),
) -> ProfileResponse:
    return service.profile(account)


@router.put(
    "/api-keys",
    response_model=ApiKeysResponse,
    response_model_by_alias=True,
    responses={401: {"model": ErrorResponse}},
    summary="Set external scorer API keys",
)
async def update_api_keys(
    body: ApiKeysUpdateRequest,
    account: AccountRecord = Depends(get_current_account),
    service: AuthService = Depends(get_auth_service),
) -> ApiKeysResponse:
    return await service.update_api_keys(account, body)
