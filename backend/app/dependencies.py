"""
Inkwell Backend - Request Dependencies
========================================

What:  FastAPI dependencies for the auth gate, the payment guard and the
       services wired up by create_app().
How:   Services live on `app.state` so that every app instance (tests build
       their own) carries its own stores and configuration.
Who:   Route handlers, via Depends().

Auth Gate:
    Authorization: Bearer <token>
        → missing                  401 "Not authorized, no token provided"
        → bad signature / expired  401 "Not authorized, token invalid"
        → account no longer exists 401 "User not found"
        → otherwise the account record is attached to request.state.account
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import Settings
from app.exceptions import AuthenticationError, PaymentRequiredError
from app.plans import PlanPolicy
from app.repositories.base import Stores
from app.schemas.account import AccountRecord
from app.security import decode_access_token
from app.services.auth_service import PAYMENT_PAID, AuthService
from app.services.payment_service import PaymentService
from app.services.processing_service import ProcessingService
from app.services.usage_service import UsageService

# auto_error=False: the gate raises its own 401 with the expected message
bearer_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_stores(request: Request) -> Stores:
    return request.app.state.stores


def get_plans(request: Request) -> PlanPolicy:
    return request.app.state.plans


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_processing_service(request: Request) -> ProcessingService:
    return request.app.state.processing_service


def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payment_service


def get_usage_service(request: Request) -> UsageService:
    return request.app.state.usage_service


async def get_current_account(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    config: Settings = Depends(get_settings),
    stores: Stores = Depends(get_stores),
) -> AccountRecord:
    """Auth gate. Read-only: loads a fresh account snapshot per request."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Not authorized, no token provided")

    claims = decode_access_token(credentials.credentials, config)
    account = await stores.accounts.find_by_id(claims.account_id)
    if account is None:
        raise AuthenticationError(
            message="User not found", context={"account_id": claims.account_id}
        )

    request.state.account = account
    return account


async def require_payment(
    account: AccountRecord = Depends(get_current_account),
    plans: PlanPolicy = Depends(get_plans),
) -> AccountRecord:
    """Payment guard: Free always passes, paid plans need a completed payment."""
    if plans.is_payment_exempt(account.plan) or account.payment_status == PAYMENT_PAID:
        return account
    raise PaymentRequiredError(context={"account_id": account.id, "plan": account.plan})
