"""
Inkwell Backend - Account Service
===================================

What:  Registration, login, profile and external-scorer key management.
How:   Validates input, hashes/verifies credentials via app.security and
       persists through the AccountStore.
Who:   /api/auth/* route handlers.
"""

import logging
from typing import Optional

from app.config import Settings
from app.exceptions import AuthenticationError, NotFoundError, ValidationError
from app.plans import FREE_PLAN, PlanPolicy
from app.repositories.base import AccountStore
from app.schemas.account import (
    AccountCreate,
    AccountPublic,
    AccountRecord,
    ApiKeys,
    ApiKeysResponse,
    ApiKeysUpdateRequest,
    AuthResponse,
    LoginRequest,
    ProfileResponse,
    RegisterRequest,
    is_valid_api_key,
)
from app.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

PAYMENT_PAID = "Paid"
PAYMENT_PENDING = "Pending"


class AuthService:

    def __init__(self, accounts: AccountStore, plans: PlanPolicy, config: Settings):
        self.accounts = accounts
        self.plans = plans
        self.config = config

    def _issue(self, record: AccountRecord, message: str) -> AuthResponse:
        return AuthResponse(
            message=message,
            user=AccountPublic.from_record(record),
            token=create_access_token(record.id, record.username, self.config),
        )

    async def register(self, body: RegisterRequest) -> AuthResponse:
        """
        Create an account and sign it in.

        Free accounts are payment-exempt and start out Paid; paid plans start
        Pending until the payment flow completes.

        Raises:
            ValidationError: missing fields or username taken
            UnknownPlanError: plan outside the configured set
        """
        username = (body.username or "").strip()
        if not username or not body.password:
            raise ValidationError(message="Username and password are required")

        plan = body.plan or FREE_PLAN
        self.plans.get(plan)

        if await self.accounts.find_by_username(username) is not None:
            raise ValidationError(message="Username already exists", field="username")

        record = await self.accounts.create(
            AccountCreate(
                username=username,
                password_hash=hash_password(body.password),
                plan=plan,
                payment_status=PAYMENT_PAID if self.plans.is_payment_exempt(plan) else PAYMENT_PENDING,
            )
        )
        logger.info("Registered account %s (%s plan)", record.id, record.plan)
        return self._issue(record, "User registered successfully")

    async def login(self, body: LoginRequest) -> AuthResponse:
        """
        Raises:
            AuthenticationError: "Invalid credentials" for an unknown user and
            for a wrong password alike
        """
        if not body.username or not body.password:
            raise ValidationError(message="Username and password are required")

        record = await self.accounts.find_by_username(body.username.strip())
        stored_hash: Optional[str] = record.password_hash if record else None
        if not verify_password(body.password, stored_hash) or record is None:
            raise AuthenticationError(message="Invalid credentials")

        logger.info("Account %s logged in", record.id)
        return self._issue(record, "Login successful")

    @staticmethod
    def profile(account: AccountRecord) -> ProfileResponse:
        return ProfileResponse(user=AccountPublic.from_record(account, include_keys=True))

    async def update_api_keys(
        self, account: AccountRecord, body: ApiKeysUpdateRequest
    ) -> ApiKeysResponse:
        """
        Blank or missing values keep the currently stored key.

        Raises:
            ValidationError: a key with whitespace, control or non-ASCII characters
        """
        for field, value in (("gptZero", body.gpt_zero), ("originality", body.originality)):
            if value and not is_valid_api_key(value):
                raise ValidationError(message=f"Invalid {field} API key format", field=field)

        current = account.api_keys
        keys = ApiKeys(
            gpt_zero=body.gpt_zero or current.gpt_zero,
            originality=body.originality or current.originality,
        )
        updated = await self.accounts.update(account.id, api_keys=keys)
        if updated is None:
            raise NotFoundError(resource="account", resource_id=str(account.id))
        return ApiKeysResponse(api_keys=updated.api_keys)
