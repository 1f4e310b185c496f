"""
Inkwell Backend - Account Schemas
===================================

What:  Plain account records exchanged with the stores, plus the request
       and response bodies of /api/auth/*.

AccountRecord is data only. Credential checks live in
app.security.verify_password, which takes the stored hash explicitly.
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.common import CamelModel

# Keys travel in HTTP headers: printable ASCII, no whitespace
_API_KEY_PATTERN = re.compile(r"[\x21-\x7e]+")


def is_valid_api_key(value: str) -> bool:
    return bool(_API_KEY_PATTERN.fullmatch(value))


class ApiKeys(CamelModel):
    """External scorer key slots; an empty string means the slot is unset."""
    gpt_zero: str = ""
    originality: str = ""

    def has_any(self) -> bool:
        return bool(self.gpt_zero or self.originality)


# ══════════════════════════════════════════════════════════════════════════
# Store Records
# ══════════════════════════════════════════════════════════════════════════


class AccountCreate(BaseModel):
    username: str
    password_hash: str
    plan: str
    payment_status: str


class AccountRecord(CamelModel):
    """Snapshot of an account row as loaded by the auth gate."""
    id: int
    username: str
    password_hash: str
    plan: str
    payment_status: str
    words_used: int = 0
    api_keys: ApiKeys = Field(default_factory=ApiKeys)
    joined_date: datetime


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    # Optional so that missing fields produce the service's own 400 message
    username: Optional[str] = None
    password: Optional[str] = None
    plan: Optional[str] = None


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class ApiKeysUpdateRequest(CamelModel):
    gpt_zero: Optional[str] = None
    originality: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class AccountPublic(CamelModel):
    """Account as shown to its owner. Never carries the credential hash."""
    id: int
    username: str
    plan: str
    payment_status: str
    words_used: int
    joined_date: datetime
    api_keys: Optional[ApiKeys] = None

    @classmethod
    def from_record(cls, record: AccountRecord, include_keys: bool = False) -> "AccountPublic":
        return cls(
            id=record.id,
            username=record.username,
            plan=record.plan,
            payment_status=record.payment_status,
            words_used=record.words_used,
            joined_date=record.joined_date,
            api_keys=record.api_keys if include_keys else None,
        )


class AuthResponse(CamelModel):
    success: bool = True
    message: str
    user: AccountPublic
    token: str


class ProfileResponse(CamelModel):
    success: bool = True
    user: AccountPublic


class ApiKeysResponse(CamelModel):
    success: bool = True
    message: str = "API keys updated successfully"
    api_keys: ApiKeys
