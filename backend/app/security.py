"""
Inkwell Backend - Credential & Token Primitives
=================================================

What:  Password hashing/verification and signed bearer tokens.
How:   passlib CryptContext (pbkdf2_sha256) for hashes, PyJWT (HS256) for
       tokens carrying the account id and username.
Who:   auth_service (register/login) and the auth gate dependency.

Both capabilities are stateless functions. Accounts are plain records and
carry no verification behaviour of their own.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext

from app.config import Settings
from app.exceptions import AuthenticationError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# Verified against when the username is unknown so that both login
# failure paths cost the same
_DUMMY_HASH = pwd_context.hash("inkwell-timing-equalizer")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(candidate: str, stored_hash: Optional[str]) -> bool:
    """Compare a candidate password with a stored hash. Never raises."""
    if stored_hash is None:
        pwd_context.verify(candidate, _DUMMY_HASH)
        return False
    try:
        return pwd_context.verify(candidate, stored_hash)
    except (ValueError, TypeError):
        # Malformed or unrecognised hash in storage
        return False


@dataclass(frozen=True)
class TokenClaims:
    account_id: int
    username: str


def create_access_token(account_id: int, username: str, config: Settings) -> str:
    """Signed token valid for `jwt_expire_days` (30 by default)."""
    now = datetime.now(timezone.utc)
    payload = {
        "id": account_id,
        "sub": str(account_id),
        "username": username,
        "iat": now,
        "exp": now + timedelta(days=config.jwt_expire_days),
    }
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_access_token(token: str, config: Settings) -> TokenClaims:
    """
    Verify signature and expiry, then extract the subject.

    Raises:
        AuthenticationError: expired, tampered, or missing required claims
    """
    try:
        payload = jwt.decode(
            token,
            config.jwt_secret,
            algorithms=[config.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
        return TokenClaims(
            account_id=int(payload["sub"]),
            username=str(payload.get("username", "")),
        )
    except (jwt.PyJWTError, KeyError, ValueError, TypeError) as e:
        raise AuthenticationError(
            message="Not authorized, token invalid",
            context={"reason": type(e).__name__},
        )
