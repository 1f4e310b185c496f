"""
Inkwell Backend - Credential & Token Tests
============================================
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from app.exceptions import AuthenticationError
from app.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


class TestPasswords:

    def test_hash_is_not_plaintext(self):
        hashed = hash_password("correct-horse")
        assert hashed != "correct-horse"
        assert hashed.startswith("$pbkdf2-sha256$")

    def test_verify_roundtrip(self):
        hashed = hash_password("correct-horse")
        assert verify_password("correct-horse", hashed) is True
        assert verify_password("wrong-horse", hashed) is False

    def test_unknown_account_never_verifies(self):
        assert verify_password("anything", None) is False

    def test_malformed_hash_returns_false(self):
        assert verify_password("anything", "not-a-hash") is False


class TestTokens:

    def test_claims_roundtrip(self, test_settings):
        token = create_access_token(42, "alice", test_settings)
        claims = decode_access_token(token, test_settings)
        assert claims.account_id == 42
        assert claims.username == "alice"

    def test_token_payload_shape(self, test_settings):
        token = create_access_token(7, "bob", test_settings)
        payload = jwt.decode(
            token, test_settings.jwt_secret, algorithms=[test_settings.jwt_algorithm]
        )
        assert payload["id"] == 7
        assert payload["sub"] == "7"
        assert payload["username"] == "bob"
        assert payload["exp"] - payload["iat"] == 30 * 24 * 3600

    def test_wrong_secret_rejected(self, test_settings):
        token = jwt.encode(
            {"sub": "1", "exp": datetime.now(timezone.utc) + timedelta(days=1)},
            "some-other-secret-that-is-long-enough-too",
            algorithm="HS256",
        )
        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token, test_settings)
        assert exc_info.value.message == "Not authorized, token invalid"

    def test_expired_token_rejected(self, test_settings):
        token = jwt.encode(
            {
                "sub": "1",
                "username": "alice",
                "exp": datetime.now(timezone.utc) - timedelta(seconds=5),
            },
            test_settings.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(AuthenticationError):
            decode_access_token(token, test_settings)

    def test_missing_subject_rejected(self, test_settings):
        token = jwt.encode(
            {"exp": datetime.now(timezone.utc) + timedelta(days=1)},
            test_settings.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(AuthenticationError):
            decode_access_token(token, test_settings)

    def test_garbage_rejected(self, test_settings):
        with pytest.raises(AuthenticationError):
            decode_access_token("not.a.token", test_settings)
