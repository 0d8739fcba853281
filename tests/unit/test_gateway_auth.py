"""Unit tests for buyer/seller JWTs and password hashing."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from config.settings import settings
from src.mp_common.errors import InvalidCredentialsError, InvalidRefreshTokenError
from src.mp_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.mp_gateway.auth.password import hash_password, verify_password


class TestTokens:
    def test_access_claims(self) -> None:
        payload = jwt.get_unverified_claims(create_access_token("u-1"))
        assert payload["sub"] == "u-1"
        assert payload["type"] == "access"

    def test_refresh_round_trip(self) -> None:
        payload = decode_token(create_refresh_token("u-2"), expected_type="refresh")
        assert payload["sub"] == "u-2"

    def test_refresh_token_rejected_as_access(self) -> None:
        with pytest.raises(InvalidCredentialsError):
            decode_token(create_refresh_token("u-3"), expected_type="access")

    def test_access_token_rejected_as_refresh(self) -> None:
        with pytest.raises(InvalidRefreshTokenError):
            decode_token(create_access_token("u-3"), expected_type="refresh")

    def test_expired_token_rejected(self) -> None:
        past = datetime.now(UTC) - timedelta(hours=1)
        token = jwt.encode(
            {"sub": "u-4", "type": "access", "iat": past, "exp": past + timedelta(minutes=1)},
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )
        with pytest.raises(InvalidCredentialsError):
            decode_token(token, expected_type="access")

    def test_wrong_secret_rejected(self) -> None:
        token = jwt.encode({"sub": "u-5", "type": "access"}, "other-secret", algorithm="HS256")
        with pytest.raises(InvalidCredentialsError):
            decode_token(token, expected_type="access")


class TestPasswords:
    def test_hash_verifies(self) -> None:
        hashed = hash_password("Solar2026x")
        assert hashed.startswith("$2")
        assert verify_password("Solar2026x", hashed) is True
        assert verify_password("solar2026x", hashed) is False

    def test_malformed_hash_is_mismatch(self) -> None:
        assert verify_password("anything", "not-a-bcrypt-hash") is False
