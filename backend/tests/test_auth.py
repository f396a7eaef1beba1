"""
Tubely Authentication Module Test Suite

Tests for backend/app/core/auth.py covering:
- Bearer token extraction from request headers
- HS256 signature, expiry, and issuer verification
- Subject parsing into a user UUID
- Token minting with the session service's claims
"""

import logging
import uuid
from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt
from starlette.datastructures import Headers

from app.core.auth import (
    JWT_ALGORITHM,
    TOKEN_ISSUER,
    get_bearer_token,
    make_jwt,
    validate_jwt,
)
from app.core.exceptions import InvalidCredentialError, MissingCredentialError
from conftest import TEST_JWT_SECRET


# =============================================================================
# Bearer Token Extraction
# =============================================================================


class TestGetBearerToken:
    """Tests for get_bearer_token."""

    def test_extracts_token(self) -> None:
        headers = Headers({"authorization": "Bearer abc.def.ghi"})

        assert get_bearer_token(headers) == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self) -> None:
        headers = Headers({"Authorization": "bearer abc.def.ghi"})

        assert get_bearer_token(headers) == "abc.def.ghi"

    def test_missing_header(self) -> None:
        with pytest.raises(MissingCredentialError) as exc_info:
            get_bearer_token(Headers({}))

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Couldn't find JWT"

    @pytest.mark.parametrize("value", ["Basic dXNlcjpwYXNz", "Bearer", "Bearer ", "abc.def.ghi"])
    def test_malformed_header(self, value: str) -> None:
        with pytest.raises(MissingCredentialError):
            get_bearer_token(Headers({"authorization": value}))


# =============================================================================
# Token Validation
# =============================================================================


class TestValidateJWT:
    """Tests for validate_jwt."""

    def test_round_trip_returns_subject(self) -> None:
        user_id = uuid.uuid4()
        token = make_jwt(user_id, TEST_JWT_SECRET)

        assert validate_jwt(token, TEST_JWT_SECRET) == user_id

    def test_wrong_secret(self) -> None:
        token = make_jwt(uuid.uuid4(), "another-secret-that-is-at-least-32-chars")

        with pytest.raises(InvalidCredentialError) as exc_info:
            validate_jwt(token, TEST_JWT_SECRET)

        assert exc_info.value.status_code == 401

    def test_expired_token(self) -> None:
        token = make_jwt(uuid.uuid4(), TEST_JWT_SECRET, expires_in=timedelta(seconds=-1))

        with pytest.raises(InvalidCredentialError, match="expired"):
            validate_jwt(token, TEST_JWT_SECRET)

    def test_wrong_issuer(self) -> None:
        token = make_jwt(uuid.uuid4(), TEST_JWT_SECRET, issuer="someone-else")

        with pytest.raises(InvalidCredentialError):
            validate_jwt(token, TEST_JWT_SECRET)

    def test_non_uuid_subject(self) -> None:
        now = datetime.now(UTC)
        token = jwt.encode(
            {"iss": TOKEN_ISSUER, "sub": "user-42", "iat": now, "exp": now + timedelta(hours=1)},
            TEST_JWT_SECRET,
            algorithm=JWT_ALGORITHM,
        )

        with pytest.raises(InvalidCredentialError, match="subject"):
            validate_jwt(token, TEST_JWT_SECRET)

    def test_token_without_expiry_is_rejected(self) -> None:
        token = jwt.encode(
            {"iss": TOKEN_ISSUER, "sub": str(uuid.uuid4())},
            TEST_JWT_SECRET,
            algorithm=JWT_ALGORITHM,
        )

        with pytest.raises(InvalidCredentialError):
            validate_jwt(token, TEST_JWT_SECRET)

    def test_garbage_token(self) -> None:
        with pytest.raises(InvalidCredentialError):
            validate_jwt("not-a-jwt", TEST_JWT_SECRET)

    def test_rejection_is_logged_with_reason(self, caplog) -> None:
        token = make_jwt(uuid.uuid4(), TEST_JWT_SECRET, issuer="someone-else")

        with caplog.at_level(logging.WARNING, logger="app.core.auth"):
            with pytest.raises(InvalidCredentialError):
                validate_jwt(token, TEST_JWT_SECRET)

        record = caplog.records[-1]
        assert record.getMessage().startswith("Access token validation failed: ")
        assert record.args == ()


class TestMakeJWT:
    """Tests for make_jwt claim layout."""

    def test_claims(self) -> None:
        user_id = uuid.uuid4()
        token = make_jwt(user_id, TEST_JWT_SECRET, expires_in=timedelta(hours=2))

        claims = jwt.get_unverified_claims(token)

        assert claims["iss"] == "tubely-access"
        assert claims["sub"] == str(user_id)
        assert claims["exp"] - claims["iat"] == 2 * 3600
        assert jwt.get_unverified_header(token)["alg"] == "HS256"
