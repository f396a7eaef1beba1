"""
Tubely Authentication Module

This module verifies the bearer credentials that accompany every upload. The
access tokens are HS256 JWTs minted by the session service; this module only
needs the shared secret to check them. Key features include:

- Bearer token extraction from the Authorization header
- HS256 signature, expiry and issuer verification with python-jose
- Caller identity as a ``uuid.UUID`` taken from the ``sub`` claim
- A token minting helper mirroring the session service's claims, used by
  development scripts and the test suite

Usage:
    ```python
    from app.core.auth import get_bearer_token, validate_jwt

    token = get_bearer_token(request.headers)
    user_id = validate_jwt(token, settings.jwt_secret)
    ```
"""

import logging
import uuid

from collections.abc import Mapping
from datetime import UTC, datetime, timedelta

from fastapi.security.utils import get_authorization_scheme_param
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from app.core.exceptions import InvalidCredentialError, MissingCredentialError


# Configure module logger
logger = logging.getLogger(__name__)

# Issuer stamped on access tokens by the session service
TOKEN_ISSUER = "tubely-access"

JWT_ALGORITHM = "HS256"


def get_bearer_token(headers: Mapping[str, str]) -> str:
    """
    Extract the bearer token from request headers.

    Args:
        headers: Request headers (case-insensitive mapping such as Starlette's).

    Returns:
        str: The raw token string.

    Raises:
        MissingCredentialError: If the Authorization header is absent, uses a
            scheme other than Bearer, or carries an empty token.
    """
    authorization = headers.get("authorization")
    if not authorization:
        raise MissingCredentialError("Couldn't find JWT")

    scheme, token = get_authorization_scheme_param(authorization)
    if scheme.lower() != "bearer" or not token:
        raise MissingCredentialError("Malformed authorization header")

    return token


def validate_jwt(token: str, secret: str, issuer: str = TOKEN_ISSUER) -> uuid.UUID:
    """
    Verify an access token and return the caller identity.

    Checks the HS256 signature against ``secret``, the ``exp`` claim, and that
    ``iss`` matches ``issuer``. The ``sub`` claim must be a UUID.

    Args:
        token: The JWT token string to validate.
        secret: Process-held signing secret.
        issuer: Required issuer claim.

    Returns:
        uuid.UUID: The caller's user ID.

    Raises:
        InvalidCredentialError: If verification fails for any reason.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            issuer=issuer,
            options={"require_sub": True, "require_exp": True},
        )
    except ExpiredSignatureError as e:
        logger.warning("Access token has expired")
        raise InvalidCredentialError("Token has expired") from e
    except JWTError as e:
        logger.warning(f"Access token validation failed: {e}")
        raise InvalidCredentialError("Couldn't validate JWT") from e

    try:
        user_id = uuid.UUID(str(payload["sub"]))
    except (KeyError, ValueError) as e:
        logger.warning(f"Access token subject is not a user ID: {payload.get('sub')!r}")
        raise InvalidCredentialError("Invalid token subject") from e

    logger.debug(f"Access token validated for subject: {user_id}")
    return user_id


def make_jwt(
    user_id: uuid.UUID,
    secret: str,
    expires_in: timedelta = timedelta(hours=1),
    issuer: str = TOKEN_ISSUER,
) -> str:
    """
    Mint an access token with the same claims the session service issues.

    Token claims:
    - iss: issuer (``tubely-access``)
    - sub: user ID
    - iat: issued-at timestamp
    - exp: expiry timestamp

    Args:
        user_id: The user's identifier.
        secret: Signing secret.
        expires_in: Token lifetime.
        issuer: Issuer claim.

    Returns:
        str: The encoded JWT token string.
    """
    now = datetime.now(UTC)
    payload = {
        "iss": issuer,
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)
