"""
Security Utilities

JWT creation and verification for admin bearer tokens, plus HMAC helpers
used to check payment gateway signatures.
"""

import hashlib
import hmac
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from admissions.core.config import settings

logger = logging.getLogger(__name__)


def create_access_token(
    subject: str,
    claims: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a signed access token.

    Admin tokens are issued by the identity provider in production; this is
    used to mint tokens for local development and tests.

    Args:
        subject: Value for the ``sub`` claim (user id)
        claims: Extra claims such as email, role, name
        expires_delta: Lifetime override

    Returns:
        Encoded JWT string
    """
    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    payload: dict[str, Any] = {
        "sub": subject,
        "type": "access",
        "iat": now,
        "exp": expire,
    }
    if claims:
        payload.update(claims)
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Decode and verify a JWT.

    Returns:
        The payload, or None when the signature, algorithm or expiry is invalid
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.PyJWTError as e:
        logger.debug(f"Token rejected: {e}")
        return None


def compute_hmac_sha256(secret: str, message: str) -> str:
    """Hex HMAC-SHA256 of ``message`` keyed by ``secret``."""
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


def constant_time_equals(a: str | None, b: str | None) -> bool:
    """Compare two secrets without leaking timing; None never matches."""
    if not a or not b:
        return False
    return hmac.compare_digest(a.encode(), b.encode())
