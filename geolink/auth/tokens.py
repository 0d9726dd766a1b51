"""
Bearer tokens and API key secrets.

Tokens are HS256 JWTs carrying ``{"user": {"id": ..., "role": ...}}``, the
shape the login flow issues. API key secrets are 32 random bytes, hex encoded.
"""

from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

API_KEY_BYTES = 32


class TokenError(Exception):
    """Raised when a bearer token cannot be verified."""


def generate_api_key() -> str:
    """Return a fresh high-entropy API key (64 hex chars)."""
    return secrets.token_hex(API_KEY_BYTES)


def verify_token(token: str, secret: str, algorithm: str = "HS256") -> dict[str, Any]:
    """Verify signature and expiry; return the claims."""
    if not secret:
        raise TokenError("JWT secret is not configured")
    try:
        return jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError as e:
        raise TokenError(str(e)) from e


def issue_token(
    user_id: int,
    role: str,
    secret: str,
    *,
    algorithm: str = "HS256",
    ttl_hours: int = 24,
    extra: dict[str, Any] | None = None,
) -> str:
    """Sign a token for a user. Used by the CLI and tests."""
    now = datetime.now(UTC)
    claims: dict[str, Any] = {
        "user": {"id": user_id, "role": role, **(extra or {})},
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=ttl_hours)).timestamp()),
    }
    return jwt.encode(claims, secret, algorithm=algorithm)
