"""
Access gate — resolve a caller to an identity, then check its role.

Two schemes, tried in order:
  1. ``Authorization: Bearer <jwt>`` -> verified claims -> user id + role
  2. ``X-API-Key: <secret>`` -> active credential -> owner + linked profile;
     the credential's ``last_used`` is stamped in the same transaction

A present-but-bad bearer token fails immediately; it does not fall through to
the API key. Authorization (``authorize``) is a separate step so routes can
compose it with either scheme.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Mapping
from dataclasses import dataclass, field
from typing import Any

from geolink.access.models import ErrorKind
from geolink.access.store import AccessStore
from geolink.auth.tokens import TokenError

logger = logging.getLogger(__name__)

SCHEME_BEARER = "bearer"
SCHEME_API_KEY = "api_key"


@dataclass(frozen=True)
class Identity:
    user_id: int
    role: str | None
    scheme: str
    credential_id: int | None = None
    profile_id: int | None = None
    profile_kind: str | None = None
    claims: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AuthFailure:
    error: ErrorKind
    message: str
    detail: str | None = None


def _bearer_token(headers: Mapping[str, str]) -> str | None:
    value = headers.get("authorization")
    if not value:
        return None
    scheme, _, token = value.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip()


def _claims_identity(claims: dict[str, Any]) -> Identity | None:
    user = claims.get("user") if isinstance(claims.get("user"), dict) else {}
    user_id = user.get("id") or claims.get("userId") or claims.get("id")
    if not user_id:
        return None
    role = user.get("role") or claims.get("role")
    return Identity(user_id=user_id, role=role, scheme=SCHEME_BEARER, claims=claims)


def authenticate(
    headers: Mapping[str, str],
    *,
    db,
    verify: Callable[[str], dict[str, Any]],
    api_key_header: str = "X-API-Key",
    store_factory: Callable = AccessStore,
) -> Identity | AuthFailure:
    """Resolve request headers to an ``Identity`` or an ``AuthFailure``."""
    headers = {k.lower(): v for k, v in headers.items()}

    token = _bearer_token(headers)
    if token is not None:
        try:
            claims = verify(token)
        except (TokenError, ValueError) as e:
            logger.info("Bearer token rejected: %s", e)
            return AuthFailure(ErrorKind.INVALID_TOKEN, "Token is not valid")
        identity = _claims_identity(claims or {})
        if identity is None:
            return AuthFailure(ErrorKind.INVALID_TOKEN, "Invalid token structure")
        return identity

    api_key = headers.get(api_key_header.lower())
    if api_key:
        try:
            with db.connection() as conn:
                store = store_factory(conn)
                credential = store.find_active_credential(api_key)
                if credential is None:
                    return AuthFailure(
                        ErrorKind.INVALID_OR_INACTIVE_KEY, "Invalid or inactive API key"
                    )
                store.touch_credential(credential["id"])
                profile = store.profile_for_credential(credential["id"])
        except Exception as e:
            logger.error("API key lookup failed: %s", e)
            return AuthFailure(
                ErrorKind.TRANSACTION_FAILURE, "Failed to verify API key", detail=str(e)
            )
        kind, row = profile if profile else (None, None)
        return Identity(
            user_id=credential["user_id"],
            role=credential.get("role"),
            scheme=SCHEME_API_KEY,
            credential_id=credential["id"],
            profile_id=row["id"] if row else None,
            profile_kind=kind,
        )

    return AuthFailure(ErrorKind.UNAUTHENTICATED, "Authentication required")


def authorize(identity: Identity, allowed: Collection[str]) -> AuthFailure | None:
    """Return ``Forbidden`` unless the identity's role or profile kind is allowed."""
    if identity.role in allowed or identity.profile_kind in allowed:
        return None
    return AuthFailure(ErrorKind.FORBIDDEN, "Insufficient permissions")
