"""
Access models — status/kind vocabularies, step outcomes, and row converters.

Every lifecycle step (provision, revoke, review, reconcile, repair) returns an
``Outcome`` instead of raising for expected failures. Callers check
``outcome.ok`` and roll back their transaction when a step fails.

Row converters turn RealDictCursor rows into API response shapes.

Usage:
    from geolink.access.models import Outcome, ErrorKind, credential_to_dict

    outcome = Outcome.failure(ErrorKind.NOT_FOUND, "Request 42 not found")
    response = credential_to_dict(row)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# ─── Vocabularies ────────────────────────────────────────────────────────

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
REQUEST_STATUSES: tuple[str, ...] = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)

KIND_WALLET_PROVIDER = "wallet_provider"
KIND_DATA_CONSUMER = "data_consumer"
PROFILE_KINDS: tuple[str, ...] = (KIND_WALLET_PROVIDER, KIND_DATA_CONSUMER)

# Profile table per kind
PROFILE_TABLES: dict[str, str] = {
    KIND_WALLET_PROVIDER: "wallet_providers",
    KIND_DATA_CONSUMER: "data_consumers",
}

UNKNOWN_ORGANIZATION = "Unknown Organization"


class ErrorKind(Enum):
    """Failure kinds with the HTTP status each maps to."""

    INVALID_STATUS = ("InvalidStatus", 400)
    NOT_FOUND = ("NotFound", 404)
    UNAUTHENTICATED = ("Unauthenticated", 401)
    INVALID_TOKEN = ("InvalidToken", 401)
    INVALID_OR_INACTIVE_KEY = ("InvalidOrInactiveKey", 401)
    FORBIDDEN = ("Forbidden", 403)
    TRANSACTION_FAILURE = ("TransactionFailure", 500)

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def http_status(self) -> int:
        return self.value[1]


@dataclass(frozen=True)
class Outcome:
    """Result of one lifecycle step."""

    ok: bool
    message: str = ""
    error: ErrorKind | None = None
    detail: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, message: str = "", **data: Any) -> Outcome:
        return cls(ok=True, message=message, data=data)

    @classmethod
    def failure(cls, error: ErrorKind, message: str, detail: str | None = None) -> Outcome:
        return cls(ok=False, message=message, error=error, detail=detail)


class AccessError(Exception):
    """Raised where a list or dependency cannot return an Outcome.

    The API renders it as ``{"error": ..., "message": ...}`` with the kind's
    HTTP status.
    """

    def __init__(self, error: ErrorKind, message: str, detail: str | None = None):
        super().__init__(message)
        self.error = error
        self.message = message
        self.detail = detail


# ─── Row converters ──────────────────────────────────────────────────────


def _ts(row: dict, key: str) -> str | None:
    return row[key].isoformat() if row.get(key) else None


def request_to_dict(row: dict) -> dict:
    """Convert an api_key_requests row (optionally joined with users) to API shape."""
    return {
        "id": row["id"],
        "userId": row.get("user_id"),
        "requestType": row.get("request_type") or KIND_DATA_CONSUMER,
        "organizationName": row.get("organization_name") or "",
        "organization": row.get("organization") or "",
        "purpose": row.get("purpose") or "",
        "status": row.get("status") or STATUS_PENDING,
        "rejectionReason": row.get("rejection_reason"),
        "reviewedBy": row.get("reviewed_by"),
        "reviewedAt": _ts(row, "reviewed_at"),
        "email": row.get("email") or "",
        "firstName": row.get("first_name") or "",
        "lastName": row.get("last_name") or "",
        "createdAt": _ts(row, "created_at"),
    }


def credential_to_dict(row: dict) -> dict:
    """Convert an api_keys row (optionally joined with owner + profile) to API shape."""
    profile = None
    if row.get("profile_id"):
        profile = {
            "id": row["profile_id"],
            "kind": row.get("profile_kind") or "",
            "name": row.get("profile_name") or "",
        }
    return {
        "id": row["id"],
        "userId": row.get("user_id"),
        "apiKey": row.get("api_key") or "",
        "name": row.get("name") or "",
        "active": bool(row.get("status")),
        "rejectionReason": row.get("rejection_reason"),
        "reviewedBy": row.get("reviewed_by"),
        "reviewedAt": _ts(row, "reviewed_at"),
        "email": row.get("email") or "",
        "firstName": row.get("first_name") or "",
        "lastName": row.get("last_name") or "",
        "profile": profile,
        "lastUsed": _ts(row, "last_used"),
        "createdAt": _ts(row, "created_at"),
        "updatedAt": _ts(row, "updated_at"),
    }

