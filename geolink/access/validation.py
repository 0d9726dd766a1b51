"""
Access validation — status checks, kind normalization, organization fallback.

Every value that comes off the wire passes through here before it reaches a
transaction, so bad input is rejected without touching the database.

Usage:
    from geolink.access.validation import resolve_organization_name, validate_status

    valid, reason = validate_status("approved")
    org = resolve_organization_name(request_row)
"""

from __future__ import annotations

from geolink.access.models import (
    KIND_DATA_CONSUMER,
    PROFILE_KINDS,
    REQUEST_STATUSES,
    UNKNOWN_ORGANIZATION,
)

NULL_STRINGS: set[str] = {"null", "none", "undefined", "n/a"}


def scrub_null_string(value: str | None) -> str | None:
    """Return None for empty, whitespace-only, or literal 'null'-like strings."""
    if value is None:
        return None
    stripped = value.strip()
    if not stripped or stripped.lower() in NULL_STRINGS:
        return None
    return stripped


def validate_status(status: str | None) -> tuple[bool, str]:
    """Check a requested review status.

    Returns:
        (is_valid, reason) tuple.
    """
    if status not in REQUEST_STATUSES:
        allowed = ", ".join(REQUEST_STATUSES)
        return False, f"Invalid status {status!r}: must be one of {allowed}"
    return True, "ok"


def normalize_kind(kind: str | None) -> str:
    """Map a requested kind to a known profile kind; unknown -> data_consumer."""
    if kind is None:
        return KIND_DATA_CONSUMER
    kind = kind.strip().lower()
    if kind in PROFILE_KINDS:
        return kind
    return KIND_DATA_CONSUMER


def resolve_organization_name(request: dict) -> str:
    """Pick the organization a request provisions for.

    Precedence: ``organization_name`` -> ``organization`` -> placeholder. Only
    missing or blank values fall through; "N/A" is a name like any other.
    """
    for key in ("organization_name", "organization"):
        value = (request.get(key) or "").strip()
        if value:
            return value
    return UNKNOWN_ORGANIZATION
