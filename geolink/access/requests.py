"""
Request submission and read-only listings for the dashboards.

Listings prefer an empty result over an error when the access tables are
missing, so a half-migrated database does not break the admin dashboard.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from geolink.access.models import (
    PROFILE_KINDS,
    AccessError,
    ErrorKind,
    Outcome,
    credential_to_dict,
    request_to_dict,
)
from geolink.access.store import SCHEMA_MISSING_ERRORS, AccessStore
from geolink.access.validation import normalize_kind, scrub_null_string

logger = logging.getLogger(__name__)


def submit_request(
    db,
    owner_id: int,
    *,
    request_type: str | None = None,
    organization_name: str | None = None,
    organization: str | None = None,
    purpose: str | None = None,
    audit=None,
    store_factory: Callable = AccessStore,
) -> Outcome:
    """Queue a pending access request for an owner.

    The kind falls back to the owner's role when that is a known kind; the
    generic organization field falls back to the owner's organization.
    """
    try:
        with db.connection() as conn:
            store = store_factory(conn)
            owner = store.get_user(owner_id)
            if owner is None:
                conn.rollback()
                return Outcome.failure(ErrorKind.NOT_FOUND, f"User {owner_id} not found")

            role = owner.get("role")
            kind = normalize_kind(request_type or (role if role in PROFILE_KINDS else None))
            row = store.insert_request(
                owner_id,
                kind,
                scrub_null_string(organization_name),
                scrub_null_string(organization) or scrub_null_string(owner.get("organization")),
                scrub_null_string(purpose),
            )
    except Exception as e:
        logger.error("Failed to create access request for user %s: %s", owner_id, e)
        return Outcome.failure(
            ErrorKind.TRANSACTION_FAILURE, "Failed to create API key request", detail=str(e)
        )

    if audit is not None:
        audit.log_event(
            "access.request",
            f"user {owner_id} requested {kind} access",
            actor=f"user:{owner_id}",
            target=f"request:{row['id']}",
        )
    return Outcome.success("API key request submitted", request=request_to_dict(row))


def _listing(db, label: str, fetch: Callable, convert: Callable) -> list[dict]:
    """Run a read; missing tables give ``[]``, any other failure raises AccessError."""
    try:
        with db.connection() as conn:
            rows = fetch(conn)
    except SCHEMA_MISSING_ERRORS as e:
        logger.warning("Access tables missing, returning no %s: %s", label, e)
        return []
    except Exception as e:
        logger.error("Failed to list %s: %s", label, e)
        raise AccessError(
            ErrorKind.TRANSACTION_FAILURE, f"Failed to load {label}", detail=str(e)
        ) from e
    return [convert(r) for r in rows]


def list_pending_requests(db, *, store_factory: Callable = AccessStore) -> list[dict]:
    return _listing(
        db,
        "pending requests",
        lambda conn: store_factory(conn).list_pending_requests(),
        request_to_dict,
    )


def list_requests_for_owner(db, owner_id: int, *, store_factory: Callable = AccessStore) -> list[dict]:
    return _listing(
        db,
        "requests",
        lambda conn: store_factory(conn).list_requests_for_owner(owner_id),
        request_to_dict,
    )


def list_credentials(
    db,
    owner_id: int | None = None,
    *,
    store_factory: Callable = AccessStore,
) -> list[dict]:
    """All credentials with owner and profile display data; one owner's if given."""
    return _listing(
        db,
        "credentials",
        lambda conn: store_factory(conn).list_credentials(owner_id),
        credential_to_dict,
    )
