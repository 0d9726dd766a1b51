"""
Request review — drives the access-request state machine.

    pending  --approve-->  approved   (provision credential + profile)
    *        --reject--->  rejected   (request row only)
    *        --revert--->  pending    (revoke what approval created)

One call is one transaction: the request row update and its provisioning or
revocation side effects commit together or not at all. Status is validated
before the transaction starts.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from geolink.access.models import (
    STATUS_APPROVED,
    STATUS_PENDING,
    ErrorKind,
    Outcome,
)
from geolink.access.provisioning import provision, revoke
from geolink.access.store import AccessStore
from geolink.access.validation import resolve_organization_name, validate_status
from geolink.auth.tokens import generate_api_key

logger = logging.getLogger(__name__)


def review(
    db,
    request_id: int,
    new_status: str,
    reviewer_id: int,
    reason: str | None = None,
    *,
    audit=None,
    store_factory: Callable = AccessStore,
    new_secret: Callable[[], str] = generate_api_key,
) -> Outcome:
    """Change a request's status and apply the matching side effects."""
    valid, why = validate_status(new_status)
    if not valid:
        return Outcome.failure(ErrorKind.INVALID_STATUS, why)

    try:
        with db.connection() as conn:
            store = store_factory(conn)
            outcome = _review_in_transaction(
                store, request_id, new_status, reviewer_id, reason, new_secret
            )
            if not outcome.ok:
                conn.rollback()
    except Exception as e:
        logger.error("Failed to review request %s -> %s: %s", request_id, new_status, e)
        outcome = Outcome.failure(
            ErrorKind.TRANSACTION_FAILURE, "Failed to process request", detail=str(e)
        )

    if audit is not None:
        audit.log_event(
            "access.review",
            f"set request {request_id} to {new_status}",
            actor=f"admin:{reviewer_id}",
            target=f"request:{request_id}",
            details={"reason": reason, **outcome.data} if outcome.ok else {"error": outcome.message},
            status="ok" if outcome.ok else "error",
        )
    return outcome


def _review_in_transaction(
    store,
    request_id: int,
    new_status: str,
    reviewer_id: int,
    reason: str | None,
    new_secret: Callable[[], str],
) -> Outcome:
    request = store.get_request(request_id, for_update=True)
    if request is None:
        return Outcome.failure(ErrorKind.NOT_FOUND, f"Request {request_id} not found")

    if not store.update_request_status(request_id, new_status, reviewer_id, reason):
        return Outcome.failure(ErrorKind.NOT_FOUND, f"Request {request_id} not found")

    owner_id = request["user_id"]
    organization_name = resolve_organization_name(request)

    if new_status == STATUS_APPROVED:
        step = provision(
            store,
            owner_id,
            request.get("request_type"),
            organization_name,
            reviewer_id=reviewer_id,
            new_secret=new_secret,
        )
    elif new_status == STATUS_PENDING:
        step = revoke(store, owner_id, organization_name)
    else:
        step = Outcome.success()

    if not step.ok:
        return step

    logger.info(
        "Request %s (user %s, %s) set to %s by admin %s",
        request_id,
        owner_id,
        organization_name,
        new_status,
        reviewer_id,
    )
    return Outcome.success(
        f"Request {new_status} successfully",
        requestId=request_id,
        status=new_status,
        **step.data,
    )
