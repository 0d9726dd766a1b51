"""Admin routes — request review, credential listing, maintenance passes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from geolink.access.reconcile import reconcile, repair_approvals
from geolink.access.requests import list_credentials, list_pending_requests
from geolink.access.review import review
from geolink.api.deps import get_audit, get_db, get_store_factory, require_roles
from geolink.api.middleware import outcome_error
from geolink.api.schemas import ProcessRequest, ReviewRequest
from geolink.auth.gate import Identity

router = APIRouter(prefix="/admin", tags=["admin"])

require_admin = require_roles("admin")


def _review_response(request: Request, outcome):
    if not outcome.ok:
        return outcome_error(request, outcome)
    return {"message": outcome.message, **outcome.data}


@router.get("/api-key-requests")
def api_list_pending_requests(
    db=Depends(get_db),
    store_factory=Depends(get_store_factory),
    admin: Identity = Depends(require_admin),
):
    return list_pending_requests(db, store_factory=store_factory)


@router.put("/api-key-requests/{request_id}")
def api_review_request(
    request_id: int,
    body: ReviewRequest,
    request: Request,
    db=Depends(get_db),
    audit=Depends(get_audit),
    store_factory=Depends(get_store_factory),
    admin: Identity = Depends(require_admin),
):
    outcome = review(
        db,
        request_id,
        body.status,
        admin.user_id,
        body.reason,
        audit=audit,
        store_factory=store_factory,
    )
    return _review_response(request, outcome)


@router.post("/api-key-requests/{request_id}/process")
def api_process_request(
    request_id: int,
    body: ProcessRequest,
    request: Request,
    db=Depends(get_db),
    audit=Depends(get_audit),
    store_factory=Depends(get_store_factory),
    admin: Identity = Depends(require_admin),
):
    """Older dashboard entry point: ``{"approved": bool}`` instead of a status."""
    outcome = review(
        db,
        request_id,
        body.to_status(),
        admin.user_id,
        body.reason,
        audit=audit,
        store_factory=store_factory,
    )
    return _review_response(request, outcome)


@router.get("/api-keys")
def api_list_credentials(
    db=Depends(get_db),
    store_factory=Depends(get_store_factory),
    admin: Identity = Depends(require_admin),
):
    return list_credentials(db, store_factory=store_factory)


@router.post("/cleanup-duplicates")
def api_cleanup_duplicates(
    request: Request,
    db=Depends(get_db),
    audit=Depends(get_audit),
    store_factory=Depends(get_store_factory),
    admin: Identity = Depends(require_admin),
):
    outcome = reconcile(db, audit=audit, store_factory=store_factory)
    if not outcome.ok:
        return outcome_error(request, outcome)
    return {
        "message": outcome.message,
        "duplicatesFound": outcome.data["groupsFound"],
        "keysRemoved": outcome.data["rowsRemoved"],
    }


@router.post("/repair-approvals")
def api_repair_approvals(
    request: Request,
    db=Depends(get_db),
    audit=Depends(get_audit),
    store_factory=Depends(get_store_factory),
    admin: Identity = Depends(require_admin),
):
    outcome = repair_approvals(db, audit=audit, store_factory=store_factory)
    if not outcome.ok:
        return outcome_error(request, outcome)
    return {"message": outcome.message, **outcome.data}


@router.get("/audit")
def api_query_audit(
    event_type: str | None = Query(None),
    actor: str | None = Query(None),
    target: str | None = Query(None),
    status: str | None = Query(None),
    limit: int = Query(50),
    audit=Depends(get_audit),
    admin: Identity = Depends(require_admin),
):
    results = audit.query_log(
        limit=limit, event_type=event_type, actor=actor, target=target, status=status
    )
    return {"events": results, "count": len(results)}
