"""User routes — submit an access request, view own requests and credentials."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from geolink.access.requests import (
    list_credentials,
    list_requests_for_owner,
    submit_request,
)
from geolink.api.deps import get_audit, get_db, get_identity, get_store_factory
from geolink.api.middleware import outcome_error
from geolink.api.schemas import SubmitAccessRequest
from geolink.auth.gate import Identity

router = APIRouter(prefix="/user", tags=["user"])


@router.post("/api-key-request")
def api_submit_request(
    body: SubmitAccessRequest,
    request: Request,
    db=Depends(get_db),
    audit=Depends(get_audit),
    store_factory=Depends(get_store_factory),
    identity: Identity = Depends(get_identity),
):
    outcome = submit_request(
        db,
        identity.user_id,
        request_type=body.get_request_type(),
        organization_name=body.get_organization_name(),
        organization=body.organization,
        purpose=body.purpose,
        audit=audit,
        store_factory=store_factory,
    )
    if not outcome.ok:
        return outcome_error(request, outcome)
    return JSONResponse(outcome.data["request"], status_code=201)


@router.get("/api-key-requests")
def api_my_requests(
    db=Depends(get_db),
    store_factory=Depends(get_store_factory),
    identity: Identity = Depends(get_identity),
):
    return list_requests_for_owner(db, identity.user_id, store_factory=store_factory)


@router.get("/api-keys")
def api_my_credentials(
    db=Depends(get_db),
    store_factory=Depends(get_store_factory),
    identity: Identity = Depends(get_identity),
):
    return list_credentials(db, identity.user_id, store_factory=store_factory)
