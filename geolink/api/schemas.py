"""Pydantic request models for the GeoLink API."""

from __future__ import annotations

from pydantic import BaseModel

from geolink.access.models import STATUS_APPROVED, STATUS_REJECTED


class ReviewRequest(BaseModel):
    # Plain str so an unknown status is reported as InvalidStatus, not a 422
    status: str | None = None
    reason: str | None = None


class ProcessRequest(BaseModel):
    approved: bool = False
    reason: str | None = None

    def to_status(self) -> str:
        return STATUS_APPROVED if self.approved else STATUS_REJECTED


class SubmitAccessRequest(BaseModel):
    """Accepts both camelCase and snake_case field names (older clients)."""

    requestType: str | None = None
    request_type: str | None = None
    organizationName: str | None = None
    organization_name: str | None = None
    organization: str | None = None
    purpose: str | None = None

    def get_request_type(self) -> str | None:
        return self.requestType or self.request_type

    def get_organization_name(self) -> str | None:
        return self.organizationName or self.organization_name
