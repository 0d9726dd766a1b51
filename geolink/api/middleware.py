"""API middleware — correlation IDs and error formatting."""

from __future__ import annotations

import logging
import uuid

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from geolink.access.models import AccessError, ErrorKind, Outcome

logger = logging.getLogger(__name__)


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Attach a unique X-Correlation-Id to every request/response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get("x-correlation-id") or uuid.uuid4().hex
        request.state.correlation_id = correlation_id
        response = await call_next(request)
        response.headers["X-Correlation-Id"] = correlation_id
        return response


def error_response(
    error: ErrorKind,
    message: str,
    detail: str | None = None,
    *,
    include_detail: bool = False,
) -> JSONResponse:
    """Structured error body; ``detail`` only outside production."""
    content = {"error": error.code, "message": message}
    if include_detail and detail:
        content["detail"] = detail
    return JSONResponse(content, status_code=error.http_status)


def outcome_error(request: Request, outcome: Outcome) -> JSONResponse:
    """Render a failed Outcome using the app's production setting."""
    return error_response(
        outcome.error or ErrorKind.TRANSACTION_FAILURE,
        outcome.message,
        outcome.detail,
        include_detail=not request.app.state.config.is_production,
    )


async def access_error_handler(request: Request, exc: AccessError) -> JSONResponse:
    return error_response(
        exc.error,
        exc.message,
        exc.detail,
        include_detail=not request.app.state.config.is_production,
    )
