"""API dependency injection — database, audit, and the access gate."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request

from geolink.access.models import AccessError, ErrorKind
from geolink.auth.gate import AuthFailure, Identity, authenticate, authorize


def get_db(request: Request):
    return request.app.state.db


def get_audit(request: Request):
    return request.app.state.audit


def get_store_factory(request: Request):
    return request.app.state.store_factory


def _deny(request: Request, failure: AuthFailure) -> AccessError:
    request.app.state.audit.log_event(
        "auth.denied",
        f"{failure.error.code} {request.method} {request.url.path}",
        category="auth",
        details={"method": request.method, "path": request.url.path},
        status="error" if failure.error is ErrorKind.TRANSACTION_FAILURE else "denied",
    )
    return AccessError(failure.error, failure.message, failure.detail)


def get_identity(request: Request) -> Identity:
    """Authenticate the caller with a bearer token or API key."""
    result = authenticate(
        request.headers,
        db=request.app.state.db,
        verify=request.app.state.verify_token,
        api_key_header=request.app.state.config.auth.api_key_header,
        store_factory=request.app.state.store_factory,
    )
    if isinstance(result, AuthFailure):
        raise _deny(request, result)
    return result


def require_roles(*roles: str) -> Callable[..., Identity]:
    """Dependency factory: authenticated identity whose role or kind is in ``roles``."""

    def dependency(request: Request, identity: Identity = Depends(get_identity)) -> Identity:
        failure = authorize(identity, roles)
        if failure is not None:
            raise _deny(request, failure)
        return identity

    return dependency
