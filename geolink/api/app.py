"""
GeoLink Access API — FastAPI app factory.

Start:
  geolink serve
  # or
  uvicorn geolink.api.app:create_app --factory --port 4000

Everything the routes touch (database, store factory, audit log, token
verifier, config) is built here and stored on ``app.state``; tests pass
their own.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from functools import partial
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from geolink import __version__
from geolink.access.models import AccessError
from geolink.access.store import AccessStore
from geolink.api.middleware import CorrelationMiddleware, access_error_handler
from geolink.api.routers import admin, health, user
from geolink.audit.logger import AuditLog
from geolink.auth.tokens import verify_token
from geolink.config import Config, get_config
from geolink.db.connection import Database

logger = logging.getLogger(__name__)


def create_app(
    db=None,
    *,
    config: Config | None = None,
    verify: Callable[[str], dict[str, Any]] | None = None,
    audit: AuditLog | None = None,
    store_factory: Callable = AccessStore,
) -> FastAPI:
    config = config or get_config()
    if db is None:
        db = Database(config.db, minconn=config.pool_min, maxconn=config.pool_max)
    if verify is None:
        verify = partial(
            verify_token, secret=config.auth.jwt_secret, algorithm=config.auth.jwt_algorithm
        )
    if audit is None:
        audit = AuditLog(db)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("GeoLink Access API starting (env=%s)", config.environment)
        yield
        close = getattr(db, "close", None)
        if close is not None:
            close()

    app = FastAPI(title="GeoLink Access", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.db = db
    app.state.verify_token = verify
    app.state.audit = audit
    app.state.store_factory = store_factory

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationMiddleware)
    app.add_exception_handler(AccessError, access_error_handler)

    app.include_router(health.router)
    app.include_router(admin.router)
    app.include_router(user.router)
    return app
