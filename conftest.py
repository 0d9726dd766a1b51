"""
Root-level shared test fixtures.

Inherited by every suite that runs from the repo root.
"""

from __future__ import annotations

import pytest


@pytest.fixture
def clean_env(monkeypatch):
    """Remove GeoLink env vars (and their legacy fallbacks) that leak between tests."""
    for key in [
        "GEOLINK_ENV",
        "NODE_ENV",
        "GEOLINK_DB_HOST",
        "GEOLINK_DB_PORT",
        "GEOLINK_DB_NAME",
        "GEOLINK_DB_USER",
        "GEOLINK_DB_PASSWORD",
        "GEOLINK_DB_POOL_MIN",
        "GEOLINK_DB_POOL_MAX",
        "GEOLINK_JWT_SECRET",
        "JWT_SECRET",
        "GEOLINK_JWT_ALGORITHM",
        "GEOLINK_API_KEY_HEADER",
        "GEOLINK_TOKEN_TTL_HOURS",
        "GEOLINK_API_HOST",
        "GEOLINK_API_PORT",
    ]:
        monkeypatch.delenv(key, raising=False)
    # load_dotenv() must not pick up a developer's .env during tests
    monkeypatch.setattr("geolink.config.load_dotenv", lambda *a, **kw: False)

    from geolink.config import reset_config

    reset_config()
    yield
    reset_config()
