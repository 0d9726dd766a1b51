"""
Shared fixtures for the GeoLink Access test suite.

Lifecycle tests run against ``InMemoryAccessStore`` through ``FakeDatabase``;
SQL shape tests use a MagicMock cursor; API tests drive the FastAPI app via
httpx ``ASGITransport``.
"""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

sys.path.insert(0, str(Path(__file__).resolve().parent))

from fakes import FakeDatabase, InMemoryAccessStore, InMemoryState  # noqa: E402

from geolink.api.app import create_app  # noqa: E402
from geolink.auth.tokens import issue_token  # noqa: E402
from geolink.config import AuthConfig, Config  # noqa: E402

JWT_SECRET = "test-secret"


@pytest.fixture
def state():
    return InMemoryState()


@pytest.fixture
def db(state):
    return FakeDatabase(state)


@pytest.fixture
def store_factory():
    return InMemoryAccessStore


@pytest.fixture
def secrets_seq():
    """Deterministic credential secrets: secret-1, secret-2, ..."""
    counter = iter(range(1, 10_000))
    return lambda: f"secret-{next(counter)}"


@pytest.fixture
def mock_cursor():
    """Cursor double for SQL shape tests."""
    cur = MagicMock()
    cur.fetchone.return_value = None
    cur.fetchall.return_value = []
    cur.rowcount = 0
    return cur


@pytest.fixture
def mock_conn(mock_cursor):
    conn = MagicMock()
    conn.cursor.return_value = mock_cursor
    return conn


@pytest.fixture
def audit():
    """Audit double; ``query_log`` returns an empty list unless a test overrides it."""
    mock = MagicMock()
    mock.query_log.return_value = []
    return mock


@pytest.fixture
def app_config():
    return Config(auth=AuthConfig(jwt_secret=JWT_SECRET))


@pytest.fixture
def app(db, app_config, audit):
    return create_app(db, config=app_config, audit=audit, store_factory=InMemoryAccessStore)


@pytest_asyncio.fixture
async def client(app):
    """Async HTTP client wrapping the GeoLink app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def bearer():
    """Build Authorization headers for a user id and role."""

    def _headers(user_id: int, role: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(user_id, role, JWT_SECRET)}"}

    return _headers


@pytest.fixture
def admin_headers(bearer):
    return bearer(1, "admin")


@pytest.fixture
def user_headers(bearer):
    """Bearer headers for user 7 (a data consumer)."""
    return bearer(7, "data_consumer")
