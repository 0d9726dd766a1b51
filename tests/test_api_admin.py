"""
Tests for the admin routes, driven through the FastAPI app.

The app runs over FakeDatabase + InMemoryAccessStore, so a request travels
the whole stack: access gate -> route -> review/provision -> store.
"""

from __future__ import annotations

from unittest.mock import patch

import psycopg2
import pytest

from geolink.access.models import ErrorKind, Outcome
from geolink.config import AuthConfig, Config


@pytest.fixture
def acme(state):
    state.add_user(1, role="admin")
    state.add_user(7, role="wallet_provider", email="ada@example.com")
    state.add_request(42, 7, request_type="wallet_provider", organization_name="Acme")
    return state


# ─── Gate ────────────────────────────────────────────────────────────────


class TestAdminGate:
    @pytest.mark.asyncio
    async def test_no_credentials(self, client, audit):
        resp = await client.get("/admin/api-key-requests")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthenticated", "message": "Authentication required"}
        assert audit.log_event.call_args.args[0] == "auth.denied"

    @pytest.mark.asyncio
    async def test_bad_token(self, client):
        resp = await client.get("/admin/api-keys", headers={"Authorization": "Bearer junk"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "InvalidToken"

    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self, client, user_headers):
        resp = await client.get("/admin/api-keys", headers=user_headers)
        assert resp.status_code == 403
        assert resp.json() == {"error": "Forbidden", "message": "Insufficient permissions"}

    @pytest.mark.asyncio
    async def test_inactive_api_key(self, client, state):
        state.add_user(1, role="admin")
        state.add_credential(1, "dead-key", "Admin", status=False)
        resp = await client.get("/admin/api-keys", headers={"X-API-Key": "dead-key"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "InvalidOrInactiveKey"

    @pytest.mark.asyncio
    async def test_admin_api_key(self, client, state):
        state.add_user(1, role="admin")
        state.add_credential(1, "admin-key", "Admin")
        resp = await client.get("/admin/api-keys", headers={"X-API-Key": "admin-key"})
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_key_lookup_failure_is_json(self, client, state, audit):
        state.fail_on["find_active_credential"] = psycopg2.OperationalError("server closed")
        resp = await client.get("/admin/api-keys", headers={"X-API-Key": "abc"})
        assert resp.status_code == 500
        assert resp.headers["content-type"].startswith("application/json")
        assert resp.json() == {
            "error": "TransactionFailure",
            "message": "Failed to verify API key",
            "detail": "server closed",
        }
        assert audit.log_event.call_args.kwargs["status"] == "error"

    @pytest.mark.asyncio
    async def test_correlation_id_echoed(self, client, admin_headers):
        resp = await client.get(
            "/admin/api-keys", headers={**admin_headers, "X-Correlation-Id": "abc"}
        )
        assert resp.headers["X-Correlation-Id"] == "abc"


# ─── Review ──────────────────────────────────────────────────────────────


class TestReviewRoute:
    @pytest.mark.asyncio
    async def test_approve(self, client, acme, admin_headers):
        resp = await client.put(
            "/admin/api-key-requests/42", json={"status": "approved"}, headers=admin_headers
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Request approved successfully"
        assert body["requestId"] == 42
        assert body["status"] == "approved"
        assert body["profileKind"] == "wallet_provider"
        assert acme.tables["api_key_requests"][42]["reviewed_by"] == 1
        assert len(acme.active_credentials_for(7)) == 1

    @pytest.mark.asyncio
    async def test_new_key_authenticates_immediately(self, client, acme, admin_headers):
        await client.put("/admin/api-key-requests/42", json={"status": "approved"}, headers=admin_headers)
        secret = acme.credentials_for(7)[0]["api_key"]

        resp = await client.get("/user/api-keys", headers={"X-API-Key": secret})

        assert resp.status_code == 200
        assert [k["apiKey"] for k in resp.json()] == [secret]

    @pytest.mark.asyncio
    async def test_revert(self, client, acme, admin_headers):
        await client.put("/admin/api-key-requests/42", json={"status": "approved"}, headers=admin_headers)
        resp = await client.put(
            "/admin/api-key-requests/42", json={"status": "pending"}, headers=admin_headers
        )
        assert resp.status_code == 200
        assert resp.json()["deletedCredentials"] == 1
        assert acme.credentials_for(7) == []

    @pytest.mark.asyncio
    async def test_reject_with_reason(self, client, acme, admin_headers):
        resp = await client.put(
            "/admin/api-key-requests/42",
            json={"status": "rejected", "reason": "Missing details"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert acme.tables["api_key_requests"][42]["rejection_reason"] == "Missing details"

    @pytest.mark.asyncio
    async def test_invalid_status(self, client, acme, admin_headers):
        resp = await client.put(
            "/admin/api-key-requests/42", json={"status": "banana"}, headers=admin_headers
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "InvalidStatus"

    @pytest.mark.asyncio
    async def test_missing_status(self, client, acme, admin_headers):
        resp = await client.put("/admin/api-key-requests/42", json={}, headers=admin_headers)
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_request(self, client, acme, admin_headers):
        before = acme.snapshot()
        resp = await client.put(
            "/admin/api-key-requests/999", json={"status": "approved"}, headers=admin_headers
        )
        assert resp.status_code == 404
        assert resp.json()["error"] == "NotFound"
        assert acme.snapshot() == before

    @pytest.mark.asyncio
    async def test_failure_includes_detail_outside_production(self, client, acme, admin_headers):
        acme.fail_on["insert_credential"] = RuntimeError("disk full")
        resp = await client.put(
            "/admin/api-key-requests/42", json={"status": "approved"}, headers=admin_headers
        )
        assert resp.status_code == 500
        assert resp.json() == {
            "error": "TransactionFailure",
            "message": "Failed to process request",
            "detail": "disk full",
        }


class TestProductionErrors:
    @pytest.fixture
    def app_config(self):
        return Config(environment="production", auth=AuthConfig(jwt_secret="test-secret"))

    @pytest.mark.asyncio
    async def test_detail_hidden(self, client, acme, admin_headers):
        acme.fail_on["insert_credential"] = RuntimeError("disk full")
        resp = await client.put(
            "/admin/api-key-requests/42", json={"status": "approved"}, headers=admin_headers
        )
        assert resp.status_code == 500
        assert "detail" not in resp.json()


class TestProcessRoute:
    @pytest.mark.asyncio
    async def test_approved_flag(self, client, acme, admin_headers):
        resp = await client.post(
            "/admin/api-key-requests/42/process", json={"approved": True}, headers=admin_headers
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "approved"
        assert len(acme.credentials_for(7)) == 1

    @pytest.mark.asyncio
    async def test_defaults_to_reject(self, client, acme, admin_headers):
        resp = await client.post(
            "/admin/api-key-requests/42/process", json={"reason": "no"}, headers=admin_headers
        )
        assert resp.json()["status"] == "rejected"
        assert acme.credentials_for(7) == []


# ─── Listings and maintenance ────────────────────────────────────────────


class TestListings:
    @pytest.mark.asyncio
    async def test_pending_requests(self, client, acme, admin_headers):
        resp = await client.get("/admin/api-key-requests", headers=admin_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert [r["id"] for r in body] == [42]
        assert body[0]["email"] == "ada@example.com"
        assert body[0]["organizationName"] == "Acme"

    @pytest.mark.asyncio
    async def test_missing_schema_returns_empty_list(self, client, state, admin_headers):
        state.missing_schema = True
        resp = await client.get("/admin/api-key-requests", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_credentials(self, client, acme, admin_headers):
        await client.put("/admin/api-key-requests/42", json={"status": "approved"}, headers=admin_headers)
        resp = await client.get("/admin/api-keys", headers=admin_headers)
        body = resp.json()
        assert len(body) == 1
        assert body[0]["name"] == "Acme"
        assert body[0]["profile"]["kind"] == "wallet_provider"

    @pytest.mark.asyncio
    async def test_listing_failure_is_json(self, client, state, admin_headers):
        state.fail_on["list_credentials"] = psycopg2.OperationalError("connection reset")
        resp = await client.get("/admin/api-keys", headers=admin_headers)
        assert resp.status_code == 500
        assert resp.headers["content-type"].startswith("application/json")
        assert resp.json() == {
            "error": "TransactionFailure",
            "message": "Failed to load credentials",
            "detail": "connection reset",
        }


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_cleanup_duplicates(self, client, state, admin_headers):
        state.add_user(7)
        state.add_credential(7, "abc123", "Acme")
        keep = state.add_credential(7, "abc123", "Acme")

        resp = await client.post("/admin/cleanup-duplicates", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json() == {
            "message": "Duplicate API keys cleaned up successfully",
            "duplicatesFound": 1,
            "keysRemoved": 1,
        }
        assert list(state.tables["api_keys"]) == [keep["id"]]

    @pytest.mark.asyncio
    async def test_cleanup_missing_schema(self, client, state, admin_headers):
        state.missing_schema = True
        resp = await client.post("/admin/cleanup-duplicates", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["keysRemoved"] == 0

    @pytest.mark.asyncio
    async def test_cleanup_failure(self, client, admin_headers):
        outcome = Outcome.failure(ErrorKind.TRANSACTION_FAILURE, "Failed to clean up duplicate API keys")
        with patch("geolink.api.routers.admin.reconcile", return_value=outcome):
            resp = await client.post("/admin/cleanup-duplicates", headers=admin_headers)
        assert resp.status_code == 500

    @pytest.mark.asyncio
    async def test_repair_approvals(self, client, state, admin_headers):
        state.add_user(7)
        state.add_request(42, 7, status="approved")
        state.add_credential(7, "s1", "Acme", status=False)

        resp = await client.post("/admin/repair-approvals", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json()["keysReactivated"] == 1
        assert len(state.active_credentials_for(7)) == 1

    @pytest.mark.asyncio
    async def test_audit_query(self, client, audit, admin_headers):
        audit.query_log.return_value = [{"id": 1, "event_type": "access.review"}]
        resp = await client.get(
            "/admin/audit", params={"event_type": "access.review", "limit": 10}, headers=admin_headers
        )
        assert resp.status_code == 200
        assert resp.json() == {"events": [{"id": 1, "event_type": "access.review"}], "count": 1}
        audit.query_log.assert_called_once_with(
            limit=10, event_type="access.review", actor=None, target=None, status=None
        )
