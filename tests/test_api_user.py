"""Tests for the user and health routes."""

from __future__ import annotations

from contextlib import contextmanager

import pytest


class TestSubmitRoute:
    @pytest.mark.asyncio
    async def test_camel_case_body(self, client, state, user_headers, audit):
        state.add_user(7, role="data_consumer")
        resp = await client.post(
            "/user/api-key-request",
            json={"requestType": "wallet_provider", "organizationName": "Acme", "purpose": "maps"},
            headers=user_headers,
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "pending"
        assert body["requestType"] == "wallet_provider"
        assert body["organizationName"] == "Acme"
        assert body["purpose"] == "maps"
        assert audit.log_event.call_args.args[0] == "access.request"

    @pytest.mark.asyncio
    async def test_snake_case_body(self, client, state, user_headers):
        state.add_user(7)
        resp = await client.post(
            "/user/api-key-request",
            json={"request_type": "data_consumer", "organization_name": "Beta"},
            headers=user_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["organizationName"] == "Beta"

    @pytest.mark.asyncio
    async def test_unknown_user(self, client, bearer):
        resp = await client.post("/user/api-key-request", json={}, headers=bearer(404, "data_consumer"))
        assert resp.status_code == 404
        assert resp.json()["error"] == "NotFound"

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client):
        resp = await client.post("/user/api-key-request", json={})
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_submit_then_approve_round(self, client, state, user_headers, admin_headers):
        state.add_user(1, role="admin")
        state.add_user(7)
        created = await client.post(
            "/user/api-key-request", json={"organizationName": "Acme"}, headers=user_headers
        )
        request_id = created.json()["id"]

        await client.put(
            f"/admin/api-key-requests/{request_id}", json={"status": "approved"}, headers=admin_headers
        )

        mine = await client.get("/user/api-key-requests", headers=user_headers)
        assert [r["status"] for r in mine.json()] == ["approved"]
        keys = await client.get("/user/api-keys", headers=user_headers)
        assert [k["name"] for k in keys.json()] == ["Acme"]
        assert keys.json()[0]["active"] is True


class TestOwnListings:
    @pytest.mark.asyncio
    async def test_only_own_requests(self, client, state, user_headers):
        state.add_user(7)
        state.add_user(8)
        state.add_request(1, 7)
        state.add_request(2, 8)
        resp = await client.get("/user/api-key-requests", headers=user_headers)
        assert [r["id"] for r in resp.json()] == [1]

    @pytest.mark.asyncio
    async def test_only_own_credentials(self, client, state, user_headers):
        state.add_user(7)
        state.add_user(8)
        state.add_credential(7, "mine", "Acme")
        state.add_credential(8, "theirs", "Beta")
        resp = await client.get("/user/api-keys", headers=user_headers)
        assert [k["apiKey"] for k in resp.json()] == ["mine"]

    @pytest.mark.asyncio
    async def test_last_used_after_key_call(self, client, state, user_headers):
        state.add_user(7)
        state.add_credential(7, "mine", "Acme")
        before = await client.get("/user/api-keys", headers=user_headers)
        assert before.json()[0]["lastUsed"] is None

        await client.get("/user/api-keys", headers={"X-API-Key": "mine"})

        after = await client.get("/user/api-keys", headers=user_headers)
        assert after.json()[0]["lastUsed"] is not None


class TestHealth:
    @pytest.mark.asyncio
    async def test_healthy(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["services"] == {"database": "ok"}

    @pytest.mark.asyncio
    async def test_degraded(self, client, db):
        @contextmanager
        def broken(autocommit=False):
            raise ConnectionError("refused")
            yield

        db.connection = broken
        resp = await client.get("/health")
        assert resp.status_code == 503
        assert resp.json()["status"] == "degraded"
        assert resp.json()["services"]["database"] == "error:refused"
