"""
Access Data Access Layer — SQL for requests, credentials, and profiles.

An ``AccessStore`` is bound to a single connection so that every step of a
lifecycle operation (review -> provision / revoke) runs inside one
transaction. The store never commits or rolls back; the caller owns the
transaction boundary.

Rows come back as plain dicts (RealDictCursor). Hard deletes only.

Usage:
    from geolink.access.store import AccessStore

    with db.connection() as conn:
        store = AccessStore(conn)
        request = store.get_request(42, for_update=True)
"""

from __future__ import annotations

import logging
from typing import Any

import psycopg2.errors
from psycopg2.extras import RealDictCursor

from geolink.access.models import PROFILE_TABLES, STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED

logger = logging.getLogger(__name__)

# Raised when the access tables have not been migrated yet
SCHEMA_MISSING_ERRORS: tuple[type[Exception], ...] = (
    psycopg2.errors.UndefinedTable,
    psycopg2.errors.UndefinedColumn,
)

_CREDENTIAL_LISTING_SQL = """
    SELECT ak.*,
           u.email, u.first_name, u.last_name,
           COALESCE(wp.id, dc.id) AS profile_id,
           CASE
               WHEN wp.id IS NOT NULL THEN 'wallet_provider'
               WHEN dc.id IS NOT NULL THEN 'data_consumer'
           END AS profile_kind,
           COALESCE(wp.name, dc.name) AS profile_name
    FROM api_keys ak
    JOIN users u ON u.id = ak.user_id
    LEFT JOIN wallet_providers wp ON wp.api_key_id = ak.id
    LEFT JOIN data_consumers dc ON dc.api_key_id = ak.id
"""


def _profile_table(kind: str) -> str:
    try:
        return PROFILE_TABLES[kind]
    except KeyError:
        raise ValueError(f"Unknown profile kind: {kind!r}") from None


class AccessStore:
    """Parameterized SQL over api_key_requests, api_keys, and the profile tables."""

    def __init__(self, conn: Any):
        self.conn = conn
        self.cur = conn.cursor(cursor_factory=RealDictCursor)

    def _one(self, sql: str, params: tuple = ()) -> dict | None:
        self.cur.execute(sql, params)
        row = self.cur.fetchone()
        return dict(row) if row else None

    def _all(self, sql: str, params: tuple = ()) -> list[dict]:
        self.cur.execute(sql, params)
        return [dict(r) for r in self.cur.fetchall()]

    # ─── Users ───────────────────────────────────────────────────────────

    def get_user(self, user_id: int, *, for_update: bool = False) -> dict | None:
        """Fetch an owner row. ``for_update`` serializes provisioning per owner."""
        sql = "SELECT id, email, first_name, last_name, role, organization FROM users WHERE id = %s"
        if for_update:
            sql += " FOR UPDATE"
        return self._one(sql, (user_id,))

    # ─── Requests ────────────────────────────────────────────────────────

    def get_request(self, request_id: int, *, for_update: bool = False) -> dict | None:
        sql = "SELECT * FROM api_key_requests WHERE id = %s"
        if for_update:
            sql += " FOR UPDATE"
        return self._one(sql, (request_id,))

    def update_request_status(
        self,
        request_id: int,
        status: str,
        reviewer_id: int,
        reason: str | None = None,
    ) -> bool:
        """Set status, reviewer, and reviewed-at in one statement."""
        rejection_reason = reason if status == STATUS_REJECTED else None
        self.cur.execute(
            """
            UPDATE api_key_requests
            SET status = %s, reviewed_by = %s, reviewed_at = NOW(),
                rejection_reason = %s, updated_at = NOW()
            WHERE id = %s
        """,
            (status, reviewer_id, rejection_reason, request_id),
        )
        return self.cur.rowcount > 0

    def insert_request(
        self,
        user_id: int,
        request_type: str,
        organization_name: str | None,
        organization: str | None,
        purpose: str | None,
    ) -> dict:
        self.cur.execute(
            """
            INSERT INTO api_key_requests
                (user_id, request_type, organization_name, organization, purpose, status)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING *
        """,
            (user_id, request_type, organization_name, organization, purpose, STATUS_PENDING),
        )
        return dict(self.cur.fetchone())

    def list_pending_requests(self) -> list[dict]:
        return self._all(
            """
            SELECT akr.*, u.email, u.first_name, u.last_name,
                   COALESCE(akr.organization, u.organization) AS organization
            FROM api_key_requests akr
            JOIN users u ON u.id = akr.user_id
            WHERE akr.status = %s
            ORDER BY akr.created_at DESC
        """,
            (STATUS_PENDING,),
        )

    def list_requests_for_owner(self, user_id: int) -> list[dict]:
        return self._all(
            "SELECT * FROM api_key_requests WHERE user_id = %s ORDER BY created_at DESC",
            (user_id,),
        )

    def approved_owners_without_active_credential(self) -> list[dict]:
        """Owners with an approved request but no active credential."""
        return self._all(
            """
            SELECT DISTINCT r.user_id
            FROM api_key_requests r
            WHERE r.status = %s
              AND EXISTS (SELECT 1 FROM api_keys ak WHERE ak.user_id = r.user_id)
              AND NOT EXISTS (
                  SELECT 1 FROM api_keys ak WHERE ak.user_id = r.user_id AND ak.status = true
              )
            ORDER BY r.user_id
        """,
            (STATUS_APPROVED,),
        )

    # ─── Credentials ─────────────────────────────────────────────────────

    def latest_credential(self, user_id: int) -> dict | None:
        """Most recently created credential for an owner, any status (row-locked)."""
        return self._one(
            """
            SELECT * FROM api_keys
            WHERE user_id = %s
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            FOR UPDATE
        """,
            (user_id,),
        )

    def insert_credential(
        self,
        user_id: int,
        api_key: str,
        name: str,
        reviewer_id: int | None = None,
    ) -> dict:
        self.cur.execute(
            """
            INSERT INTO api_keys (user_id, api_key, name, status, reviewed_by, reviewed_at)
            VALUES (%s, %s, %s, true, %s, CASE WHEN %s IS NULL THEN NULL ELSE NOW() END)
            RETURNING *
        """,
            (user_id, api_key, name, reviewer_id, reviewer_id),
        )
        return dict(self.cur.fetchone())

    def reactivate_credential(
        self,
        credential_id: int,
        name: str | None = None,
        reviewer_id: int | None = None,
    ) -> None:
        """Mark active and clear any rejection. ``name=None`` keeps the display name."""
        self.cur.execute(
            """
            UPDATE api_keys
            SET status = true,
                name = COALESCE(%s, name),
                rejection_reason = NULL,
                reviewed_by = COALESCE(%s, reviewed_by),
                reviewed_at = CASE WHEN %s IS NULL THEN reviewed_at ELSE NOW() END,
                updated_at = NOW()
            WHERE id = %s
        """,
            (name, reviewer_id, reviewer_id, credential_id),
        )

    def deactivate_other_credentials(self, user_id: int, keep_id: int) -> int:
        self.cur.execute(
            """
            UPDATE api_keys SET status = false, updated_at = NOW()
            WHERE user_id = %s AND id <> %s AND status = true
        """,
            (user_id, keep_id),
        )
        return self.cur.rowcount

    def credentials_named(self, user_id: int, name: str) -> list[dict]:
        """Credentials for an owner whose display name matches exactly (row-locked)."""
        return self._all(
            "SELECT * FROM api_keys WHERE user_id = %s AND name = %s ORDER BY id FOR UPDATE",
            (user_id, name),
        )

    def delete_credential(self, credential_id: int) -> int:
        self.cur.execute("DELETE FROM api_keys WHERE id = %s", (credential_id,))
        if self.cur.rowcount == 0:
            logger.debug("Credential %s already gone", credential_id)
        return self.cur.rowcount

    def duplicate_credential_groups(self) -> list[dict]:
        """Secrets held by more than one row; ``ids`` ordered newest first."""
        return self._all(
            """
            SELECT api_key, COUNT(*) AS count,
                   ARRAY_AGG(id ORDER BY created_at DESC, id DESC) AS ids
            FROM api_keys
            GROUP BY api_key
            HAVING COUNT(*) > 1
        """
        )

    def find_active_credential(self, api_key: str) -> dict | None:
        """Active credential for a secret, joined with the owner's role."""
        return self._one(
            """
            SELECT ak.*, u.role
            FROM api_keys ak
            JOIN users u ON u.id = ak.user_id
            WHERE ak.api_key = %s AND ak.status = true
            ORDER BY ak.created_at DESC, ak.id DESC
            LIMIT 1
        """,
            (api_key,),
        )

    def touch_credential(self, credential_id: int) -> None:
        """Record a successful API key authentication."""
        self.cur.execute("UPDATE api_keys SET last_used = NOW() WHERE id = %s", (credential_id,))

    def list_credentials(self, user_id: int | None = None) -> list[dict]:
        if user_id is None:
            return self._all(_CREDENTIAL_LISTING_SQL + " ORDER BY ak.created_at DESC")
        return self._all(
            _CREDENTIAL_LISTING_SQL + " WHERE ak.user_id = %s ORDER BY ak.created_at DESC",
            (user_id,),
        )

    # ─── Profiles ────────────────────────────────────────────────────────

    def latest_profile(self, kind: str, user_id: int) -> dict | None:
        table = _profile_table(kind)
        return self._one(
            f"SELECT * FROM {table} WHERE user_id = %s "
            "ORDER BY created_at DESC, id DESC LIMIT 1 FOR UPDATE",
            (user_id,),
        )

    def insert_profile(self, kind: str, user_id: int, name: str, credential_id: int) -> dict:
        table = _profile_table(kind)
        self.cur.execute(
            f"INSERT INTO {table} (user_id, name, api_key_id, status) "
            "VALUES (%s, %s, %s, true) RETURNING *",
            (user_id, name, credential_id),
        )
        return dict(self.cur.fetchone())

    def update_profile(self, kind: str, profile_id: int, name: str, credential_id: int) -> None:
        table = _profile_table(kind)
        self.cur.execute(
            f"UPDATE {table} SET name = %s, api_key_id = %s, status = true WHERE id = %s",
            (name, credential_id, profile_id),
        )

    def profile_for_credential(self, credential_id: int) -> tuple[str, dict] | None:
        """Owning profile of a credential; providers take precedence over consumers."""
        for kind, table in PROFILE_TABLES.items():
            row = self._one(
                f"SELECT * FROM {table} WHERE api_key_id = %s ORDER BY id LIMIT 1",
                (credential_id,),
            )
            if row:
                return kind, row
        return None

    def delete_profiles_for_credential(self, credential_id: int) -> int:
        """Delete provider and consumer rows that reference a credential."""
        removed = 0
        for table in PROFILE_TABLES.values():
            self.cur.execute(f"DELETE FROM {table} WHERE api_key_id = %s", (credential_id,))
            removed += self.cur.rowcount
        return removed
