"""
GeoLink Audit Log — structured audit events for access decisions.

Event types:
  - access.request — a user submitted an access request
  - access.review — an admin changed a request's status
  - access.reconcile — duplicate credentials were collapsed
  - access.repair — approved owners had their credential reactivated
  - auth.denied — the access gate rejected a caller

Writes go through the injected ``Database`` on their own connection, after
the business transaction has committed. Failures are logged and never raise:
audit must not break callers.

Usage:
    from geolink.audit.logger import AuditLog
    audit = AuditLog(db)
    audit.log_event("access.review", "approved request 42",
                    actor="admin:1", target="request:42", details={...})
"""

from __future__ import annotations

import logging

from psycopg2.extras import Json

logger = logging.getLogger(__name__)


class AuditLog:
    """Audit writer/reader bound to one ``Database`` (or none, log-only)."""

    def __init__(self, db=None):
        self.db = db

    def log_event(
        self,
        event_type: str,
        action: str,
        *,
        category: str | None = "access",
        actor: str = "system",
        details: dict | None = None,
        target: str | None = None,
        status: str = "ok",
    ) -> dict | None:
        """Log a structured audit event.

        Returns {"id": int, "timestamp": str} on success, None on failure.
        """
        logger.info("audit %s [%s] %s target=%s status=%s", event_type, actor, action, target, status)
        if self.db is None:
            return None
        try:
            with self.db.connection() as conn:
                cur = conn.cursor()
                cur.execute(
                    """
                    INSERT INTO audit_log
                        (event_type, category, actor, action, details, target, status)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    RETURNING id, timestamp
                    """,
                    (
                        event_type,
                        category,
                        actor,
                        action,
                        Json(details) if details else None,
                        target,
                        status,
                    ),
                )
                row = cur.fetchone()
            return {"id": row[0], "timestamp": row[1].isoformat()}
        except Exception as e:
            logger.warning("Audit log_event failed: %s", e)
            return None

    def query_log(
        self,
        limit: int = 50,
        event_type: str | None = None,
        actor: str | None = None,
        target: str | None = None,
        status: str | None = None,
    ) -> list[dict]:
        """Query audit log with filters, newest first."""
        if self.db is None:
            return []
        try:
            query = (
                "SELECT id, timestamp, event_type, category, actor, action, "
                "details, target, status FROM audit_log WHERE 1=1"
            )
            params: list = []

            if event_type:
                query += " AND event_type = %s"
                params.append(event_type)
            if actor:
                query += " AND actor = %s"
                params.append(actor)
            if target:
                query += " AND target LIKE %s"
                params.append(f"%{target}%")
            if status:
                query += " AND status = %s"
                params.append(status)

            query += " ORDER BY timestamp DESC LIMIT %s"
            params.append(limit)

            with self.db.connection() as conn:
                cur = conn.cursor()
                cur.execute(query, params)
                rows = cur.fetchall()

            return [
                {
                    "id": r[0],
                    "timestamp": r[1].isoformat(),
                    "event_type": r[2],
                    "category": r[3],
                    "actor": r[4],
                    "action": r[5],
                    "details": r[6],
                    "target": r[7],
                    "status": r[8],
                }
                for r in rows
            ]
        except Exception as e:
            logger.warning("Audit query_log failed: %s", e)
            return []
