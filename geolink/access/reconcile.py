"""
Maintenance passes over the credential store.

``reconcile`` collapses credential rows that share a secret down to the most
recently created one, deleting the dependent profiles of the losers first.
``repair_approvals`` reactivates the latest credential of every owner whose
request is approved but who holds no active credential.

Each pass is one transaction. When the access tables are missing both passes
report zero work instead of failing, so the admin dashboard keeps loading on
a half-migrated database.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from geolink.access.models import ErrorKind, Outcome
from geolink.access.store import SCHEMA_MISSING_ERRORS, AccessStore

logger = logging.getLogger(__name__)


def reconcile(db, *, audit=None, store_factory: Callable = AccessStore) -> Outcome:
    """Delete duplicate credentials, keeping the newest row per secret.

    Returns an Outcome with ``groupsFound`` and ``rowsRemoved``.
    """
    try:
        with db.connection() as conn:
            store = store_factory(conn)
            groups = store.duplicate_credential_groups()
            removed = 0
            for group in groups:
                keep_id, *losers = group["ids"]
                for loser_id in losers:
                    store.delete_profiles_for_credential(loser_id)
                    removed += store.delete_credential(loser_id)
                logger.info("Duplicate credential group: kept %s, removed %s", keep_id, losers)
    except SCHEMA_MISSING_ERRORS as e:
        logger.warning("Credential tables missing, skipping reconcile: %s", e)
        return Outcome.success("No credential tables to reconcile", groupsFound=0, rowsRemoved=0)
    except Exception as e:
        logger.error("Credential reconcile failed: %s", e)
        return Outcome.failure(
            ErrorKind.TRANSACTION_FAILURE, "Failed to clean up duplicate API keys", detail=str(e)
        )

    outcome = Outcome.success(
        "Duplicate API keys cleaned up successfully",
        groupsFound=len(groups),
        rowsRemoved=removed,
    )
    if audit is not None and groups:
        audit.log_event(
            "access.reconcile",
            f"removed {removed} duplicate credential(s)",
            details=outcome.data,
        )
    return outcome


def repair_approvals(db, *, audit=None, store_factory: Callable = AccessStore) -> Outcome:
    """Reactivate the latest credential of approved owners left without an active one.

    Returns an Outcome with ``usersFound`` and ``keysReactivated``.
    """
    try:
        with db.connection() as conn:
            store = store_factory(conn)
            owners = store.approved_owners_without_active_credential()
            reactivated = 0
            for owner in owners:
                credential = store.latest_credential(owner["user_id"])
                if credential is None:
                    continue
                store.reactivate_credential(credential["id"])
                reactivated += 1
                logger.info(
                    "Reactivated credential %s for approved user %s",
                    credential["id"],
                    owner["user_id"],
                )
    except SCHEMA_MISSING_ERRORS as e:
        logger.warning("Access tables missing, skipping approval repair: %s", e)
        return Outcome.success("No access tables to repair", usersFound=0, keysReactivated=0)
    except Exception as e:
        logger.error("Approval repair failed: %s", e)
        return Outcome.failure(
            ErrorKind.TRANSACTION_FAILURE, "Failed to repair approved credentials", detail=str(e)
        )

    outcome = Outcome.success(
        "Approved credentials repaired",
        usersFound=len(owners),
        keysReactivated=reactivated,
    )
    if audit is not None and reactivated:
        audit.log_event(
            "access.repair",
            f"reactivated {reactivated} credential(s)",
            details=outcome.data,
        )
    return outcome
