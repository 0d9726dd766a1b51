"""
Provisioning and revocation — the side effects of an access decision.

Both steps run against an ``AccessStore`` inside the caller's transaction and
report through ``Outcome``; neither commits nor rolls back.

``provision`` is an idempotent upsert: approving the same owner twice reuses
the owner's latest credential and profile instead of minting new ones.
``revoke`` undoes an approval by deleting the owner's credentials whose
display name equals the organization name, with their profiles.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from geolink.access.models import ErrorKind, Outcome
from geolink.access.validation import normalize_kind
from geolink.auth.tokens import generate_api_key

logger = logging.getLogger(__name__)


def provision(
    store,
    owner_id: int,
    kind: str | None,
    organization_name: str,
    *,
    reviewer_id: int | None = None,
    new_secret: Callable[[], str] = generate_api_key,
) -> Outcome:
    """Find-or-create the owner's credential and profile and link them.

    Returns an Outcome with ``credentialId``, ``profileId``, ``profileKind``
    and ``reusedCredential``.
    """
    kind = normalize_kind(kind)

    # Lock the owner first so concurrent approvals for one owner serialize
    # before the existence checks below.
    owner = store.get_user(owner_id, for_update=True)
    if owner is None:
        return Outcome.failure(ErrorKind.NOT_FOUND, f"User {owner_id} not found")

    credential = store.latest_credential(owner_id)
    if credential is not None:
        store.reactivate_credential(credential["id"], organization_name, reviewer_id)
        reused = True
    else:
        credential = store.insert_credential(
            owner_id, new_secret(), organization_name, reviewer_id
        )
        reused = False
    credential_id = credential["id"]

    deactivated = store.deactivate_other_credentials(owner_id, credential_id)
    if deactivated:
        logger.info("Deactivated %d older credential(s) for user %s", deactivated, owner_id)

    profile = store.latest_profile(kind, owner_id)
    if profile is not None:
        store.update_profile(kind, profile["id"], organization_name, credential_id)
    else:
        profile = store.insert_profile(kind, owner_id, organization_name, credential_id)

    logger.info(
        "Provisioned %s for user %s: credential %s (%s), profile %s",
        kind,
        owner_id,
        credential_id,
        "reactivated" if reused else "new",
        profile["id"],
    )
    return Outcome.success(
        "Access provisioned",
        credentialId=credential_id,
        profileId=profile["id"],
        profileKind=kind,
        reusedCredential=reused,
    )


def revoke(store, owner_id: int, organization_name: str) -> Outcome:
    """Delete the owner's credentials named ``organization_name`` and their profiles.

    Zero matches is a successful no-op.
    """
    credentials = store.credentials_named(owner_id, organization_name)
    profiles_removed = 0
    for credential in credentials:
        profiles_removed += store.delete_profiles_for_credential(credential["id"])
        store.delete_credential(credential["id"])

    if credentials:
        logger.info(
            "Revoked %d credential(s) and %d profile(s) for user %s (%s)",
            len(credentials),
            profiles_removed,
            owner_id,
            organization_name,
        )
    return Outcome.success(
        "Access revoked" if credentials else "Nothing to revoke",
        deletedCredentials=len(credentials),
        deletedProfiles=profiles_removed,
    )
