"""Authorization policy for identity management.

Decides whether an actor may create or modify another identity. The policy
is a pure function of roles and application grants.
"""

from __future__ import annotations

from typing import Iterable

from iam.domain.value_objects import Role, normalize_apps


def authorize_identity_management(
    actor_role: Role,
    actor_apps: Iterable[str],
    target_apps: Iterable[str],
    target_role: Role,
) -> bool:
    """Check whether an actor may manage an identity with the given grants.

    ADMIN and SUPERADMIN may manage anyone. A MANAGER may only manage
    ``USER`` identities whose every app is one the manager already holds.
    ``USER`` actors may not manage identities.

    Args:
        actor_role: Role of the acting user
        actor_apps: Apps granted to the acting user
        target_apps: Apps the managed identity will hold
        target_role: Role the managed identity will hold

    Returns:
        True if the actor is allowed
    """
    if actor_role.is_admin:
        return True
    if actor_role != Role.MANAGER or target_role != Role.USER:
        return False
    allowed = set(normalize_apps(actor_apps))
    return set(normalize_apps(target_apps)) <= allowed
