"""Identity reconciliation against the external identity provider.

Profiles created at the provider (sign-up pages, social logins brokered by
the provider) lack the protected attributes this service relies on. They
are provisioned lazily, the first time the user comes back with an
authorization code.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from iam.application.observability import (
    DefaultReconciliationProbe,
    ReconciliationProbe,
)
from iam.application.services.reconciliation_service import ReconciliationService
from iam.domain.aggregates import User
from iam.domain.profile import ProviderProfile
from iam.domain.value_objects import Role, UserId
from iam.ports.exceptions import UserNotFoundError
from iam.ports.identity_provider import IdentityProviderUser, IIdentityProviderClient
from iam.ports.repositories import IUserRepository


class IdentityProviderReconciliationService:
    """Lazy-provisioning upsert of identity provider profiles."""

    def __init__(
        self,
        client: IIdentityProviderClient,
        user_repository: IUserRepository,
        session: AsyncSession,
        probe: ReconciliationProbe | None = None,
    ):
        """Initialize the service.

        Args:
            client: Identity provider users API
            user_repository: Identity-provider-backed user repository
            session: Database session for transaction management
            probe: Optional domain probe for observability
        """
        self._client = client
        self._probe = probe or DefaultReconciliationProbe()
        self._reconciler = ReconciliationService(
            user_repository,
            session,
            probe=self._probe,
            id_factory=UserId.generate_legacy,
        )

    async def provision_from_authorization_code(self, code: str) -> User:
        """Redeem an authorization code and return the provisioned user.

        Raises:
            UserNotFoundError: If the provider does not know the returned user id
            UpstreamFailureError: If the provider rejected the code
        """
        idp_user_id = await self._client.exchange_authorization_code(code)
        idp_user = await self._client.get_user(idp_user_id)
        if idp_user is None:
            raise UserNotFoundError(f"Identity provider user {idp_user_id} not found")
        return await self.provision(idp_user)

    async def provision(self, idp_user: IdentityProviderUser) -> User:
        """Set missing protected attributes, then project the profile.

        All missing attributes are written in a single update call so a
        profile is never left half-provisioned.
        """
        missing = idp_user.missing_protected_fields()
        if missing:
            defaults: dict[str, Any] = {
                "legacyId": UserId.generate_legacy().value,
                "role": Role.USER.value,
                "apps": [],
            }
            updates = {name: defaults[name] for name in missing}
            idp_user = await self._client.update_user(idp_user.id, updates)
            self._probe.identity_provisioned(
                str(idp_user.profile.get("legacyId")), idp_user.id, missing
            )
        return idp_user.to_user()

    async def reconcile(self, profile: ProviderProfile) -> User:
        """Find or create the provider profile for a social identity.

        New profiles get a fresh UUID4 ``legacyId``; existing ones only have
        their email refreshed.
        """
        return await self._reconciler.reconcile(profile)
