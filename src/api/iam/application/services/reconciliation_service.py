"""Provider reconciliation service for IAM bounded context.

Turns a third-party authentication profile into the canonical User,
creating it on first login and keeping its email fresh afterwards.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from iam.application.observability import (
    DefaultReconciliationProbe,
    ReconciliationProbe,
)
from iam.domain.aggregates import User
from iam.domain.profile import ProviderProfile, normalize_profile
from iam.domain.value_objects import Provider, UserId
from iam.ports.exceptions import (
    DuplicateProviderIdentityError,
    UnprocessableError,
    UnsupportedProviderError,
    UserNotFoundError,
)
from iam.ports.repositories import IUserRepository
from infrastructure.database import transaction


class ReconciliationService:
    """Find-or-create of canonical users keyed by ``(provider, provider_id)``.

    The lookup and the insert run in one transaction. Two concurrent first
    logins for the same identity can both miss the lookup; the unique index
    rejects the second insert and the loser returns the winner's record.
    """

    def __init__(
        self,
        user_repository: IUserRepository,
        session: AsyncSession,
        probe: ReconciliationProbe | None = None,
        id_factory: Callable[[], UserId] = UserId.generate,
    ):
        """Initialize ReconciliationService with dependencies.

        Args:
            user_repository: Repository for user persistence
            session: Database session for transaction management
            probe: Optional domain probe for observability
            id_factory: Produces ids for newly created users
        """
        self._user_repository = user_repository
        self._session = session
        self._probe = probe or DefaultReconciliationProbe()
        self._id_factory = id_factory

    async def reconcile_oauth_profile(
        self, strategy: str, payload: Mapping[str, Any]
    ) -> User:
        """Normalize a raw OAuth payload and reconcile it.

        Args:
            strategy: Authentication strategy name (``google``, ``facebook-token``...)
            payload: Profile as delivered by the provider

        Twitter logins only match accounts that are already linked.

        Raises:
            UnsupportedProviderError: If the strategy names no OAuth provider
            UserNotFoundError: If a Twitter identity is not linked to any user
        """
        try:
            profile = normalize_profile(strategy, payload)
        except ValueError as e:
            raise UnsupportedProviderError(str(e)) from e
        if profile.provider == Provider.TWITTER:
            return await self.reconcile_existing_only(profile)
        return await self.reconcile(profile)

    async def reconcile(self, profile: ProviderProfile) -> User:
        """Find or create the user for a provider identity.

        A new user starts as ``USER`` with no apps. An existing user only has
        its email refreshed, and only when the provider disclosed one.

        Args:
            profile: Normalized provider profile

        Returns:
            The persisted User

        Raises:
            UnprocessableError: If the profile carries no provider id
        """
        self._require_provider_id(profile)
        try:
            return await self._find_or_create(profile)
        except DuplicateProviderIdentityError:
            self._probe.reconciliation_race_lost(
                profile.provider.value, profile.provider_id
            )
            return await self._adopt_winner(profile)
        except Exception as e:
            self._probe.reconciliation_failed(profile.provider.value, str(e))
            raise

    async def reconcile_existing_only(self, profile: ProviderProfile) -> User:
        """Reconcile a login that may not create users.

        Used for providers that can sign in to linked accounts but no longer
        open new ones.

        Raises:
            UserNotFoundError: If no user is linked to the provider identity
        """
        self._require_provider_id(profile)
        async with transaction(self._session):
            user = await self._user_repository.get_by_provider_identity(
                profile.provider, profile.provider_id
            )
            if user is None:
                self._probe.identity_not_linked(
                    profile.provider.value, profile.provider_id
                )
                raise UserNotFoundError(
                    f"No user is linked to this {profile.provider} account"
                )
            await self._refresh(user, profile)
            return user

    async def _find_or_create(self, profile: ProviderProfile) -> User:
        async with transaction(self._session):
            user = await self._user_repository.get_by_provider_identity(
                profile.provider, profile.provider_id
            )
            if user is None:
                user = User.from_provider_profile(profile, user_id=self._id_factory())
                await self._user_repository.save(user)
                self._probe.identity_created(user.id.value, profile.provider.value)
                return user

            await self._refresh(user, profile)
            return user

    async def _adopt_winner(self, profile: ProviderProfile) -> User:
        """Re-fetch the record a concurrent request created."""
        async with transaction(self._session):
            user = await self._user_repository.get_by_provider_identity(
                profile.provider, profile.provider_id
            )
            if user is None:
                raise UserNotFoundError(
                    f"{profile.provider} identity vanished after a duplicate insert"
                )
            await self._refresh(user, profile)
            return user

    async def _refresh(self, user: User, profile: ProviderProfile) -> None:
        refreshed = user.refresh_email(profile.email)
        if refreshed:
            await self._user_repository.save(user)
        self._probe.identity_matched(user.id.value, profile.provider.value, refreshed)

    @staticmethod
    def _require_provider_id(profile: ProviderProfile) -> None:
        if not profile.provider_id:
            raise UnprocessableError(f"{profile.provider} profile has no subject id")
