"""IUserRepository implementation backed by the external identity provider.

Used when the identity backend is ``identity_provider``. Users are looked up
by their ``legacyId`` profile attribute, which carries the canonical id;
profiles that were never provisioned are invisible here.
"""

from __future__ import annotations

from iam.domain.aggregates import User
from iam.domain.value_objects import Page, Provider, Role, UserId
from iam.infrastructure.observability import (
    DefaultUserRepositoryProbe,
    UserRepositoryProbe,
)
from iam.ports.identity_provider import (
    IdentityProviderUser,
    IIdentityProviderClient,
    build_search_expression,
    profile_from_user,
)
from iam.ports.repositories import IUserRepository, UserQuery

ROLE_SCAN_PAGE_SIZE = 200


class IdentityProviderUserRepository(IUserRepository):
    """Maps the user repository contract onto identity-provider calls.

    Paging follows the provider's cursor model: ``Page.cursor`` is passed as
    ``after`` and ``Page.number`` is ignored.
    """

    def __init__(
        self,
        client: IIdentityProviderClient,
        probe: UserRepositoryProbe | None = None,
    ) -> None:
        self._client = client
        self._probe = probe or DefaultUserRepositoryProbe()

    async def save(self, user: User) -> None:
        """Create or update the provider profile holding the user."""
        existing = await self._find_one({"id": user.id.value})
        profile = profile_from_user(user)
        if existing is None:
            await self._client.create_user(profile, activate=False)
        else:
            await self._client.update_user(existing.id, profile)
        self._probe.user_saved(user.id.value, user.provider.value)

    async def get_by_id(self, user_id: UserId) -> User | None:
        """Retrieve a user by canonical id."""
        return self._project(await self._find_one({"id": user_id.value}), user_id.value)

    async def get_by_email(self, email: str) -> User | None:
        """Retrieve a user by login email."""
        return self._project(await self._client.get_user(email), email)

    async def get_local_by_email(self, email: str) -> User | None:
        """Retrieve the local user whose login is this email.

        Logins are unique at the provider, so an OAuth profile holding the
        email means there is no local user.
        """
        user = await self.get_by_email(email)
        return user if user is not None and user.is_local else None

    async def get_by_provider_identity(
        self, provider: Provider, provider_id: str
    ) -> User | None:
        """Retrieve the user linked to a provider subject id."""
        idp_user = await self._find_one(
            {"provider": provider.value, "providerId": provider_id}
        )
        return self._project(idp_user, f"{provider}:{provider_id}")

    async def get_by_ids(self, user_ids: list[UserId]) -> list[User]:
        """Retrieve every provisioned user whose id is in the list."""
        if not user_ids:
            return []
        search = build_search_expression({"id": [uid.value for uid in user_ids]})
        idp_users = await self._client.list_users(search=search, limit=len(user_ids))
        users = self._project_all(idp_users)
        self._probe.users_found(len(users))
        return users

    async def list_ids_by_role(self, role: Role) -> list[UserId]:
        """List the ids of all users holding a role, following the cursor."""
        search = build_search_expression({"role": role.value})
        ids: list[UserId] = []
        after: str | None = None
        while True:
            batch = await self._client.list_users(
                search=search, limit=ROLE_SCAN_PAGE_SIZE, after=after
            )
            ids.extend(user.id for user in self._project_all(batch))
            if len(batch) < ROLE_SCAN_PAGE_SIZE:
                return ids
            after = batch[-1].id

    async def find(self, query: UserQuery, page: Page) -> list[User]:
        """Search users with the provider's search language."""
        search = build_search_expression(query.as_criteria()) or None
        idp_users = await self._client.list_users(
            search=search, limit=page.size, after=page.cursor
        )
        users = self._project_all(idp_users)
        self._probe.users_found(len(users))
        return users

    async def delete(self, user_id: UserId) -> bool:
        """Delete the provider profile holding the user."""
        existing = await self._find_one({"id": user_id.value})
        if existing is None:
            return False
        await self._client.delete_user(existing.id)
        self._probe.user_deleted(user_id.value)
        return True

    async def _find_one(self, criteria: dict[str, str]) -> IdentityProviderUser | None:
        results = await self._client.list_users(
            search=build_search_expression(criteria), limit=1
        )
        return results[0] if results else None

    def _project(self, idp_user: IdentityProviderUser | None, lookup: str) -> User | None:
        if idp_user is None or idp_user.profile.get("legacyId") is None:
            self._probe.user_not_found(lookup)
            return None
        user = idp_user.to_user()
        self._probe.user_retrieved(user.id.value)
        return user

    @staticmethod
    def _project_all(idp_users: list[IdentityProviderUser]) -> list[User]:
        return [u.to_user() for u in idp_users if u.profile.get("legacyId") is not None]
