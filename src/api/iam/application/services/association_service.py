"""Association consistency manager for IAM bounded context.

An application is owned by at most one organization OR one user, never
both. Every operation here runs in one transaction (a savepoint when the
caller already opened one), so a relationship is replaced atomically:
readers never observe the cleared-but-not-relinked state.
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from iam.application.observability import AssociationProbe, DefaultAssociationProbe
from iam.domain.value_objects import (
    ApplicationId,
    OrganizationId,
    OrganizationMembership,
    UserId,
)
from iam.ports.exceptions import (
    ApplicationNotFoundError,
    OrganizationNotFoundError,
    UserNotFoundError,
)
from iam.ports.repositories import (
    IApplicationRepository,
    IAssociationRepository,
    IOrganizationRepository,
    IUserRepository,
)
from infrastructure.database import transaction


class AssociationConsistencyManager:
    """Maintains the mutual exclusion between organization and user ownership.

    Setting one owner always tears down the other, even when the caller did
    not ask for it: "set X" means the application is now exclusively X-owned.
    """

    def __init__(
        self,
        association_repository: IAssociationRepository,
        application_repository: IApplicationRepository,
        organization_repository: IOrganizationRepository,
        user_repository: IUserRepository,
        session: AsyncSession,
        probe: AssociationProbe | None = None,
    ):
        """Initialize the manager with dependencies.

        Args:
            association_repository: Join-row store
            application_repository: Used to check that applications exist
            organization_repository: Used to check that organizations exist
            user_repository: Used to check that user owners exist
            session: Database session for transaction management
            probe: Optional domain probe for observability
        """
        self._associations = association_repository
        self._applications = application_repository
        self._organizations = organization_repository
        self._users = user_repository
        self._session = session
        self._probe = probe or DefaultAssociationProbe()

    async def set_application_organization(
        self,
        application_id: ApplicationId,
        organization_id: OrganizationId | None,
    ) -> None:
        """Make an organization the sole owner of an application.

        Both existing links are removed first. ``None`` leaves the
        application without an owner.

        Raises:
            ApplicationNotFoundError: If the application does not exist
            OrganizationNotFoundError: If the organization does not exist
        """
        async with transaction(self._session):
            await self._require_application(application_id)
            if organization_id is not None:
                await self._require_organization(organization_id)

            await self._associations.unlink_application_from_organization(
                application_id
            )
            await self._associations.unlink_application_from_user(application_id)
            if organization_id is not None:
                await self._associations.link_application_to_organization(
                    application_id, organization_id
                )

        self._probe.application_owner_changed(
            application_id.value,
            "organization",
            organization_id.value if organization_id else None,
        )

    async def set_application_user(
        self,
        application_id: ApplicationId,
        user_id: UserId | None,
    ) -> None:
        """Make a user the sole owner of an application.

        Symmetric to ``set_application_organization``.

        Raises:
            ApplicationNotFoundError: If the application does not exist
            UserNotFoundError: If the user does not exist
        """
        async with transaction(self._session):
            await self._require_application(application_id)
            if user_id is not None:
                await self._require_user(user_id)

            await self._associations.unlink_application_from_organization(
                application_id
            )
            await self._associations.unlink_application_from_user(application_id)
            if user_id is not None:
                await self._associations.link_application_to_user(
                    application_id, user_id
                )

        self._probe.application_owner_changed(
            application_id.value, "user", user_id.value if user_id else None
        )

    async def set_organization_applications(
        self,
        organization_id: OrganizationId,
        application_ids: Iterable[ApplicationId],
    ) -> None:
        """Replace the whole application set of an organization.

        1. Applications currently owned by another organization are taken
           away from it; that organization keeps its other applications.
        2. Applications of this organization missing from the new set are
           unlinked.
        3. Every application in the new set loses its direct user owner and
           is linked here, unless it already is.

        Links that already exist are kept in place, so repeating a call with
        the same set changes nothing.

        Raises:
            OrganizationNotFoundError: If the organization does not exist
            ApplicationNotFoundError: If any application does not exist
        """
        wanted = list(dict.fromkeys(application_ids))
        moved = 0

        async with transaction(self._session):
            await self._require_organization(organization_id)
            found = await self._applications.get_by_ids(wanted)
            missing = {a.value for a in wanted} - {a.id.value for a in found}
            if missing:
                raise ApplicationNotFoundError(
                    f"Applications not found: {', '.join(sorted(missing))}"
                )

            links = await self._associations.find_organizations_linking(wanted)
            for application_id, owner in links:
                if owner != organization_id:
                    await self._associations.unlink_application_from_organization(
                        application_id, owner
                    )
                    moved += 1

            current = await self._associations.list_organization_applications(
                organization_id
            )
            for application_id in current:
                if application_id not in wanted:
                    await self._associations.unlink_application_from_organization(
                        application_id, organization_id
                    )

            for application_id in wanted:
                await self._associations.unlink_application_from_user(application_id)
                if application_id not in current:
                    await self._associations.link_application_to_organization(
                        application_id, organization_id
                    )

        self._probe.organization_applications_replaced(
            organization_id.value, len(wanted), moved
        )

    async def set_organization_members(
        self,
        organization_id: OrganizationId,
        members: Iterable[OrganizationMembership],
    ) -> None:
        """Replace the member list of an organization.

        A user listed twice keeps the first role given.

        Raises:
            OrganizationNotFoundError: If the organization does not exist
        """
        unique: dict[UserId, OrganizationMembership] = {}
        for membership in members:
            unique.setdefault(membership.user_id, membership)

        async with transaction(self._session):
            await self._require_organization(organization_id)
            await self._associations.clear_organization_members(organization_id)
            for membership in unique.values():
                await self._associations.add_organization_member(
                    organization_id, membership
                )

        self._probe.organization_members_replaced(organization_id.value, len(unique))

    async def clear_application_associations(
        self, application_id: ApplicationId
    ) -> None:
        """Remove both owner links of an application."""
        async with transaction(self._session):
            await self._associations.unlink_application_from_organization(
                application_id
            )
            await self._associations.unlink_application_from_user(application_id)
        self._probe.associations_cleared("application", application_id.value)

    async def clear_organization_associations(
        self, organization_id: OrganizationId
    ) -> None:
        """Remove every application link and every member of an organization."""
        async with transaction(self._session):
            await self._associations.clear_organization_applications(organization_id)
            await self._associations.clear_organization_members(organization_id)
        self._probe.associations_cleared("organization", organization_id.value)

    async def clear_user_associations(self, user_id: UserId) -> None:
        """Remove a user's application ownerships and organization memberships.

        Applications the user owned are left orphaned.
        """
        async with transaction(self._session):
            for application_id in await self._associations.list_applications_for_user(
                user_id
            ):
                await self._associations.unlink_application_from_user(application_id)

            for organization_id in await self._associations.list_organizations_for_user(
                user_id
            ):
                members = await self._associations.list_organization_members(
                    organization_id
                )
                await self._associations.clear_organization_members(organization_id)
                for membership in members:
                    if membership.user_id != user_id:
                        await self._associations.add_organization_member(
                            organization_id, membership
                        )
        self._probe.associations_cleared("user", user_id.value)

    async def find_orphans(self) -> list[ApplicationId]:
        """List applications that have neither an organization nor a user owner."""
        async with transaction(self._session):
            orphans = await self._associations.list_unlinked_application_ids()
        self._probe.orphans_found(len(orphans))
        return orphans

    async def _require_application(self, application_id: ApplicationId) -> None:
        if await self._applications.get_by_id(application_id) is None:
            raise ApplicationNotFoundError(f"Application {application_id} not found")

    async def _require_organization(self, organization_id: OrganizationId) -> None:
        if await self._organizations.get_by_id(organization_id) is None:
            raise OrganizationNotFoundError(f"Organization {organization_id} not found")

    async def _require_user(self, user_id: UserId) -> None:
        if await self._users.get_by_id(user_id) is None:
            raise UserNotFoundError(f"User {user_id} not found")
