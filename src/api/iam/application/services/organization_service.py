"""Organization service for managing organizations and their links."""

from __future__ import annotations

from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from iam.application.observability import (
    DefaultOrganizationServiceProbe,
    OrganizationServiceProbe,
)
from iam.application.services.association_service import (
    AssociationConsistencyManager,
)
from iam.application.value_objects import CurrentUser
from iam.domain.aggregates import Organization
from iam.domain.value_objects import (
    ApplicationId,
    OrganizationId,
    OrganizationMembership,
    OrganizationRole,
    Page,
    UserId,
)
from iam.ports.exceptions import OrganizationNotFoundError, PermissionDeniedError
from iam.ports.repositories import IApplicationRepository, IOrganizationRepository
from infrastructure.database import transaction


class OrganizationService:
    """Application service for organization lifecycle.

    Application and member lists are replaced wholesale through the
    association consistency manager.
    """

    def __init__(
        self,
        organization_repository: IOrganizationRepository,
        application_repository: IApplicationRepository,
        association_manager: AssociationConsistencyManager,
        session: AsyncSession,
        probe: OrganizationServiceProbe | None = None,
    ):
        """Initialize OrganizationService with dependencies.

        Args:
            organization_repository: Repository for organization persistence
            application_repository: Used to check application ownership
            association_manager: Writes application and member links
            session: Database session for transaction management
            probe: Optional domain probe for observability
        """
        self._organizations = organization_repository
        self._applications = application_repository
        self._associations = association_manager
        self._session = session
        self._probe = probe or DefaultOrganizationServiceProbe()

    async def create_organization(
        self,
        name: str,
        actor: CurrentUser,
        application_ids: Sequence[ApplicationId] | None = None,
        members: Sequence[OrganizationMembership] | None = None,
    ) -> Organization:
        """Create an organization, optionally with applications and members.

        A non-admin creator is always made an ADMIN member, and may only
        bring applications they own directly.

        Raises:
            ApplicationNotFoundError: If an application does not exist
            PermissionDeniedError: If a non-admin brings someone else's application
        """
        members = list(members or [])
        if not actor.is_admin:
            creator = UserId(actor.user_id)
            members = [
                OrganizationMembership(user_id=creator, role=OrganizationRole.ADMIN),
                *(m for m in members if m.user_id != creator),
            ]

        organization = Organization.create(name)
        async with transaction(self._session):
            if application_ids and not actor.is_admin:
                await self._check_applications_movable(
                    actor, organization, application_ids
                )
            await self._organizations.save(organization)
            if application_ids:
                await self._associations.set_organization_applications(
                    organization.id, application_ids
                )
            if members:
                await self._associations.set_organization_members(
                    organization.id, members
                )
            created = await self._organizations.get_by_id(organization.id)

        self._probe.organization_created(organization.id.value, name)
        return created or organization

    async def update_organization(
        self,
        organization_id: OrganizationId,
        actor: CurrentUser,
        name: str | None = None,
        application_ids: Sequence[ApplicationId] | None = None,
        members: Sequence[OrganizationMembership] | None = None,
    ) -> Organization:
        """Rename an organization or replace its applications or members.

        ``None`` leaves a field untouched; an empty list clears it.

        Raises:
            OrganizationNotFoundError: If the organization does not exist
            PermissionDeniedError: If a non-admin is not an organization admin,
                or moves an application they do not own
        """
        async with transaction(self._session):
            organization = await self._require(organization_id)
            if not actor.is_admin:
                self._check_is_organization_admin(
                    actor, organization, "update_organization"
                )
                if application_ids:
                    await self._check_applications_movable(
                        actor, organization, application_ids
                    )

            if name is not None and name != organization.name:
                organization.rename(name)
            organization.touch()
            await self._organizations.save(organization)
            if application_ids is not None:
                await self._associations.set_organization_applications(
                    organization_id, application_ids
                )
            if members is not None:
                await self._associations.set_organization_members(
                    organization_id, members
                )
            updated = await self._organizations.get_by_id(organization_id)

        self._probe.organization_updated(organization_id.value)
        return updated or organization

    async def delete_organization(
        self, organization_id: OrganizationId, actor: CurrentUser
    ) -> None:
        """Delete an organization after removing all of its links.

        Applications it owned are left without an owner.

        Raises:
            OrganizationNotFoundError: If the organization does not exist
            PermissionDeniedError: If a non-admin is not an organization admin
        """
        async with transaction(self._session):
            organization = await self._require(organization_id)
            if not actor.is_admin:
                self._check_is_organization_admin(
                    actor, organization, "delete_organization"
                )
            await self._associations.clear_organization_associations(organization_id)
            await self._organizations.delete(organization_id)

        self._probe.organization_deleted(organization_id.value)

    async def get_organization(
        self, organization_id: OrganizationId, actor: CurrentUser
    ) -> Organization:
        """Retrieve a hydrated organization. Non-admins must be members.

        Raises:
            OrganizationNotFoundError: If the organization does not exist
            PermissionDeniedError: If a non-admin is not a member
        """
        async with transaction(self._session):
            organization = await self._require(organization_id)
        if not actor.is_admin and not organization.has_member(UserId(actor.user_id)):
            self._probe.permission_denied(actor.user_id, "get_organization")
            raise PermissionDeniedError("You are not a member of this organization")
        return organization

    async def list_organizations(
        self, page: Page, user_id: UserId | None = None
    ) -> list[Organization]:
        """List organizations, optionally only those a user is a member of."""
        async with transaction(self._session):
            return await self._organizations.list_all(page, user_id=user_id)

    async def _require(self, organization_id: OrganizationId) -> Organization:
        organization = await self._organizations.get_by_id(organization_id)
        if organization is None:
            self._probe.organization_not_found(organization_id.value)
            raise OrganizationNotFoundError(f"Organization {organization_id} not found")
        return organization

    def _check_is_organization_admin(
        self, actor: CurrentUser, organization: Organization, action: str
    ) -> None:
        actor_id = UserId(actor.user_id)
        if any(m.user_id == actor_id and m.is_admin() for m in organization.members):
            return
        self._probe.permission_denied(actor.user_id, action)
        raise PermissionDeniedError("You are not an admin of this organization")

    async def _check_applications_movable(
        self,
        actor: CurrentUser,
        organization: Organization,
        application_ids: Sequence[ApplicationId],
    ) -> None:
        actor_id = UserId(actor.user_id)
        applications = await self._applications.get_by_ids(list(application_ids))
        for application in applications:
            if application.is_owned_by(actor_id):
                continue
            if organization.links_application(application.id):
                continue
            self._probe.permission_denied(actor.user_id, "move_application")
            raise PermissionDeniedError(
                f"You are not allowed to move application {application.id}"
            )
