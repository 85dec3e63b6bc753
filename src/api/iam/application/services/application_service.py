"""Application service for managing registered client applications."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from iam.application.observability import (
    ApplicationServiceProbe,
    DefaultApplicationServiceProbe,
)
from iam.application.services.association_service import (
    AssociationConsistencyManager,
)
from iam.application.value_objects import CurrentUser
from iam.domain.aggregates import Application
from iam.domain.value_objects import ApplicationId, OrganizationId, Page, UserId
from iam.ports.exceptions import (
    ApplicationNotFoundError,
    ApplicationOrphanedError,
    PermissionDeniedError,
    UnprocessableError,
)
from iam.ports.gateways import IApiKeyGateway
from iam.ports.repositories import IApplicationRepository, IOrganizationRepository
from infrastructure.database import transaction


@dataclass(frozen=True)
class OwnershipChange:
    """Requested change of an application's owner.

    ``None`` is a meaningful value ("remove this owner"), so each field
    carries a flag telling whether the caller supplied it at all.
    """

    organization_id: OrganizationId | None = None
    user_id: UserId | None = None
    organization_supplied: bool = False
    user_supplied: bool = False

    @classmethod
    def none(cls) -> OwnershipChange:
        """No ownership change requested."""
        return cls()

    @classmethod
    def to_organization(cls, organization_id: OrganizationId | None) -> OwnershipChange:
        """Request (or remove) organization ownership."""
        return cls(organization_id=organization_id, organization_supplied=True)

    @classmethod
    def to_user(cls, user_id: UserId | None) -> OwnershipChange:
        """Request (or remove) user ownership."""
        return cls(user_id=user_id, user_supplied=True)

    @property
    def is_empty(self) -> bool:
        """True when neither owner was supplied."""
        return not (self.organization_supplied or self.user_supplied)


class ApplicationService:
    """Application service for application lifecycle and ownership.

    Ownership links are always written through the association consistency
    manager, which keeps organization and user ownership mutually exclusive.
    """

    def __init__(
        self,
        application_repository: IApplicationRepository,
        organization_repository: IOrganizationRepository,
        association_manager: AssociationConsistencyManager,
        api_key_gateway: IApiKeyGateway,
        session: AsyncSession,
        probe: ApplicationServiceProbe | None = None,
    ):
        """Initialize ApplicationService with dependencies.

        Args:
            application_repository: Repository for application persistence
            organization_repository: Used for organization admin checks
            association_manager: Writes ownership links
            api_key_gateway: Issues and revokes API keys
            session: Database session for transaction management
            probe: Optional domain probe for observability
        """
        self._applications = application_repository
        self._organizations = organization_repository
        self._associations = association_manager
        self._api_keys = api_key_gateway
        self._session = session
        self._probe = probe or DefaultApplicationServiceProbe()

    async def create_application(
        self,
        name: str,
        actor: CurrentUser,
        organization_id: OrganizationId | None = None,
        user_id: UserId | None = None,
    ) -> Application:
        """Register a new application with exactly one owner.

        When no owner is given the actor becomes the owner. Non-admin actors
        may only create applications for themselves.

        Args:
            name: Display name, also used to label the API key
            actor: The calling user
            organization_id: Owning organization
            user_id: Owning user

        Returns:
            The created, hydrated application

        Raises:
            UnprocessableError: If both owners are given
            PermissionDeniedError: If a non-admin creates for someone else
            ApplicationOrphanedError: If no owner can be determined
        """
        if organization_id is not None and user_id is not None:
            raise UnprocessableError(
                "Application can be associated with an organization or a user, not both"
            )

        if organization_id is None and user_id is None:
            if actor.is_microservice:
                raise ApplicationOrphanedError()
            user_id = UserId.from_string(actor.user_id)

        if not actor.is_admin:
            if organization_id is not None or user_id != UserId(actor.user_id):
                self._probe.permission_denied(actor.user_id, "create_application")
                raise PermissionDeniedError(
                    "Only admins can create applications for other owners"
                )

        credential = await self._api_keys.create_key(name)
        application = Application.create(
            name=name, api_key_id=credential.id, api_key_value=credential.value
        )

        try:
            async with transaction(self._session):
                await self._applications.save(application)
                if organization_id is not None:
                    await self._associations.set_application_organization(
                        application.id, organization_id
                    )
                else:
                    await self._associations.set_application_user(
                        application.id, user_id
                    )
                created = await self._applications.get_by_id(application.id)
        except Exception:
            await self._api_keys.delete_key(credential.id)
            raise

        self._probe.application_created(application.id.value, name)
        return created or application

    async def update_application(
        self,
        application_id: ApplicationId,
        actor: CurrentUser,
        name: str | None = None,
        ownership: OwnershipChange | None = None,
        regen_api_key: bool = False,
    ) -> Application:
        """Rename an application, change its owner or rotate its API key.

        The supplied owner wins and the other ownership link is torn down.
        Removing the only current owner is rejected.

        Raises:
            ApplicationNotFoundError: If the application does not exist
            PermissionDeniedError: If the actor may not manage the application
            UnprocessableError: If both owners are set in one request
            ApplicationOrphanedError: If the application would have no owner
        """
        ownership = ownership or OwnershipChange.none()
        if ownership.organization_id is not None and ownership.user_id is not None:
            raise UnprocessableError(
                "Application can be associated with an organization or a user, not both"
            )

        previous_key_id: str | None = None
        async with transaction(self._session):
            application = await self._require(application_id)
            await self._check_can_manage(actor, application, "update_application")
            if not actor.is_admin:
                await self._check_owner_assignable(actor, ownership)

            if name is not None and name != application.name:
                application.rename(name)
                await self._api_keys.update_key(application.api_key_id, name)

            if regen_api_key:
                credential = await self._api_keys.create_key(application.name)
                previous_key_id = application.api_key_id
                application.rotate_api_key(credential.id, credential.value)

            application.touch()
            await self._applications.save(application)
            await self._apply_ownership(application, ownership)
            updated = await self._applications.get_by_id(application_id)

        if previous_key_id is not None:
            await self._api_keys.delete_key(previous_key_id)

        self._probe.application_updated(application_id.value)
        return updated or application

    async def delete_application(
        self, application_id: ApplicationId, actor: CurrentUser
    ) -> None:
        """Revoke the API key, drop both ownership links and delete the record.

        Raises:
            ApplicationNotFoundError: If the application does not exist
            PermissionDeniedError: If the actor may not manage the application
        """
        async with transaction(self._session):
            application = await self._require(application_id)
            await self._check_can_manage(actor, application, "delete_application")

        await self._api_keys.delete_key(application.api_key_id)

        async with transaction(self._session):
            await self._associations.clear_application_associations(application_id)
            await self._applications.delete(application_id)

        self._probe.application_deleted(application_id.value)

    async def get_application(
        self, application_id: ApplicationId, actor: CurrentUser
    ) -> Application:
        """Retrieve a hydrated application the actor may manage.

        Raises:
            ApplicationNotFoundError: If the application does not exist
            PermissionDeniedError: If the actor may not manage the application
        """
        async with transaction(self._session):
            application = await self._require(application_id)
            await self._check_can_manage(actor, application, "get_application")
        return application

    async def list_applications(
        self, page: Page, user_id: UserId | None = None
    ) -> list[Application]:
        """List applications, optionally only those a user owns directly."""
        async with transaction(self._session):
            return await self._applications.list_all(page, user_id=user_id)

    async def list_orphaned_applications(self) -> list[Application]:
        """List applications that lost both owners and need a new one."""
        orphan_ids = await self._associations.find_orphans()
        async with transaction(self._session):
            return await self._applications.get_by_ids(orphan_ids)

    async def _apply_ownership(
        self, application: Application, ownership: OwnershipChange
    ) -> None:
        if ownership.is_empty:
            return
        if ownership.organization_id is not None:
            await self._associations.set_application_organization(
                application.id, ownership.organization_id
            )
            return
        if ownership.user_id is not None:
            await self._associations.set_application_user(
                application.id, ownership.user_id
            )
            return

        # Only removals were requested: whatever owner is left stays in place.
        remaining_organization = (
            None if ownership.organization_supplied else application.organization_id
        )
        remaining_user = None if ownership.user_supplied else application.user_id
        if remaining_organization is None and remaining_user is None:
            raise ApplicationOrphanedError()

    async def _require(self, application_id: ApplicationId) -> Application:
        application = await self._applications.get_by_id(application_id)
        if application is None:
            self._probe.application_not_found(application_id.value)
            raise ApplicationNotFoundError(f"Application {application_id} not found")
        return application

    async def _check_can_manage(
        self, actor: CurrentUser, application: Application, action: str
    ) -> None:
        if actor.is_admin:
            return
        actor_id = UserId(actor.user_id)
        if application.is_owned_by(actor_id):
            return
        if application.organization_id is not None and await self._is_organization_admin(
            application.organization_id, actor_id
        ):
            return
        self._probe.permission_denied(actor.user_id, action)
        raise PermissionDeniedError("You are not allowed to manage this application")

    async def _check_owner_assignable(
        self, actor: CurrentUser, ownership: OwnershipChange
    ) -> None:
        actor_id = UserId(actor.user_id)
        if ownership.user_id is not None and ownership.user_id != actor_id:
            self._probe.permission_denied(actor.user_id, "assign_application_user")
            raise PermissionDeniedError(
                "Only admins can hand applications to other users"
            )
        if ownership.organization_id is not None and not await self._is_organization_admin(
            ownership.organization_id, actor_id
        ):
            self._probe.permission_denied(
                actor.user_id, "assign_application_organization"
            )
            raise PermissionDeniedError(
                "Only organization admins can move applications into an organization"
            )

    async def _is_organization_admin(
        self, organization_id: OrganizationId, user_id: UserId
    ) -> bool:
        organization = await self._organizations.get_by_id(organization_id)
        if organization is None:
            return False
        return any(m.user_id == user_id and m.is_admin() for m in organization.members)
