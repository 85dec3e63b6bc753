"""PostgreSQL implementation of IAssociationRepository.

Join rows are inserted and deleted, never updated. The unique constraints on
``application_id`` in both application link tables make storage reject a
second owner link of the same kind; keeping the two kinds mutually exclusive
is the job of ``AssociationConsistencyManager``.
"""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from ulid import ULID

from iam.domain.value_objects import (
    ApplicationId,
    OrganizationId,
    OrganizationMembership,
    OrganizationRole,
    UserId,
)
from iam.infrastructure.models import (
    ApplicationModel,
    ApplicationOrganizationModel,
    ApplicationUserModel,
    OrganizationUserModel,
)
from iam.infrastructure.observability import (
    AssociationRepositoryProbe,
    DefaultAssociationRepositoryProbe,
)
from iam.ports.repositories import IAssociationRepository


class AssociationRepository(IAssociationRepository):
    """Join-row store backed by three PostgreSQL tables.

    Listings are ordered by link creation (``created_at``, then the ULID id).
    """

    def __init__(
        self, session: AsyncSession, probe: AssociationRepositoryProbe | None = None
    ) -> None:
        """Initialize repository with database session and probe.

        Args:
            session: AsyncSession from FastAPI dependency injection
            probe: Optional domain probe for observability
        """
        self._session = session
        self._probe = probe or DefaultAssociationRepositoryProbe()

    async def get_application_organization(
        self, application_id: ApplicationId
    ) -> OrganizationId | None:
        """Organization the application is linked to, if any."""
        stmt = select(ApplicationOrganizationModel.organization_id).where(
            ApplicationOrganizationModel.application_id == application_id.value
        )
        result = await self._session.execute(stmt)
        value = result.scalar_one_or_none()
        return OrganizationId(value=value) if value else None

    async def get_application_user(self, application_id: ApplicationId) -> UserId | None:
        """User the application is linked to, if any."""
        stmt = select(ApplicationUserModel.user_id).where(
            ApplicationUserModel.application_id == application_id.value
        )
        result = await self._session.execute(stmt)
        value = result.scalar_one_or_none()
        return UserId(value=value) if value else None

    async def link_application_to_organization(
        self, application_id: ApplicationId, organization_id: OrganizationId
    ) -> None:
        """Insert an application/organization join row."""
        self._session.add(
            ApplicationOrganizationModel(
                id=str(ULID()),
                application_id=application_id.value,
                organization_id=organization_id.value,
            )
        )
        await self._session.flush()
        self._probe.link_created(
            "organization", application_id.value, organization_id.value
        )

    async def link_application_to_user(
        self, application_id: ApplicationId, user_id: UserId
    ) -> None:
        """Insert an application/user join row."""
        self._session.add(
            ApplicationUserModel(
                id=str(ULID()),
                application_id=application_id.value,
                user_id=user_id.value,
            )
        )
        await self._session.flush()
        self._probe.link_created("user", application_id.value, user_id.value)

    async def unlink_application_from_organization(
        self,
        application_id: ApplicationId,
        organization_id: OrganizationId | None = None,
    ) -> int:
        """Delete the application's organization join row.

        Args:
            application_id: The application to unlink
            organization_id: Only delete the row if it points at this organization

        Returns:
            Number of rows removed
        """
        stmt = delete(ApplicationOrganizationModel).where(
            ApplicationOrganizationModel.application_id == application_id.value
        )
        if organization_id is not None:
            stmt = stmt.where(
                ApplicationOrganizationModel.organization_id == organization_id.value
            )
        return await self._delete(stmt, "application_organization", application_id.value)

    async def unlink_application_from_user(self, application_id: ApplicationId) -> int:
        """Delete the application's user join row. Returns rows removed."""
        stmt = delete(ApplicationUserModel).where(
            ApplicationUserModel.application_id == application_id.value
        )
        return await self._delete(stmt, "application_user", application_id.value)

    async def list_organization_applications(
        self, organization_id: OrganizationId
    ) -> list[ApplicationId]:
        """Applications linked to an organization, in link creation order."""
        stmt = (
            select(ApplicationOrganizationModel.application_id)
            .where(ApplicationOrganizationModel.organization_id == organization_id.value)
            .order_by(
                ApplicationOrganizationModel.created_at,
                ApplicationOrganizationModel.id,
            )
        )
        result = await self._session.execute(stmt)
        return [ApplicationId(value=v) for v in result.scalars().all()]

    async def find_organizations_linking(
        self, application_ids: list[ApplicationId]
    ) -> list[tuple[ApplicationId, OrganizationId]]:
        """Current (application, organization) links for the given applications."""
        if not application_ids:
            return []
        stmt = (
            select(
                ApplicationOrganizationModel.application_id,
                ApplicationOrganizationModel.organization_id,
            )
            .where(
                ApplicationOrganizationModel.application_id.in_(
                    [a.value for a in application_ids]
                )
            )
            .order_by(
                ApplicationOrganizationModel.created_at,
                ApplicationOrganizationModel.id,
            )
        )
        result = await self._session.execute(stmt)
        return [
            (ApplicationId(value=app_id), OrganizationId(value=org_id))
            for app_id, org_id in result.all()
        ]

    async def list_organization_members(
        self, organization_id: OrganizationId
    ) -> list[OrganizationMembership]:
        """Members of an organization, in join order."""
        stmt = (
            select(OrganizationUserModel)
            .where(OrganizationUserModel.organization_id == organization_id.value)
            .order_by(OrganizationUserModel.created_at, OrganizationUserModel.id)
        )
        result = await self._session.execute(stmt)
        return [
            OrganizationMembership(
                user_id=UserId(value=row.user_id),
                role=OrganizationRole(row.role),
            )
            for row in result.scalars().all()
        ]

    async def add_organization_member(
        self, organization_id: OrganizationId, membership: OrganizationMembership
    ) -> None:
        """Insert an organization/user join row."""
        self._session.add(
            OrganizationUserModel(
                id=str(ULID()),
                organization_id=organization_id.value,
                user_id=membership.user_id.value,
                role=membership.role.value,
            )
        )
        await self._session.flush()
        self._probe.member_added(
            organization_id.value, membership.user_id.value, membership.role.value
        )

    async def clear_organization_members(self, organization_id: OrganizationId) -> int:
        """Delete every organization/user join row of an organization."""
        stmt = delete(OrganizationUserModel).where(
            OrganizationUserModel.organization_id == organization_id.value
        )
        return await self._delete(stmt, "organization_user", organization_id.value)

    async def clear_organization_applications(
        self, organization_id: OrganizationId
    ) -> int:
        """Delete every application/organization join row of an organization."""
        stmt = delete(ApplicationOrganizationModel).where(
            ApplicationOrganizationModel.organization_id == organization_id.value
        )
        return await self._delete(stmt, "application_organization", organization_id.value)

    async def list_applications_for_user(self, user_id: UserId) -> list[ApplicationId]:
        """Applications a user owns directly."""
        stmt = (
            select(ApplicationUserModel.application_id)
            .where(ApplicationUserModel.user_id == user_id.value)
            .order_by(ApplicationUserModel.created_at, ApplicationUserModel.id)
        )
        result = await self._session.execute(stmt)
        return [ApplicationId(value=v) for v in result.scalars().all()]

    async def list_organizations_for_user(self, user_id: UserId) -> list[OrganizationId]:
        """Organizations a user is a member of."""
        stmt = (
            select(OrganizationUserModel.organization_id)
            .where(OrganizationUserModel.user_id == user_id.value)
            .order_by(OrganizationUserModel.created_at, OrganizationUserModel.id)
        )
        result = await self._session.execute(stmt)
        return [OrganizationId(value=v) for v in result.scalars().all()]

    async def list_unlinked_application_ids(self) -> list[ApplicationId]:
        """Applications with neither an organization nor a user link."""
        stmt = (
            select(ApplicationModel.id)
            .outerjoin(
                ApplicationOrganizationModel,
                ApplicationOrganizationModel.application_id == ApplicationModel.id,
            )
            .outerjoin(
                ApplicationUserModel,
                ApplicationUserModel.application_id == ApplicationModel.id,
            )
            .where(
                ApplicationOrganizationModel.id.is_(None),
                ApplicationUserModel.id.is_(None),
            )
            .order_by(ApplicationModel.created_at, ApplicationModel.id)
        )
        result = await self._session.execute(stmt)
        return [ApplicationId(value=v) for v in result.scalars().all()]

    async def _delete(self, stmt, kind: str, subject_id: str) -> int:
        result = await self._session.execute(stmt)
        await self._session.flush()
        if result.rowcount:
            self._probe.links_removed(kind, subject_id, result.rowcount)
        return result.rowcount
