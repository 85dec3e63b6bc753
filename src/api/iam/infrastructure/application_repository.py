"""PostgreSQL implementations of IApplicationRepository and IOrganizationRepository.

Both repositories store metadata only. Ownership and membership live in
join rows, which are read here to hydrate aggregates and written only
through ``AssociationRepository``.
"""

from __future__ import annotations

from collections import defaultdict

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from iam.domain.aggregates import Application, Organization
from iam.domain.value_objects import (
    ApplicationId,
    OrganizationId,
    OrganizationMembership,
    OrganizationRole,
    Page,
    UserId,
)
from iam.infrastructure.models import (
    ApplicationModel,
    ApplicationOrganizationModel,
    ApplicationUserModel,
    OrganizationModel,
    OrganizationUserModel,
)
from iam.infrastructure.observability import (
    ApplicationRepositoryProbe,
    DefaultApplicationRepositoryProbe,
)
from iam.ports.repositories import IApplicationRepository, IOrganizationRepository


class ApplicationRepository(IApplicationRepository):
    """PostgreSQL-backed repository for Application aggregates."""

    def __init__(
        self, session: AsyncSession, probe: ApplicationRepositoryProbe | None = None
    ) -> None:
        """Initialize repository with database session and probe.

        Args:
            session: AsyncSession from FastAPI dependency injection
            probe: Optional domain probe for observability
        """
        self._session = session
        self._probe = probe or DefaultApplicationRepositoryProbe()

    async def save(self, application: Application) -> None:
        """Persist application metadata. Ownership links are not written here."""
        stmt = select(ApplicationModel).where(ApplicationModel.id == application.id.value)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            model = ApplicationModel(id=application.id.value)
            self._session.add(model)

        model.name = application.name
        model.api_key_id = application.api_key_id
        model.api_key_value = application.api_key_value
        if application.updated_at is not None:
            model.updated_at = application.updated_at

        await self._session.flush()
        self._probe.application_saved(application.id.value)

    async def get_by_id(self, application_id: ApplicationId) -> Application | None:
        """Retrieve a hydrated application, or None if not found."""
        stmt = self._hydrated().where(ApplicationModel.id == application_id.value)
        result = await self._session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return self._to_domain(*row)

    async def get_by_ids(self, application_ids: list[ApplicationId]) -> list[Application]:
        """Retrieve hydrated applications. Unknown ids are skipped."""
        if not application_ids:
            return []
        stmt = (
            self._hydrated()
            .where(ApplicationModel.id.in_([a.value for a in application_ids]))
            .order_by(ApplicationModel.created_at, ApplicationModel.id)
        )
        result = await self._session.execute(stmt)
        return [self._to_domain(*row) for row in result.all()]

    async def list_all(
        self, page: Page, user_id: UserId | None = None
    ) -> list[Application]:
        """List applications, optionally restricted to those a user owns directly."""
        stmt = self._hydrated()
        if user_id is not None:
            stmt = stmt.where(ApplicationUserModel.user_id == user_id.value)
        stmt = (
            stmt.order_by(ApplicationModel.created_at, ApplicationModel.id)
            .offset(page.offset)
            .limit(page.size)
        )
        result = await self._session.execute(stmt)
        applications = [self._to_domain(*row) for row in result.all()]
        self._probe.applications_listed(len(applications))
        return applications

    async def delete(self, application_id: ApplicationId) -> bool:
        """Delete an application record.

        Returns:
            True if deleted, False if not found
        """
        stmt = delete(ApplicationModel).where(ApplicationModel.id == application_id.value)
        result = await self._session.execute(stmt)
        await self._session.flush()
        if result.rowcount == 0:
            return False
        self._probe.application_deleted(application_id.value)
        return True

    @staticmethod
    def _hydrated():
        """Select application rows together with both ownership links."""
        return (
            select(
                ApplicationModel,
                ApplicationOrganizationModel.organization_id,
                ApplicationUserModel.user_id,
            )
            .outerjoin(
                ApplicationOrganizationModel,
                ApplicationOrganizationModel.application_id == ApplicationModel.id,
            )
            .outerjoin(
                ApplicationUserModel,
                ApplicationUserModel.application_id == ApplicationModel.id,
            )
        )

    @staticmethod
    def _to_domain(
        model: ApplicationModel, organization_id: str | None, user_id: str | None
    ) -> Application:
        return Application(
            id=ApplicationId(value=model.id),
            name=model.name,
            api_key_id=model.api_key_id,
            api_key_value=model.api_key_value,
            organization_id=OrganizationId(value=organization_id)
            if organization_id
            else None,
            user_id=UserId(value=user_id) if user_id else None,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


class OrganizationRepository(IOrganizationRepository):
    """PostgreSQL-backed repository for Organization aggregates."""

    def __init__(
        self, session: AsyncSession, probe: ApplicationRepositoryProbe | None = None
    ) -> None:
        """Initialize repository with database session and probe.

        Args:
            session: AsyncSession from FastAPI dependency injection
            probe: Optional domain probe for observability
        """
        self._session = session
        self._probe = probe or DefaultApplicationRepositoryProbe()

    async def save(self, organization: Organization) -> None:
        """Persist organization metadata. Links are not written here."""
        stmt = select(OrganizationModel).where(
            OrganizationModel.id == organization.id.value
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            model = OrganizationModel(id=organization.id.value)
            self._session.add(model)

        model.name = organization.name
        if organization.updated_at is not None:
            model.updated_at = organization.updated_at

        await self._session.flush()
        self._probe.organization_saved(organization.id.value)

    async def get_by_id(self, organization_id: OrganizationId) -> Organization | None:
        """Retrieve a hydrated organization, or None if not found."""
        stmt = select(OrganizationModel).where(
            OrganizationModel.id == organization_id.value
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None
        organizations = await self._hydrate([model])
        return organizations[0]

    async def list_all(
        self, page: Page, user_id: UserId | None = None
    ) -> list[Organization]:
        """List organizations, optionally restricted to those a user is a member of."""
        stmt = select(OrganizationModel)
        if user_id is not None:
            stmt = stmt.join(
                OrganizationUserModel,
                OrganizationUserModel.organization_id == OrganizationModel.id,
            ).where(OrganizationUserModel.user_id == user_id.value)
        stmt = (
            stmt.order_by(OrganizationModel.created_at, OrganizationModel.id)
            .offset(page.offset)
            .limit(page.size)
        )
        result = await self._session.execute(stmt)
        organizations = await self._hydrate(list(result.scalars().all()))
        self._probe.organizations_listed(len(organizations))
        return organizations

    async def delete(self, organization_id: OrganizationId) -> bool:
        """Delete an organization record.

        Returns:
            True if deleted, False if not found
        """
        stmt = delete(OrganizationModel).where(
            OrganizationModel.id == organization_id.value
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        if result.rowcount == 0:
            return False
        self._probe.organization_deleted(organization_id.value)
        return True

    async def _hydrate(self, models: list[OrganizationModel]) -> list[Organization]:
        """Load application links and members for a batch of organizations."""
        if not models:
            return []
        ids = [m.id for m in models]

        links_stmt = (
            select(
                ApplicationOrganizationModel.organization_id,
                ApplicationOrganizationModel.application_id,
            )
            .where(ApplicationOrganizationModel.organization_id.in_(ids))
            .order_by(
                ApplicationOrganizationModel.created_at,
                ApplicationOrganizationModel.id,
            )
        )
        applications: dict[str, list[ApplicationId]] = defaultdict(list)
        for org_id, app_id in (await self._session.execute(links_stmt)).all():
            applications[org_id].append(ApplicationId(value=app_id))

        members_stmt = (
            select(OrganizationUserModel)
            .where(OrganizationUserModel.organization_id.in_(ids))
            .order_by(OrganizationUserModel.created_at, OrganizationUserModel.id)
        )
        members: dict[str, list[OrganizationMembership]] = defaultdict(list)
        for row in (await self._session.execute(members_stmt)).scalars().all():
            members[row.organization_id].append(
                OrganizationMembership(
                    user_id=UserId(value=row.user_id),
                    role=OrganizationRole(row.role),
                )
            )

        return [
            Organization(
                id=OrganizationId(value=m.id),
                name=m.name,
                application_ids=applications[m.id],
                members=members[m.id],
                created_at=m.created_at,
                updated_at=m.updated_at,
            )
            for m in models
        ]
