"""In-memory repositories for exercising association scenarios end to end.

The fakes mirror the storage rules of the real join tables: an application
appears in at most one organization link and at most one user link.
"""

from __future__ import annotations

import pytest

from iam.domain.aggregates import Application, Organization, User
from iam.domain.value_objects import (
    ApplicationId,
    OrganizationId,
    OrganizationMembership,
    Page,
    Provider,
    UserId,
)


class InMemoryAssociations:
    """Join rows kept in insertion-ordered lists."""

    def __init__(self) -> None:
        self.app_orgs: list[tuple[ApplicationId, OrganizationId]] = []
        self.app_users: list[tuple[ApplicationId, UserId]] = []
        self.members: list[tuple[OrganizationId, OrganizationMembership]] = []
        self.applications: dict[ApplicationId, Application] = {}

    async def get_application_organization(self, application_id):
        return next((o for a, o in self.app_orgs if a == application_id), None)

    async def get_application_user(self, application_id):
        return next((u for a, u in self.app_users if a == application_id), None)

    async def link_application_to_organization(self, application_id, organization_id):
        if any(a == application_id for a, _ in self.app_orgs):
            raise AssertionError(f"{application_id} already linked to an organization")
        self.app_orgs.append((application_id, organization_id))

    async def link_application_to_user(self, application_id, user_id):
        if any(a == application_id for a, _ in self.app_users):
            raise AssertionError(f"{application_id} already linked to a user")
        self.app_users.append((application_id, user_id))

    async def unlink_application_from_organization(
        self, application_id, organization_id=None
    ):
        before = len(self.app_orgs)
        self.app_orgs = [
            (a, o)
            for a, o in self.app_orgs
            if not (
                a == application_id
                and (organization_id is None or o == organization_id)
            )
        ]
        return before - len(self.app_orgs)

    async def unlink_application_from_user(self, application_id):
        before = len(self.app_users)
        self.app_users = [(a, u) for a, u in self.app_users if a != application_id]
        return before - len(self.app_users)

    async def list_organization_applications(self, organization_id):
        return [a for a, o in self.app_orgs if o == organization_id]

    async def find_organizations_linking(self, application_ids):
        return [(a, o) for a, o in self.app_orgs if a in application_ids]

    async def list_organization_members(self, organization_id):
        return [m for o, m in self.members if o == organization_id]

    async def add_organization_member(self, organization_id, membership):
        self.members.append((organization_id, membership))

    async def clear_organization_members(self, organization_id):
        before = len(self.members)
        self.members = [(o, m) for o, m in self.members if o != organization_id]
        return before - len(self.members)

    async def clear_organization_applications(self, organization_id):
        before = len(self.app_orgs)
        self.app_orgs = [(a, o) for a, o in self.app_orgs if o != organization_id]
        return before - len(self.app_orgs)

    async def list_applications_for_user(self, user_id):
        return [a for a, u in self.app_users if u == user_id]

    async def list_organizations_for_user(self, user_id):
        return [o for o, m in self.members if m.user_id == user_id]

    async def list_unlinked_application_ids(self):
        linked = {a for a, _ in self.app_orgs} | {a for a, _ in self.app_users}
        return [a for a in self.applications if a not in linked]


class InMemoryApplications:
    """Application records hydrated from the shared association store."""

    def __init__(self, associations: InMemoryAssociations) -> None:
        self._associations = associations

    @property
    def _records(self) -> dict[ApplicationId, Application]:
        return self._associations.applications

    async def _hydrate(self, application: Application) -> Application:
        application.organization_id = (
            await self._associations.get_application_organization(application.id)
        )
        application.user_id = await self._associations.get_application_user(
            application.id
        )
        return application

    async def save(self, application):
        self._records[application.id] = application

    async def get_by_id(self, application_id):
        application = self._records.get(application_id)
        return await self._hydrate(application) if application else None

    async def get_by_ids(self, application_ids):
        return [
            await self._hydrate(self._records[a])
            for a in application_ids
            if a in self._records
        ]

    async def list_all(self, page: Page, user_id=None):
        records = [await self._hydrate(a) for a in self._records.values()]
        if user_id is not None:
            records = [a for a in records if a.user_id == user_id]
        return records[page.offset : page.offset + page.size]

    async def delete(self, application_id):
        return self._records.pop(application_id, None) is not None


class InMemoryOrganizations:
    """Organization records hydrated from the shared association store."""

    def __init__(self, associations: InMemoryAssociations) -> None:
        self._associations = associations
        self._records: dict[OrganizationId, Organization] = {}

    async def _hydrate(self, organization: Organization) -> Organization:
        organization.application_ids = (
            await self._associations.list_organization_applications(organization.id)
        )
        organization.members = await self._associations.list_organization_members(
            organization.id
        )
        return organization

    async def save(self, organization):
        self._records[organization.id] = organization

    async def get_by_id(self, organization_id):
        organization = self._records.get(organization_id)
        return await self._hydrate(organization) if organization else None

    async def list_all(self, page: Page, user_id=None):
        records = [await self._hydrate(o) for o in self._records.values()]
        if user_id is not None:
            records = [o for o in records if o.has_member(user_id)]
        return records[page.offset : page.offset + page.size]

    async def delete(self, organization_id):
        return self._records.pop(organization_id, None) is not None


class InMemoryUsers:
    """Known users by id. Only lookups by id are needed here."""

    def __init__(self) -> None:
        self._records: dict[UserId, User] = {}

    def add(self, user_id: UserId) -> UserId:
        self._records[user_id] = User(id=user_id, provider=Provider.LOCAL)
        return user_id

    async def get_by_id(self, user_id):
        return self._records.get(user_id)


@pytest.fixture
def associations():
    """Shared in-memory join rows."""
    return InMemoryAssociations()


@pytest.fixture
def applications(associations):
    """In-memory application repository."""
    return InMemoryApplications(associations)


@pytest.fixture
def organizations(associations):
    """In-memory organization repository."""
    return InMemoryOrganizations(associations)


@pytest.fixture
def users(admin_actor, user_actor):
    """In-memory user store that already knows both actors."""
    store = InMemoryUsers()
    store.add(UserId(admin_actor.user_id))
    store.add(UserId(user_actor.user_id))
    return store


@pytest.fixture
def make_user(users):
    """Register a new user and return its id."""

    def _make() -> UserId:
        return users.add(UserId.generate())

    return _make


@pytest.fixture
def association_probe():
    """Mock association probe."""
    from unittest.mock import create_autospec

    from iam.application.observability import AssociationProbe

    return create_autospec(AssociationProbe, instance=True)


@pytest.fixture
def association_manager(
    associations, applications, organizations, users, mock_session, association_probe
):
    """Association manager wired to the in-memory store."""
    from iam.application.services.association_service import (
        AssociationConsistencyManager,
    )

    return AssociationConsistencyManager(
        association_repository=associations,
        application_repository=applications,
        organization_repository=organizations,
        user_repository=users,
        session=mock_session,
        probe=association_probe,
    )


@pytest.fixture
def make_application(applications):
    """Store a new, unlinked application."""

    async def _make(name: str = "app") -> Application:
        application = Application.create(
            name=name, api_key_id=f"{name}-key", api_key_value=f"{name}-secret"
        )
        await applications.save(application)
        return application

    return _make


@pytest.fixture
def make_organization(organizations):
    """Store a new organization without links."""

    async def _make(name: str = "org") -> Organization:
        organization = Organization.create(name=name)
        await organizations.save(organization)
        return organization

    return _make
