"""Repository protocols (ports) for IAM bounded context.

Repository protocols define the interface for persisting and retrieving
aggregates. Implementations flush but never commit: the calling service
owns the transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from iam.domain.aggregates import (
    Application,
    Deletion,
    Organization,
    PasswordRenewal,
    PendingUser,
    User,
)
from iam.domain.value_objects import (
    ApplicationId,
    DeletionId,
    DeletionStatus,
    OrganizationId,
    OrganizationMembership,
    Page,
    Provider,
    Role,
    UserId,
)


@dataclass(frozen=True)
class UserQuery:
    """Filter for user searches. ``None`` fields do not filter.

    ``name`` and ``email`` match by prefix; the other fields match exactly.
    List-valued fields match any of their values.
    """

    ids: tuple[str, ...] = ()
    name: str | None = None
    email: str | None = None
    provider: Provider | None = None
    provider_id: str | None = None
    role: Role | None = None
    apps: tuple[str, ...] = ()

    def as_criteria(self) -> dict[str, Any]:
        """Non-empty filters keyed by their canonical field names."""
        criteria: dict[str, Any] = {
            "id": list(self.ids),
            "name": self.name,
            "email": self.email,
            "provider": self.provider.value if self.provider else None,
            "providerId": self.provider_id,
            "role": self.role.value if self.role else None,
            "apps": list(self.apps),
        }
        return {k: v for k, v in criteria.items() if v not in (None, [], "")}


@dataclass(frozen=True)
class DeletionQuery:
    """Filter for deletion request listings."""

    status: DeletionStatus | None = None
    user_id: UserId | None = None
    requestor_user_id: UserId | None = None


@runtime_checkable
class IUserRepository(Protocol):
    """Repository for User aggregate persistence.

    Implemented against local storage and against the external identity
    provider; the configured identity backend decides which one is used.
    """

    async def save(self, user: User) -> None:
        """Persist a user aggregate.

        Creates a new user or updates an existing one.

        Args:
            user: The User aggregate to persist

        Raises:
            DuplicateProviderIdentityError: If another user already has the
                same (provider, provider_id) pair
        """
        ...

    async def get_by_id(self, user_id: UserId) -> User | None:
        """Retrieve a user by their ID.

        Args:
            user_id: The unique identifier of the user

        Returns:
            The User aggregate, or None if not found
        """
        ...

    async def get_by_email(self, email: str) -> User | None:
        """Retrieve a user by email address.

        Args:
            email: The email to search for

        Returns:
            The User aggregate, or None if not found
        """
        ...

    async def get_local_by_email(self, email: str) -> User | None:
        """Retrieve the local (email and password) user with this email.

        OAuth users sharing the address are ignored.
        """
        ...

    async def get_by_provider_identity(
        self, provider: Provider, provider_id: str
    ) -> User | None:
        """Retrieve the user linked to a provider subject id.

        Args:
            provider: The identity's provider
            provider_id: The provider's stable subject id

        Returns:
            The User aggregate, or None if not found
        """
        ...

    async def get_by_ids(self, user_ids: list[UserId]) -> list[User]:
        """Retrieve every user whose id is in the list. Unknown ids are skipped."""
        ...

    async def list_ids_by_role(self, role: Role) -> list[UserId]:
        """List the ids of all users holding a role."""
        ...

    async def find(self, query: UserQuery, page: Page) -> list[User]:
        """Search users.

        Args:
            query: Filter criteria
            page: Page to return

        Returns:
            Matching users for the requested page
        """
        ...

    async def delete(self, user_id: UserId) -> bool:
        """Delete a user.

        Returns:
            True if deleted, False if not found
        """
        ...


@runtime_checkable
class IPendingUserRepository(Protocol):
    """Repository for unconfirmed local sign-ups."""

    async def save(self, pending_user: PendingUser) -> None:
        """Persist a pending sign-up."""
        ...

    async def get_by_confirmation_token(self, token: str) -> PendingUser | None:
        """Retrieve the pending sign-up holding a confirmation token."""
        ...

    async def get_by_email(self, email: str) -> PendingUser | None:
        """Retrieve a pending sign-up by email."""
        ...

    async def delete(self, pending_user_id: UserId) -> bool:
        """Delete a pending sign-up.

        Returns:
            True if deleted, False if not found
        """
        ...

    async def purge_expired(self, now: datetime) -> int:
        """Delete every pending sign-up whose time-to-live elapsed.

        Args:
            now: Reference instant

        Returns:
            Number of records removed
        """
        ...


@runtime_checkable
class IPasswordRenewalRepository(Protocol):
    """Repository for single-use password reset grants."""

    async def save(self, renewal: PasswordRenewal) -> None:
        """Persist a reset grant."""
        ...

    async def get_by_token(self, token: str) -> PasswordRenewal | None:
        """Retrieve a reset grant by its token."""
        ...

    async def delete(self, renewal_id: str) -> bool:
        """Delete a reset grant.

        Returns:
            True if deleted, False if not found
        """
        ...


@runtime_checkable
class IApplicationRepository(Protocol):
    """Repository for Application records.

    Returned aggregates are hydrated with their ownership links.
    """

    async def save(self, application: Application) -> None:
        """Persist application metadata. Ownership links are not written here."""
        ...

    async def get_by_id(self, application_id: ApplicationId) -> Application | None:
        """Retrieve a hydrated application, or None if not found."""
        ...

    async def get_by_ids(self, application_ids: list[ApplicationId]) -> list[Application]:
        """Retrieve hydrated applications. Unknown ids are skipped."""
        ...

    async def list_all(
        self, page: Page, user_id: UserId | None = None
    ) -> list[Application]:
        """List applications, optionally restricted to those a user owns directly."""
        ...

    async def delete(self, application_id: ApplicationId) -> bool:
        """Delete an application record.

        Returns:
            True if deleted, False if not found
        """
        ...


@runtime_checkable
class IOrganizationRepository(Protocol):
    """Repository for Organization records.

    Returned aggregates are hydrated with their application links and members.
    """

    async def save(self, organization: Organization) -> None:
        """Persist organization metadata. Links are not written here."""
        ...

    async def get_by_id(self, organization_id: OrganizationId) -> Organization | None:
        """Retrieve a hydrated organization, or None if not found."""
        ...

    async def list_all(
        self, page: Page, user_id: UserId | None = None
    ) -> list[Organization]:
        """List organizations, optionally restricted to those a user is a member of."""
        ...

    async def delete(self, organization_id: OrganizationId) -> bool:
        """Delete an organization record.

        Returns:
            True if deleted, False if not found
        """
        ...


@runtime_checkable
class IAssociationRepository(Protocol):
    """Join-row store for application, organization and user links.

    Rows are inserted and deleted, never updated. Storage enforces that an
    application appears in at most one organization link and at most one
    user link.
    """

    async def get_application_organization(
        self, application_id: ApplicationId
    ) -> OrganizationId | None:
        """Organization the application is linked to, if any."""
        ...

    async def get_application_user(self, application_id: ApplicationId) -> UserId | None:
        """User the application is linked to, if any."""
        ...

    async def link_application_to_organization(
        self, application_id: ApplicationId, organization_id: OrganizationId
    ) -> None:
        """Insert an application/organization join row."""
        ...

    async def link_application_to_user(
        self, application_id: ApplicationId, user_id: UserId
    ) -> None:
        """Insert an application/user join row."""
        ...

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
        ...

    async def unlink_application_from_user(self, application_id: ApplicationId) -> int:
        """Delete the application's user join row. Returns rows removed."""
        ...

    async def list_organization_applications(
        self, organization_id: OrganizationId
    ) -> list[ApplicationId]:
        """Applications linked to an organization, in link creation order."""
        ...

    async def find_organizations_linking(
        self, application_ids: list[ApplicationId]
    ) -> list[tuple[ApplicationId, OrganizationId]]:
        """Current (application, organization) links for the given applications."""
        ...

    async def list_organization_members(
        self, organization_id: OrganizationId
    ) -> list[OrganizationMembership]:
        """Members of an organization, in join order."""
        ...

    async def add_organization_member(
        self, organization_id: OrganizationId, membership: OrganizationMembership
    ) -> None:
        """Insert an organization/user join row."""
        ...

    async def clear_organization_members(self, organization_id: OrganizationId) -> int:
        """Delete every organization/user join row of an organization."""
        ...

    async def clear_organization_applications(
        self, organization_id: OrganizationId
    ) -> int:
        """Delete every application/organization join row of an organization."""
        ...

    async def list_applications_for_user(self, user_id: UserId) -> list[ApplicationId]:
        """Applications a user owns directly."""
        ...

    async def list_organizations_for_user(self, user_id: UserId) -> list[OrganizationId]:
        """Organizations a user is a member of."""
        ...

    async def list_unlinked_application_ids(self) -> list[ApplicationId]:
        """Applications with neither an organization nor a user link."""
        ...


@runtime_checkable
class IDeletionRepository(Protocol):
    """Repository for deletion requests."""

    async def save(self, deletion: Deletion) -> None:
        """Persist a deletion request.

        Raises:
            DeletionAlreadyExistsError: If another request exists for the same user
        """
        ...

    async def get_by_id(self, deletion_id: DeletionId) -> Deletion | None:
        """Retrieve a deletion request by id."""
        ...

    async def get_by_user_id(self, user_id: UserId) -> Deletion | None:
        """Retrieve the deletion request for a user."""
        ...

    async def list_all(self, query: DeletionQuery, page: Page) -> list[Deletion]:
        """List deletion requests matching the filter, newest first."""
        ...

    async def delete(self, deletion_id: DeletionId) -> bool:
        """Delete a deletion request.

        Returns:
            True if deleted, False if not found
        """
        ...
