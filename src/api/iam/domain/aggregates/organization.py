"""Organization aggregate for IAM context."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from iam.domain.value_objects import (
    ApplicationId,
    OrganizationId,
    OrganizationMembership,
    UserId,
)


@dataclass
class Organization:
    """Organization aggregate grouping applications and member users.

    ``application_ids`` (ordered by link creation) and ``members`` are
    hydrated from join rows by the repository.
    """

    id: OrganizationId
    name: str
    application_ids: list[ApplicationId] = field(default_factory=list)
    members: list[OrganizationMembership] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def create(cls, name: str) -> Organization:
        """Factory for a new organization without links."""
        now = datetime.now(UTC)
        return cls(
            id=OrganizationId.generate(),
            name=name,
            created_at=now,
            updated_at=now,
        )

    def rename(self, name: str) -> None:
        """Change the display name."""
        self.name = name
        self.touch()

    def touch(self) -> None:
        """Bump ``updated_at``. Link changes count as modifications."""
        self.updated_at = datetime.now(UTC)

    def links_application(self, application_id: ApplicationId) -> bool:
        """Check whether the application currently belongs to this organization."""
        return application_id in self.application_ids

    def has_member(self, user_id: UserId) -> bool:
        """Check whether a user is a member."""
        return any(m.user_id == user_id for m in self.members)
