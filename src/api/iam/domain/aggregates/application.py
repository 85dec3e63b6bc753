"""Application aggregate for IAM context."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from iam.domain.value_objects import ApplicationId, OrganizationId, UserId


@dataclass
class Application:
    """Application aggregate: a client registered with its own API key.

    Ownership lives in join rows, not on the record itself: an application
    belongs to at most one organization OR one user, never both. The
    ``organization_id`` and ``user_id`` fields are hydrated from those rows
    by the repository and are read-only views here.
    """

    id: ApplicationId
    name: str
    api_key_id: str
    api_key_value: str
    organization_id: OrganizationId | None = None
    user_id: UserId | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def create(cls, name: str, api_key_id: str, api_key_value: str) -> Application:
        """Factory for a new, not yet linked application."""
        now = datetime.now(UTC)
        return cls(
            id=ApplicationId.generate(),
            name=name,
            api_key_id=api_key_id,
            api_key_value=api_key_value,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_orphaned(self) -> bool:
        """True when neither an organization nor a user owns the application."""
        return self.organization_id is None and self.user_id is None

    @property
    def has_single_owner(self) -> bool:
        """True when exactly one of the two ownership links is set."""
        return (self.organization_id is None) != (self.user_id is None)

    def is_owned_by(self, user_id: UserId) -> bool:
        """Check whether the user owns the application directly."""
        return self.user_id is not None and self.user_id == user_id

    def rename(self, name: str) -> None:
        """Change the display name."""
        self.name = name
        self.touch()

    def rotate_api_key(self, api_key_id: str, api_key_value: str) -> None:
        """Replace the API key pair."""
        self.api_key_id = api_key_id
        self.api_key_value = api_key_value
        self.touch()

    def touch(self) -> None:
        """Bump ``updated_at``. Owner changes count as modifications."""
        self.updated_at = datetime.now(UTC)
