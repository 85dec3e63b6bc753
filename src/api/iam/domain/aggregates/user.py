"""User aggregate for IAM context."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Iterable

from iam.domain.value_objects import ExtraUserData, Provider, Role, UserId

if TYPE_CHECKING:
    from iam.domain.profile import ProviderProfile


@dataclass(eq=False)
class User:
    """User aggregate: the canonical identity of a person.

    A user is either local (email and password) or delegated to an OAuth
    provider, in which case ``(provider, provider_id)`` identifies it at the
    provider. Only ``id`` ever leaves the service in tokens and join rows.

    Business rules:
    - ``id`` never changes once assigned
    - ``extra_user_data.apps`` is always normalized
    - Password and salt are only set for local users
    """

    id: UserId
    provider: Provider
    role: Role = Role.USER
    name: str | None = None
    photo: str | None = None
    email: str | None = None
    provider_id: str | None = None
    extra_user_data: ExtraUserData = field(default_factory=ExtraUserData)
    password: str | None = field(default=None, repr=False)
    salt: str | None = field(default=None, repr=False)
    user_token: str | None = field(default=None, repr=False)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_provider_profile(
        cls, profile: ProviderProfile, user_id: UserId | None = None
    ) -> User:
        """Create a new user for a first OAuth login.

        New OAuth users start as ``USER`` with no application grants.

        Args:
            profile: Normalized provider profile
            user_id: Explicit id (defaults to a fresh ULID)

        Returns:
            A new, not yet persisted User
        """
        now = datetime.now(UTC)
        return cls(
            id=user_id or UserId.generate(),
            provider=profile.provider,
            provider_id=profile.provider_id,
            name=profile.name,
            photo=profile.photo,
            email=profile.email,
            role=Role.USER,
            extra_user_data=ExtraUserData(),
            created_at=now,
            updated_at=now,
        )

    @property
    def is_local(self) -> bool:
        """Local users authenticate with email and password."""
        return self.provider == Provider.LOCAL

    def refresh_email(self, email: str | None) -> bool:
        """Overwrite the email when the provider disclosed one.

        Returns:
            True when the stored email changed
        """
        if email is None or email == self.email:
            return False
        self.email = email
        self.touch()
        return True

    def update_profile(self, name: str | None = None, photo: str | None = None) -> None:
        """Update self-service profile fields; ``None`` leaves a field untouched."""
        if name is not None:
            self.name = name
        if photo is not None:
            self.photo = photo
        self.touch()

    def change_role(self, role: Role) -> None:
        """Assign a new platform role."""
        self.role = role
        self.touch()

    def replace_apps(self, apps: Iterable[str]) -> None:
        """Replace the user's application grants."""
        self.extra_user_data = ExtraUserData(apps=tuple(apps))
        self.touch()

    def grant_apps(self, apps: Iterable[str]) -> None:
        """Add application grants, keeping existing ones."""
        self.extra_user_data = self.extra_user_data.with_apps(apps)
        self.touch()

    def change_password(self, password_hash: str, salt: str) -> None:
        """Store a new bcrypt hash and its salt."""
        self.password = password_hash
        self.salt = salt
        self.touch()

    def record_token(self, token: str) -> None:
        """Remember the most recently issued session token."""
        self.user_token = token

    def touch(self) -> None:
        """Bump ``updated_at``."""
        self.updated_at = datetime.now(UTC)

    def __str__(self) -> str:
        """Return string representation."""
        return f"User({self.id}, {self.provider})"

    def __eq__(self, other: object) -> bool:
        """Users are equal if they have the same ID (identity-based equality)."""
        if not isinstance(other, User):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        """Hash based on ID for use in sets and dicts."""
        return hash(self.id)
