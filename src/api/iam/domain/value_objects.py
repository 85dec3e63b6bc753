"""Value objects for IAM domain.

Value objects are immutable descriptors that provide type safety and
domain semantics for identifiers and domain concepts.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Iterable, Mapping

from ulid import ULID

MICROSERVICE_ID = "microservice"


def _validate_ulid(kind: str, value: str) -> None:
    try:
        ULID.from_str(value)
    except ValueError as e:
        raise ValueError(f"Invalid {kind}: {value}") from e


@dataclass(frozen=True)
class UserId:
    """Identifier for a User aggregate.

    Locally stored users get a ULID. Users whose source of truth is the
    external identity provider carry a UUID4 "legacy id" assigned on first
    provisioning. Both forms are accepted; the id never changes once set.
    """

    value: str

    def __str__(self) -> str:
        """Return string representation."""
        return self.value

    @classmethod
    def generate(cls) -> UserId:
        """Generate a new UserId using ULID."""
        return cls(value=str(ULID()))

    @classmethod
    def generate_legacy(cls) -> UserId:
        """Generate a new UUID4 id for identity-provider-backed users."""
        return cls(value=str(uuid.uuid4()))

    @classmethod
    def from_string(cls, value: str) -> UserId:
        """Create UserId from string value.

        Args:
            value: ULID or UUID string

        Returns:
            UserId instance

        Raises:
            ValueError: If value is neither a ULID nor a UUID
        """
        try:
            ULID.from_str(value)
            return cls(value=value)
        except ValueError:
            pass

        try:
            uuid.UUID(value)
        except (ValueError, AttributeError, TypeError) as e:
            raise ValueError(f"Invalid UserId: {value}") from e

        return cls(value=value)


@dataclass(frozen=True)
class ApplicationId:
    """Identifier for an Application aggregate.

    Uses ULID for sortability and distribution-friendly generation.
    """

    value: str

    def __str__(self) -> str:
        """Return string representation."""
        return self.value

    @classmethod
    def generate(cls) -> ApplicationId:
        """Generate a new ApplicationId using ULID."""
        return cls(value=str(ULID()))

    @classmethod
    def from_string(cls, value: str) -> ApplicationId:
        """Create ApplicationId from string value.

        Raises:
            ValueError: If value is not a valid ULID
        """
        _validate_ulid("ApplicationId", value)
        return cls(value=value)


@dataclass(frozen=True)
class OrganizationId:
    """Identifier for an Organization aggregate."""

    value: str

    def __str__(self) -> str:
        """Return string representation."""
        return self.value

    @classmethod
    def generate(cls) -> OrganizationId:
        """Generate a new OrganizationId using ULID."""
        return cls(value=str(ULID()))

    @classmethod
    def from_string(cls, value: str) -> OrganizationId:
        """Create OrganizationId from string value.

        Raises:
            ValueError: If value is not a valid ULID
        """
        _validate_ulid("OrganizationId", value)
        return cls(value=value)


@dataclass(frozen=True)
class DeletionId:
    """Identifier for a Deletion request."""

    value: str

    def __str__(self) -> str:
        """Return string representation."""
        return self.value

    @classmethod
    def generate(cls) -> DeletionId:
        """Generate a new DeletionId using ULID."""
        return cls(value=str(ULID()))

    @classmethod
    def from_string(cls, value: str) -> DeletionId:
        """Create DeletionId from string value.

        Raises:
            ValueError: If value is not a valid ULID
        """
        _validate_ulid("DeletionId", value)
        return cls(value=value)


class Provider(StrEnum):
    """Origin of a user identity."""

    LOCAL = "local"
    GOOGLE = "google"
    FACEBOOK = "facebook"
    APPLE = "apple"
    TWITTER = "twitter"


class Role(StrEnum):
    """Platform roles, ordered SUPERADMIN > ADMIN > MANAGER > USER."""

    USER = "USER"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"
    SUPERADMIN = "SUPERADMIN"

    @property
    def rank(self) -> int:
        """Position of the role in the hierarchy (USER is 0)."""
        return _ROLE_RANKS[self]

    def is_at_least(self, other: Role) -> bool:
        """Check whether this role is equal to or above another role."""
        return self.rank >= other.rank

    @property
    def is_admin(self) -> bool:
        """ADMIN and SUPERADMIN may manage any resource."""
        return self.is_at_least(Role.ADMIN)


_ROLE_RANKS = {
    Role.USER: 0,
    Role.MANAGER: 1,
    Role.ADMIN: 2,
    Role.SUPERADMIN: 3,
}


class OrganizationRole(StrEnum):
    """Role a user holds inside an organization."""

    MEMBER = "MEMBER"
    ADMIN = "ADMIN"


class DeletionStatus(StrEnum):
    """Progress of a deletion request."""

    PENDING = "pending"
    DONE = "done"


def normalize_apps(apps: Iterable[str]) -> tuple[str, ...]:
    """Lower-case and deduplicate application slugs, keeping first occurrence order."""
    seen: dict[str, None] = {}
    for app in apps:
        slug = app.strip().lower()
        if slug:
            seen.setdefault(slug, None)
    return tuple(seen)


@dataclass(frozen=True)
class ExtraUserData:
    """Per-user entitlement data embedded in session tokens.

    ``apps`` is set-like: always lower-cased and deduplicated.
    """

    apps: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "apps", normalize_apps(self.apps))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ExtraUserData:
        """Build from the ``{"apps": [...]}`` shape used in claims and payloads."""
        if not data:
            return cls()
        return cls(apps=tuple(data.get("apps") or ()))

    def to_dict(self) -> dict[str, list[str]]:
        """Serialize to the ``{"apps": [...]}`` claim shape."""
        return {"apps": list(self.apps)}

    def with_apps(self, apps: Iterable[str]) -> ExtraUserData:
        """Return a copy with additional apps appended."""
        return ExtraUserData(apps=(*self.apps, *apps))

    def comparison_key(self) -> tuple[str, ...]:
        """Order-insensitive key used when comparing against token claims."""
        return tuple(sorted(self.apps))


@dataclass(frozen=True)
class OrganizationMembership:
    """A user's membership in an organization with a specific role."""

    user_id: UserId
    role: OrganizationRole = OrganizationRole.MEMBER

    def is_admin(self) -> bool:
        """Check if this member administers the organization."""
        return self.role == OrganizationRole.ADMIN


@dataclass(frozen=True)
class Page:
    """Pagination request.

    Local storage pages by number; the identity provider pages with an
    opaque cursor, so both are carried.
    """

    number: int = 1
    size: int = 10
    cursor: str | None = None

    def __post_init__(self) -> None:
        if self.number < 1:
            raise ValueError("Page number must be >= 1")
        if not 1 <= self.size <= 100:
            raise ValueError("Page size must be between 1 and 100")

    @property
    def offset(self) -> int:
        """Row offset for number-based paging."""
        return (self.number - 1) * self.size
