"""PendingUser aggregate: an unconfirmed local sign-up."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from iam.domain.aggregates.user import User
from iam.domain.value_objects import ExtraUserData, Provider, Role, UserId

PENDING_USER_TTL = timedelta(days=7)


@dataclass
class PendingUser:
    """A local sign-up waiting for its confirmation token to be redeemed.

    Pending users expire ``PENDING_USER_TTL`` after creation. Redeeming the
    token promotes the record to a permanent ``User`` that keeps the same id.
    """

    id: UserId
    email: str
    password: str = field(repr=False)
    salt: str = field(repr=False)
    confirmation_token: str
    role: Role = Role.USER
    name: str | None = None
    extra_user_data: ExtraUserData = field(default_factory=ExtraUserData)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def create(
        cls,
        email: str,
        password_hash: str,
        salt: str,
        confirmation_token: str,
        role: Role = Role.USER,
        apps: tuple[str, ...] = (),
        name: str | None = None,
    ) -> PendingUser:
        """Factory for a new pending sign-up."""
        return cls(
            id=UserId.generate(),
            email=email,
            password=password_hash,
            salt=salt,
            confirmation_token=confirmation_token,
            role=role,
            name=name,
            extra_user_data=ExtraUserData(apps=apps),
        )

    @property
    def expires_at(self) -> datetime:
        """Instant after which the record is purged."""
        return self.created_at + PENDING_USER_TTL

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the time-to-live has elapsed."""
        return (now or datetime.now(UTC)) >= self.expires_at

    def promote(self) -> User:
        """Build the permanent local user for this sign-up."""
        now = datetime.now(UTC)
        return User(
            id=self.id,
            provider=Provider.LOCAL,
            role=self.role,
            name=self.name,
            email=self.email,
            extra_user_data=self.extra_user_data,
            password=self.password,
            salt=self.salt,
            created_at=now,
            updated_at=now,
        )
