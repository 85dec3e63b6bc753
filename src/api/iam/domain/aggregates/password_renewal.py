"""PasswordRenewal aggregate: a single-use password reset grant."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from ulid import ULID

from iam.domain.value_objects import UserId


@dataclass(frozen=True)
class PasswordRenewal:
    """Links a reset token to the user who requested it.

    The record is deleted as soon as a new password is set, so a token can
    only be redeemed once.
    """

    id: str
    user_id: UserId
    token: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def create(cls, user_id: UserId, token: str) -> PasswordRenewal:
        """Factory for a new reset grant."""
        return cls(id=str(ULID()), user_id=user_id, token=token)
