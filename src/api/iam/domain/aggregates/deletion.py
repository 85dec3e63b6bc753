"""Deletion aggregate: tracks removal of a user's data across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Mapping

from iam.domain.value_objects import DeletionId, DeletionStatus, UserId

DELETION_FLAGS: tuple[str, ...] = (
    "datasets_deleted",
    "layers_deleted",
    "widgets_deleted",
    "user_account_deleted",
    "user_data_deleted",
    "graph_data_deleted",
    "collections_deleted",
    "favourites_deleted",
    "vocabularies_deleted",
    "areas_deleted",
    "stories_deleted",
    "subscriptions_deleted",
    "dashboards_deleted",
    "profiles_deleted",
    "topics_deleted",
)


@dataclass
class Deletion:
    """A request to delete everything a user owns.

    Each flag records that one kind of resource was removed. At most one
    deletion request may exist per user.
    """

    id: DeletionId
    user_id: UserId
    requestor_user_id: UserId
    status: DeletionStatus = DeletionStatus.PENDING
    datasets_deleted: bool = False
    layers_deleted: bool = False
    widgets_deleted: bool = False
    user_account_deleted: bool = False
    user_data_deleted: bool = False
    graph_data_deleted: bool = False
    collections_deleted: bool = False
    favourites_deleted: bool = False
    vocabularies_deleted: bool = False
    areas_deleted: bool = False
    stories_deleted: bool = False
    subscriptions_deleted: bool = False
    dashboards_deleted: bool = False
    profiles_deleted: bool = False
    topics_deleted: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def create(
        cls,
        user_id: UserId,
        requestor_user_id: UserId,
        status: DeletionStatus = DeletionStatus.PENDING,
        flags: Mapping[str, bool] | None = None,
    ) -> Deletion:
        """Factory for a new deletion request.

        Raises:
            ValueError: If ``flags`` names an unknown flag
        """
        deletion = cls(
            id=DeletionId.generate(),
            user_id=user_id,
            requestor_user_id=requestor_user_id,
            status=status,
        )
        if flags:
            deletion.apply_flags(flags)
        return deletion

    def apply_flags(self, flags: Mapping[str, bool]) -> None:
        """Set resource flags by name.

        Raises:
            ValueError: If a flag name is unknown
        """
        unknown = set(flags) - set(DELETION_FLAGS)
        if unknown:
            raise ValueError(f"Unknown deletion flags: {', '.join(sorted(unknown))}")
        for name, value in flags.items():
            setattr(self, name, bool(value))
        self.updated_at = datetime.now(UTC)

    def change_status(self, status: DeletionStatus) -> None:
        """Move the request to a new status."""
        self.status = status
        self.updated_at = datetime.now(UTC)

    def flags(self) -> dict[str, bool]:
        """Current value of every resource flag."""
        return {name: getattr(self, name) for name in DELETION_FLAGS}
