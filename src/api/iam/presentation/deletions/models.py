"""Pydantic models for deletion request API requests and responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from iam.domain.aggregates import Deletion
from iam.domain.value_objects import DeletionStatus


class DeletionFlags(BaseModel):
    """Per-resource progress flags. Omitted flags are left untouched."""

    datasets_deleted: bool | None = None
    layers_deleted: bool | None = None
    widgets_deleted: bool | None = None
    user_account_deleted: bool | None = None
    user_data_deleted: bool | None = None
    graph_data_deleted: bool | None = None
    collections_deleted: bool | None = None
    favourites_deleted: bool | None = None
    vocabularies_deleted: bool | None = None
    areas_deleted: bool | None = None
    stories_deleted: bool | None = None
    subscriptions_deleted: bool | None = None
    dashboards_deleted: bool | None = None
    profiles_deleted: bool | None = None
    topics_deleted: bool | None = None

    def supplied_flags(self) -> dict[str, bool]:
        """Flags that were set in the request."""
        values = {name: getattr(self, name) for name in DeletionFlags.model_fields}
        return {name: value for name, value in values.items() if value is not None}


class CreateDeletionRequest(DeletionFlags):
    """Request model for opening a deletion request.

    Without ``user_id`` the caller's own account is targeted.
    """

    user_id: str | None = Field(None, description="User whose data is deleted")


class UpdateDeletionRequest(DeletionFlags):
    """Request model for updating a deletion request."""

    status: DeletionStatus | None = Field(None, description="New status")


class DeletionResponse(BaseModel):
    """Response model for a deletion request."""

    id: str = Field(..., description="Deletion ID (ULID format)")
    user_id: str
    requestor_user_id: str
    status: str
    flags: dict[str, bool] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, deletion: Deletion) -> DeletionResponse:
        """Convert domain Deletion aggregate to API response."""
        return cls(
            id=deletion.id.value,
            user_id=deletion.user_id.value,
            requestor_user_id=deletion.requestor_user_id.value,
            status=deletion.status.value,
            flags=deletion.flags(),
            created_at=deletion.created_at,
            updated_at=deletion.updated_at,
        )
