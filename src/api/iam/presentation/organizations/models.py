"""Pydantic models for organization API requests and responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from iam.domain.aggregates import Organization
from iam.domain.value_objects import OrganizationMembership, OrganizationRole


class OrganizationMemberRequest(BaseModel):
    """A member entry in an organization request."""

    id: str = Field(..., min_length=1, description="User ID")
    role: OrganizationRole = Field(
        OrganizationRole.MEMBER, description="Role inside the organization"
    )


class CreateOrganizationRequest(BaseModel):
    """Request model for creating an organization."""

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    applications: list[str] = Field(
        default_factory=list, description="Application IDs to take over"
    )
    users: list[OrganizationMemberRequest] = Field(
        default_factory=list, description="Members"
    )


class UpdateOrganizationRequest(BaseModel):
    """Request model for updating an organization.

    Omitted lists are left untouched; an empty list clears them.
    """

    name: str | None = Field(None, min_length=1, max_length=255)
    applications: list[str] | None = Field(
        None, description="Replacement application ID list"
    )
    users: list[OrganizationMemberRequest] | None = Field(
        None, description="Replacement member list"
    )


class OrganizationMemberResponse(BaseModel):
    """Response model for an organization member."""

    id: str
    role: str

    @classmethod
    def from_domain(cls, membership: OrganizationMembership) -> OrganizationMemberResponse:
        """Convert a membership to API response."""
        return cls(id=membership.user_id.value, role=membership.role.value)


class OrganizationResponse(BaseModel):
    """Response model for an organization."""

    id: str = Field(..., description="Organization ID (ULID format)")
    name: str = Field(..., description="Display name")
    applications: list[str] = Field(default_factory=list)
    users: list[OrganizationMemberResponse] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, organization: Organization) -> OrganizationResponse:
        """Convert domain Organization aggregate to API response."""
        return cls(
            id=organization.id.value,
            name=organization.name,
            applications=[a.value for a in organization.application_ids],
            users=[
                OrganizationMemberResponse.from_domain(m) for m in organization.members
            ],
            created_at=organization.created_at,
            updated_at=organization.updated_at,
        )
