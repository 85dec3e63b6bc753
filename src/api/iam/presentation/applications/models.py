"""Pydantic models for application API requests and responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from iam.domain.aggregates import Application


class CreateApplicationRequest(BaseModel):
    """Request model for registering an application.

    At most one owner may be given. Without an owner the caller owns the
    application.
    """

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    organization: str | None = Field(None, description="Owning organization ID")
    user: str | None = Field(None, description="Owning user ID")


class UpdateApplicationRequest(BaseModel):
    """Request model for updating an application.

    Sending ``organization`` or ``user`` (even as null) changes ownership:
    the supplied owner replaces the other one.
    """

    name: str | None = Field(None, min_length=1, max_length=255)
    organization: str | None = Field(None, description="New owning organization ID")
    user: str | None = Field(None, description="New owning user ID")
    regen_api_key: bool = Field(False, description="Issue a new API key")


class ApplicationResponse(BaseModel):
    """Response model for an application."""

    id: str = Field(..., description="Application ID (ULID format)")
    name: str = Field(..., description="Display name")
    api_key_value: str = Field(..., description="API key presented by the application")
    organization: str | None = Field(None, description="Owning organization ID")
    user: str | None = Field(None, description="Owning user ID")
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, application: Application) -> ApplicationResponse:
        """Convert domain Application aggregate to API response.

        The key id at the issuer stays internal.
        """
        return cls(
            id=application.id.value,
            name=application.name,
            api_key_value=application.api_key_value,
            organization=(
                application.organization_id.value
                if application.organization_id
                else None
            ),
            user=application.user_id.value if application.user_id else None,
            created_at=application.created_at,
            updated_at=application.updated_at,
        )
