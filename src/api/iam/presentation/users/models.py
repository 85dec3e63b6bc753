"""Pydantic models for user management API requests and responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from iam.domain.aggregates import User
from iam.domain.value_objects import Role


class CreateUserRequest(BaseModel):
    """Request model for inviting a user on someone's behalf."""

    email: EmailStr = Field(..., description="Email of the invited user")
    name: str | None = Field(None, max_length=255, description="Display name")
    role: Role = Field(Role.USER, description="Platform role to grant")
    apps: list[str] = Field(default_factory=list, description="Applications to grant")
    callback_url: str | None = Field(
        None, description="Where the invited user lands after confirming"
    )


class UpdateMeRequest(BaseModel):
    """Request model for self-service profile updates."""

    name: str | None = Field(None, max_length=255)
    photo: str | None = Field(None, max_length=2048)


class UpdateUserRequest(UpdateMeRequest):
    """Request model for administrative user updates."""

    role: Role | None = Field(None, description="New platform role")
    apps: list[str] | None = Field(None, description="Replacement application list")


class FindByIdsRequest(BaseModel):
    """Request model for bulk user lookup."""

    ids: list[str] = Field(..., description="User ids to resolve")


class UserResponse(BaseModel):
    """Response model for a user."""

    id: str = Field(..., description="User ID")
    email: str | None = Field(None, description="Email")
    name: str | None = Field(None, description="Display name")
    photo: str | None = Field(None, description="Avatar URL")
    provider: str = Field(..., description="Identity provider")
    provider_id: str | None = Field(None, description="Subject id at the provider")
    role: str = Field(..., description="Platform role")
    extra_user_data: dict[str, list[str]] = Field(
        default_factory=dict, description="Application grants"
    )
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, user: User) -> UserResponse:
        """Convert domain User aggregate to API response.

        Password material and stored tokens are never exposed.
        """
        return cls(
            id=user.id.value,
            email=user.email,
            name=user.name,
            photo=user.photo,
            provider=user.provider.value,
            provider_id=user.provider_id,
            role=user.role.value,
            extra_user_data=user.extra_user_data.to_dict(),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
