"""Pydantic models for authentication API requests and responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field

from iam.application.value_objects import CurrentUser
from iam.domain.aggregates import PendingUser, User
from iam.presentation.users.models import UserResponse


class LoginRequest(BaseModel):
    """Request model for local email and password login."""

    email: EmailStr = Field(..., description="Account email")
    password: str = Field(..., min_length=1, description="Account password")


class SignUpRequest(BaseModel):
    """Request model for a local sign-up."""

    email: EmailStr = Field(..., description="Email to register")
    password: str = Field(..., min_length=1, description="Chosen password")
    repeat_password: str | None = Field(
        None, description="Password confirmation; must equal password when given"
    )
    name: str | None = Field(None, max_length=255, description="Display name")
    apps: list[str] = Field(default_factory=list, description="Applications to grant")


class PasswordRecoveryRequest(BaseModel):
    """Request model for starting a password reset."""

    email: EmailStr = Field(..., description="Email of the account to recover")


class NewPasswordRequest(BaseModel):
    """Request model for redeeming a password reset token."""

    password: str = Field(..., min_length=1, description="New password")
    repeat_password: str | None = Field(None, description="Password confirmation")


class OAuthCallbackRequest(BaseModel):
    """Profile returned by a third-party OAuth provider after consent."""

    profile: dict[str, Any] = Field(
        ..., description="Raw provider profile (or decoded Apple ID token claims)"
    )
    applications: list[str] = Field(
        default_factory=list,
        description="Applications the login was started from, granted to USER accounts",
    )


class MicroserviceTokenRequest(BaseModel):
    """Request model for signing an internal service token."""

    claims: dict[str, Any] = Field(
        default_factory=dict, description="Extra claims to sign"
    )


class TokenResponse(BaseModel):
    """Response model carrying a signed session token."""

    token: str = Field(..., description="Signed session token")


class UserWithTokenResponse(UserResponse):
    """Response model for a login: the user plus a fresh session token."""

    token: str = Field(..., description="Signed session token")

    @classmethod
    def from_login(cls, user: User, token: str) -> UserWithTokenResponse:
        """Combine a user and the token just issued for them."""
        return cls(token=token, **UserResponse.from_domain(user).model_dump())


class PendingUserResponse(BaseModel):
    """Response model for a sign-up waiting for confirmation."""

    id: str = Field(..., description="Id the user will keep once confirmed")
    email: str
    role: str
    apps: list[str] = Field(default_factory=list)
    expires_at: datetime

    @classmethod
    def from_domain(cls, pending: PendingUser) -> PendingUserResponse:
        """Convert a PendingUser to API response. The token is never exposed."""
        return cls(
            id=pending.id.value,
            email=pending.email,
            role=pending.role.value,
            apps=list(pending.extra_user_data.apps),
            expires_at=pending.expires_at,
        )


class CurrentUserResponse(BaseModel):
    """Response model describing the authenticated caller."""

    id: str
    role: str
    email: str | None = None
    provider: str | None = None
    name: str | None = None
    apps: list[str] = Field(default_factory=list)

    @classmethod
    def from_current_user(cls, current_user: CurrentUser) -> CurrentUserResponse:
        """Describe the caller as seen in their session token."""
        return cls(
            id=current_user.user_id,
            role=current_user.role.value,
            email=current_user.email,
            provider=current_user.provider,
            name=current_user.name,
            apps=list(current_user.apps),
        )
