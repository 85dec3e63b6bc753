"""HTTP routes for authentication flows.

Covers local credentials, OAuth profile reconciliation, the identity
provider authorization-code callback and session token issuance.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse

from iam.application.services import (
    IdentityProviderReconciliationService,
    ReconciliationService,
    TokenService,
    UserService,
)
from iam.application.value_objects import CurrentUser
from iam.dependencies.authentication import get_current_user, get_token_service
from iam.dependencies.reconciliation import (
    get_identity_provider_reconciliation_service,
    get_reconciliation_service,
)
from iam.dependencies.user import get_user_service
from iam.domain.value_objects import Role, UserId
from iam.ports.exceptions import IAMError
from iam.presentation.auth.models import (
    CurrentUserResponse,
    LoginRequest,
    MicroserviceTokenRequest,
    NewPasswordRequest,
    OAuthCallbackRequest,
    PasswordRecoveryRequest,
    PendingUserResponse,
    SignUpRequest,
    TokenResponse,
    UserWithTokenResponse,
)
from iam.presentation.errors import to_http_exception
from iam.presentation.users.models import UserResponse
from infrastructure.settings import CoreConfig, get_core_config

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/login")
async def login(
    request: LoginRequest,
    user_service: Annotated[UserService, Depends(get_user_service)],
    token_service: Annotated[TokenService, Depends(get_token_service)],
) -> UserWithTokenResponse:
    """Log in with a local email and password.

    Raises:
        HTTPException: 401 if the credentials do not match
    """
    try:
        user = await user_service.login(request.email, request.password)
        token = await token_service.issue(user, persist=True)
    except IAMError as e:
        raise to_http_exception(e) from e
    return UserWithTokenResponse.from_login(user, token)


@router.post("/sign-up", status_code=status.HTTP_201_CREATED)
async def sign_up(
    request: SignUpRequest,
    user_service: Annotated[UserService, Depends(get_user_service)],
    origin: str | None = None,
) -> PendingUserResponse:
    """Register a local account and send its confirmation mail.

    Raises:
        HTTPException: 400 if the email is already used
        HTTPException: 422 if the passwords differ
    """
    try:
        pending = await user_service.sign_up(
            email=request.email,
            password=request.password,
            repeat_password=request.repeat_password,
            apps=request.apps,
            origin_app=origin,
            name=request.name,
        )
    except IAMError as e:
        raise to_http_exception(e) from e
    return PendingUserResponse.from_domain(pending)


@router.get("/confirm/{token}", response_model=None)
async def confirm_user(
    token: str,
    user_service: Annotated[UserService, Depends(get_user_service)],
    config: Annotated[CoreConfig, Depends(get_core_config)],
    callback_url: Annotated[str | None, Query(alias="callbackUrl")] = None,
    origin: str | None = None,
) -> UserResponse | RedirectResponse:
    """Redeem a sign-up confirmation link.

    Redirects to ``callbackUrl`` when given, or to the redirect configured
    for the ``origin`` application; otherwise returns the new user.

    Raises:
        HTTPException: 404 if the token is unknown or expired
    """
    try:
        user = await user_service.confirm(token)
    except IAMError as e:
        raise to_http_exception(e) from e

    redirect = callback_url or (config.redirect_url_for(origin) if origin else None)
    if redirect:
        return RedirectResponse(redirect, status_code=status.HTTP_302_FOUND)
    return UserResponse.from_domain(user)


@router.post("/reset-password", status_code=status.HTTP_204_NO_CONTENT)
async def request_password_reset(
    request: PasswordRecoveryRequest,
    user_service: Annotated[UserService, Depends(get_user_service)],
    origin: str | None = None,
) -> None:
    """Send a password recovery mail.

    Raises:
        HTTPException: 404 if no user has this email
    """
    try:
        await user_service.request_password_reset(request.email, origin_app=origin)
    except IAMError as e:
        raise to_http_exception(e) from e


@router.post("/reset-password/{token}")
async def reset_password(
    token: str,
    request: NewPasswordRequest,
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    """Set a new password with a reset token. The token is single use.

    Raises:
        HTTPException: 404 if the token is unknown or already used
        HTTPException: 422 if the passwords differ
    """
    try:
        user = await user_service.reset_password(
            token, request.password, repeat_password=request.repeat_password
        )
    except IAMError as e:
        raise to_http_exception(e) from e
    return UserResponse.from_domain(user)


@router.post("/oauth/{strategy}/callback")
async def oauth_callback(
    strategy: str,
    request: OAuthCallbackRequest,
    reconciliation: Annotated[
        ReconciliationService, Depends(get_reconciliation_service)
    ],
    user_service: Annotated[UserService, Depends(get_user_service)],
    token_service: Annotated[TokenService, Depends(get_token_service)],
) -> UserWithTokenResponse:
    """Resolve a third-party OAuth profile into the canonical user.

    The user is created on first login. Later logins only refresh the
    stored email. USER accounts are granted the applications the login
    was started from.

    Raises:
        HTTPException: 422 if the strategy is unknown or the profile has no id
        HTTPException: 404 if a Twitter account is not linked to any user
    """
    try:
        user = await reconciliation.reconcile_oauth_profile(strategy, request.profile)
        if request.applications and user.role == Role.USER:
            user = await user_service.grant_applications(user.id, request.applications)
        token = await token_service.issue(user, persist=True)
    except IAMError as e:
        raise to_http_exception(e) from e
    return UserWithTokenResponse.from_login(user, token)


@router.get("/authorization-code/callback")
async def authorization_code_callback(
    code: str,
    reconciliation: Annotated[
        IdentityProviderReconciliationService,
        Depends(get_identity_provider_reconciliation_service),
    ],
    token_service: Annotated[TokenService, Depends(get_token_service)],
) -> UserWithTokenResponse:
    """Exchange an identity provider authorization code for a session.

    Profiles missing their protected attributes are provisioned first.

    Raises:
        HTTPException: 500 if the identity provider rejected the code
    """
    try:
        user = await reconciliation.provision_from_authorization_code(code)
        token = await token_service.issue(user)
    except IAMError as e:
        raise to_http_exception(e) from e
    return UserWithTokenResponse.from_login(user, token)


@router.get("/check-logged")
async def check_logged(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUserResponse:
    """Describe the caller of a valid, non-revoked token."""
    return CurrentUserResponse.from_current_user(current_user)


@router.get("/generate-token")
async def generate_token(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    user_service: Annotated[UserService, Depends(get_user_service)],
    token_service: Annotated[TokenService, Depends(get_token_service)],
) -> TokenResponse:
    """Issue a fresh token reflecting the caller's current stored record.

    Raises:
        HTTPException: 400 for internal service tokens
        HTTPException: 404 if the caller's user record is gone
    """
    if current_user.is_microservice:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Internal service tokens cannot be regenerated",
        )
    try:
        user = await user_service.get_user(UserId.from_string(current_user.user_id))
        token = await token_service.issue(user, persist=True)
    except IAMError as e:
        raise to_http_exception(e) from e
    return TokenResponse(token=token)


@router.post("/microservice-token")
async def create_microservice_token(
    request: MicroserviceTokenRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    token_service: Annotated[TokenService, Depends(get_token_service)],
) -> TokenResponse:
    """Sign a non-expiring internal service token.

    Raises:
        HTTPException: 403 unless the caller is a SUPERADMIN or a microservice
    """
    if not (current_user.is_microservice or current_user.role == Role.SUPERADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized",
        )
    return TokenResponse(token=token_service.issue_for_microservice(request.claims))
