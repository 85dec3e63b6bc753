"""Session token authentication dependencies.

Resolves the ``Authorization: Bearer`` header into a ``CurrentUser`` by
verifying the token and checking it against the stored identity.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from iam.application.observability import (
    DefaultTokenServiceProbe,
    TokenServiceProbe,
)
from iam.application.services import TokenService
from iam.application.value_objects import CurrentUser
from iam.dependencies.identity import get_user_repository
from iam.domain.value_objects import Role
from iam.ports.exceptions import UnauthorizedError
from iam.ports.repositories import IUserRepository
from infrastructure.database.dependencies import get_write_session
from infrastructure.settings import CoreConfig, get_core_config
from shared_kernel.auth import DefaultSessionTokenProbe, SessionTokenCodec

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def get_session_token_codec() -> SessionTokenCodec:
    """Get cached session token codec.

    Returns:
        SessionTokenCodec configured from token settings.
    """
    config = get_core_config()
    return SessionTokenCodec(
        secret=config.token_secret,
        algorithm=config.token_algorithm,
        probe=DefaultSessionTokenProbe(),
    )


def get_token_service_probe() -> TokenServiceProbe:
    """Get TokenServiceProbe instance.

    Returns:
        DefaultTokenServiceProbe instance for observability
    """
    return DefaultTokenServiceProbe()


def get_token_service(
    user_repo: Annotated[IUserRepository, Depends(get_user_repository)],
    session: Annotated[AsyncSession, Depends(get_write_session)],
    config: Annotated[CoreConfig, Depends(get_core_config)],
    codec: Annotated[SessionTokenCodec, Depends(get_session_token_codec)],
    probe: Annotated[TokenServiceProbe, Depends(get_token_service_probe)],
) -> TokenService:
    """Get TokenService instance.

    Args:
        user_repo: Repository of the configured identity backend
        session: Database session for transaction management
        config: Immutable core configuration
        codec: Session token codec
        probe: Token service probe for observability

    Returns:
        TokenService instance
    """
    return TokenService(
        user_repository=user_repo,
        session=session,
        config=config,
        codec=codec,
        probe=probe,
    )


async def get_current_user(
    token_service: Annotated[TokenService, Depends(get_token_service)],
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ] = None,
) -> CurrentUser:
    """Authenticate the request with its bearer session token.

    Args:
        token_service: Verifies the token and checks it for revocation
        credentials: Parsed Authorization header

    Returns:
        CurrentUser described by the token

    Raises:
        HTTPException 401: If the token is missing, invalid or revoked
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return await token_service.authenticate(credentials.credentials)
    except UnauthorizedError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Require an ADMIN, SUPERADMIN or microservice caller.

    Raises:
        HTTPException 403: If the caller is not an admin
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized",
        )
    return current_user


async def require_microservice(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Require an internal service token.

    Raises:
        HTTPException 403: If the caller is not a microservice
    """
    if not current_user.is_microservice:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized",
        )
    return current_user


async def require_admin_or_manager(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Require a MANAGER or higher, or a microservice caller.

    Raises:
        HTTPException 403: If the caller is a plain USER
    """
    if not (current_user.is_admin or current_user.role == Role.MANAGER):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized",
        )
    return current_user
