"""Identity backend dependencies.

Selects where user records live for the deployment: the local database or
the external identity provider.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from iam.infrastructure.identity_provider_client import IdentityProviderClient
from iam.infrastructure.identity_provider_user_repository import (
    IdentityProviderUserRepository,
)
from iam.infrastructure.user_repository import UserRepository
from iam.ports.identity_provider import IIdentityProviderClient
from iam.ports.repositories import IUserRepository
from infrastructure.database.dependencies import get_write_session
from infrastructure.settings import (
    CoreConfig,
    IdentityBackend,
    get_core_config,
    get_identity_provider_settings,
)


@lru_cache
def get_identity_provider_client() -> IIdentityProviderClient:
    """Get cached identity provider client.

    Returns:
        IdentityProviderClient configured from identity provider settings
    """
    return IdentityProviderClient(settings=get_identity_provider_settings())


def get_user_repository(
    session: Annotated[AsyncSession, Depends(get_write_session)],
    config: Annotated[CoreConfig, Depends(get_core_config)],
    client: Annotated[IIdentityProviderClient, Depends(get_identity_provider_client)],
) -> IUserRepository:
    """Get the user repository of the configured identity backend.

    Args:
        session: Async database session
        config: Immutable core configuration
        client: Identity provider client

    Returns:
        IdentityProviderUserRepository when the identity provider is the
        backend, UserRepository otherwise
    """
    if config.identity_backend == IdentityBackend.IDENTITY_PROVIDER:
        return IdentityProviderUserRepository(client=client)
    return UserRepository(session=session)
