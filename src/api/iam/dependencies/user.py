"""User and credential dependencies.

Wires the user service on top of the configured identity backend.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from iam.application.observability import DefaultUserServiceProbe, UserServiceProbe
from iam.application.services import AssociationConsistencyManager, UserService
from iam.dependencies.application import get_association_manager
from iam.dependencies.identity import get_identity_provider_client, get_user_repository
from iam.infrastructure.credential_repositories import (
    PasswordRenewalRepository,
    PendingUserRepository,
)
from iam.infrastructure.mail_sender import SparkPostMailSender
from iam.ports.gateways import IMailSender
from iam.ports.identity_provider import IIdentityProviderClient
from iam.ports.repositories import IUserRepository
from infrastructure.database.dependencies import get_write_session
from infrastructure.settings import CoreConfig, get_core_config, get_mail_settings


@lru_cache
def get_mail_sender() -> IMailSender:
    """Get cached mail sender.

    Returns:
        SparkPostMailSender configured from mail settings
    """
    return SparkPostMailSender(settings=get_mail_settings())


def get_user_service_probe() -> UserServiceProbe:
    """Get UserServiceProbe instance.

    Returns:
        DefaultUserServiceProbe instance for observability
    """
    return DefaultUserServiceProbe()


def get_pending_user_repository(
    session: Annotated[AsyncSession, Depends(get_write_session)],
) -> PendingUserRepository:
    """Get PendingUserRepository instance."""
    return PendingUserRepository(session=session)


def get_password_renewal_repository(
    session: Annotated[AsyncSession, Depends(get_write_session)],
) -> PasswordRenewalRepository:
    """Get PasswordRenewalRepository instance."""
    return PasswordRenewalRepository(session=session)


def get_user_service(
    user_repo: Annotated[IUserRepository, Depends(get_user_repository)],
    pending_repo: Annotated[
        PendingUserRepository, Depends(get_pending_user_repository)
    ],
    renewal_repo: Annotated[
        PasswordRenewalRepository, Depends(get_password_renewal_repository)
    ],
    mail_sender: Annotated[IMailSender, Depends(get_mail_sender)],
    session: Annotated[AsyncSession, Depends(get_write_session)],
    config: Annotated[CoreConfig, Depends(get_core_config)],
    client: Annotated[IIdentityProviderClient, Depends(get_identity_provider_client)],
    association_manager: Annotated[
        AssociationConsistencyManager, Depends(get_association_manager)
    ],
    probe: Annotated[UserServiceProbe, Depends(get_user_service_probe)],
) -> UserService:
    """Get UserService instance.

    Args:
        user_repo: Repository of the configured identity backend
        pending_repo: Pending sign-up repository (shares the request session)
        renewal_repo: Password reset grant repository
        mail_sender: Transactional mail client
        session: Database session for transaction management
        config: Immutable core configuration
        client: Identity provider client
        association_manager: Clears links of deleted users
        probe: User service probe for observability

    Returns:
        UserService instance
    """
    return UserService(
        user_repository=user_repo,
        pending_user_repository=pending_repo,
        renewal_repository=renewal_repo,
        mail_sender=mail_sender,
        session=session,
        config=config,
        identity_provider=client,
        association_manager=association_manager,
        probe=probe,
    )
