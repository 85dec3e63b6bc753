"""Provider reconciliation dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from iam.application.observability import (
    DefaultReconciliationProbe,
    ReconciliationProbe,
)
from iam.application.services import (
    IdentityProviderReconciliationService,
    ReconciliationService,
)
from iam.dependencies.identity import get_identity_provider_client, get_user_repository
from iam.domain.value_objects import UserId
from iam.ports.identity_provider import IIdentityProviderClient
from iam.ports.repositories import IUserRepository
from infrastructure.database.dependencies import get_write_session
from infrastructure.settings import CoreConfig, IdentityBackend, get_core_config


def get_reconciliation_probe() -> ReconciliationProbe:
    """Get ReconciliationProbe instance.

    Returns:
        DefaultReconciliationProbe instance for observability
    """
    return DefaultReconciliationProbe()


def get_reconciliation_service(
    user_repo: Annotated[IUserRepository, Depends(get_user_repository)],
    session: Annotated[AsyncSession, Depends(get_write_session)],
    config: Annotated[CoreConfig, Depends(get_core_config)],
    probe: Annotated[ReconciliationProbe, Depends(get_reconciliation_probe)],
) -> ReconciliationService:
    """Get ReconciliationService instance.

    Users created through the identity provider backend get UUID ids.

    Args:
        user_repo: Repository of the configured identity backend
        session: Database session for transaction management
        config: Immutable core configuration
        probe: Reconciliation probe for observability

    Returns:
        ReconciliationService instance
    """
    id_factory = (
        UserId.generate_legacy
        if config.identity_backend == IdentityBackend.IDENTITY_PROVIDER
        else UserId.generate
    )
    return ReconciliationService(
        user_repository=user_repo,
        session=session,
        probe=probe,
        id_factory=id_factory,
    )


def get_identity_provider_reconciliation_service(
    client: Annotated[IIdentityProviderClient, Depends(get_identity_provider_client)],
    user_repo: Annotated[IUserRepository, Depends(get_user_repository)],
    session: Annotated[AsyncSession, Depends(get_write_session)],
    probe: Annotated[ReconciliationProbe, Depends(get_reconciliation_probe)],
) -> IdentityProviderReconciliationService:
    """Get IdentityProviderReconciliationService instance.

    Args:
        client: Identity provider client
        user_repo: Repository of the configured identity backend
        session: Database session for transaction management
        probe: Reconciliation probe for observability

    Returns:
        IdentityProviderReconciliationService instance
    """
    return IdentityProviderReconciliationService(
        client=client,
        user_repository=user_repo,
        session=session,
        probe=probe,
    )
