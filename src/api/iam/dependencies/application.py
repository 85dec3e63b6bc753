"""Application and organization dependencies."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from iam.application.observability import (
    ApplicationServiceProbe,
    AssociationProbe,
    DefaultApplicationServiceProbe,
    DefaultAssociationProbe,
    DefaultOrganizationServiceProbe,
    OrganizationServiceProbe,
)
from iam.application.services import (
    ApplicationService,
    AssociationConsistencyManager,
    OrganizationService,
)
from iam.dependencies.identity import get_user_repository
from iam.infrastructure.api_key_gateway import LocalApiKeyGateway
from iam.infrastructure.application_repository import (
    ApplicationRepository,
    OrganizationRepository,
)
from iam.infrastructure.association_repository import AssociationRepository
from iam.ports.gateways import IApiKeyGateway
from iam.ports.repositories import IUserRepository
from infrastructure.database.dependencies import get_write_session


@lru_cache
def get_api_key_gateway() -> IApiKeyGateway:
    """Get cached API key gateway."""
    return LocalApiKeyGateway()


def get_application_repository(
    session: Annotated[AsyncSession, Depends(get_write_session)],
) -> ApplicationRepository:
    """Get ApplicationRepository instance."""
    return ApplicationRepository(session=session)


def get_organization_repository(
    session: Annotated[AsyncSession, Depends(get_write_session)],
) -> OrganizationRepository:
    """Get OrganizationRepository instance."""
    return OrganizationRepository(session=session)


def get_association_repository(
    session: Annotated[AsyncSession, Depends(get_write_session)],
) -> AssociationRepository:
    """Get AssociationRepository instance."""
    return AssociationRepository(session=session)


def get_association_probe() -> AssociationProbe:
    """Get AssociationProbe instance.

    Returns:
        DefaultAssociationProbe instance for observability
    """
    return DefaultAssociationProbe()


def get_association_manager(
    association_repo: Annotated[
        AssociationRepository, Depends(get_association_repository)
    ],
    application_repo: Annotated[
        ApplicationRepository, Depends(get_application_repository)
    ],
    organization_repo: Annotated[
        OrganizationRepository, Depends(get_organization_repository)
    ],
    user_repo: Annotated[IUserRepository, Depends(get_user_repository)],
    session: Annotated[AsyncSession, Depends(get_write_session)],
    probe: Annotated[AssociationProbe, Depends(get_association_probe)],
) -> AssociationConsistencyManager:
    """Get AssociationConsistencyManager instance.

    Args:
        association_repo: Join-row repository (shares the request session)
        application_repo: Application repository
        organization_repo: Organization repository
        user_repo: Repository of the configured identity backend
        session: Database session for transaction management
        probe: Association probe for observability

    Returns:
        AssociationConsistencyManager instance
    """
    return AssociationConsistencyManager(
        association_repository=association_repo,
        application_repository=application_repo,
        organization_repository=organization_repo,
        user_repository=user_repo,
        session=session,
        probe=probe,
    )


def get_application_service_probe() -> ApplicationServiceProbe:
    """Get ApplicationServiceProbe instance."""
    return DefaultApplicationServiceProbe()


def get_organization_service_probe() -> OrganizationServiceProbe:
    """Get OrganizationServiceProbe instance."""
    return DefaultOrganizationServiceProbe()


def get_application_service(
    application_repo: Annotated[
        ApplicationRepository, Depends(get_application_repository)
    ],
    organization_repo: Annotated[
        OrganizationRepository, Depends(get_organization_repository)
    ],
    manager: Annotated[
        AssociationConsistencyManager, Depends(get_association_manager)
    ],
    gateway: Annotated[IApiKeyGateway, Depends(get_api_key_gateway)],
    session: Annotated[AsyncSession, Depends(get_write_session)],
    probe: Annotated[ApplicationServiceProbe, Depends(get_application_service_probe)],
) -> ApplicationService:
    """Get ApplicationService instance.

    Args:
        application_repo: Application repository
        organization_repo: Organization repository, for organization admin checks
        manager: Association consistency manager
        gateway: API key gateway
        session: Database session for transaction management
        probe: Application service probe for observability

    Returns:
        ApplicationService instance
    """
    return ApplicationService(
        application_repository=application_repo,
        organization_repository=organization_repo,
        association_manager=manager,
        api_key_gateway=gateway,
        session=session,
        probe=probe,
    )


def get_organization_service(
    organization_repo: Annotated[
        OrganizationRepository, Depends(get_organization_repository)
    ],
    application_repo: Annotated[
        ApplicationRepository, Depends(get_application_repository)
    ],
    manager: Annotated[
        AssociationConsistencyManager, Depends(get_association_manager)
    ],
    session: Annotated[AsyncSession, Depends(get_write_session)],
    probe: Annotated[
        OrganizationServiceProbe, Depends(get_organization_service_probe)
    ],
) -> OrganizationService:
    """Get OrganizationService instance.

    Args:
        organization_repo: Organization repository
        application_repo: Application repository, for ownership checks
        manager: Association consistency manager
        session: Database session for transaction management
        probe: Organization service probe for observability

    Returns:
        OrganizationService instance
    """
    return OrganizationService(
        organization_repository=organization_repo,
        application_repository=application_repo,
        association_manager=manager,
        session=session,
        probe=probe,
    )
