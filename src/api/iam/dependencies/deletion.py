"""Deletion request dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from iam.application.observability import (
    DefaultDeletionServiceProbe,
    DeletionServiceProbe,
)
from iam.application.services import DeletionService
from iam.infrastructure.deletion_repository import DeletionRepository
from infrastructure.database.dependencies import get_write_session


def get_deletion_service_probe() -> DeletionServiceProbe:
    """Get DeletionServiceProbe instance."""
    return DefaultDeletionServiceProbe()


def get_deletion_repository(
    session: Annotated[AsyncSession, Depends(get_write_session)],
) -> DeletionRepository:
    """Get DeletionRepository instance."""
    return DeletionRepository(session=session)


def get_deletion_service(
    deletion_repo: Annotated[DeletionRepository, Depends(get_deletion_repository)],
    session: Annotated[AsyncSession, Depends(get_write_session)],
    probe: Annotated[DeletionServiceProbe, Depends(get_deletion_service_probe)],
) -> DeletionService:
    """Get DeletionService instance.

    Args:
        deletion_repo: Deletion repository (shares session via FastAPI dependency caching)
        session: Database session for transaction management
        probe: Deletion service probe for observability

    Returns:
        DeletionService instance
    """
    return DeletionService(
        deletion_repository=deletion_repo,
        session=session,
        probe=probe,
    )
