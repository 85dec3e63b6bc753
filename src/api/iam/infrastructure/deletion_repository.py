"""PostgreSQL implementation of IDeletionRepository."""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database import is_unique_violation
from iam.domain.aggregates import DELETION_FLAGS, Deletion
from iam.domain.value_objects import DeletionId, DeletionStatus, Page, UserId
from iam.infrastructure.models import DeletionModel
from iam.infrastructure.observability import (
    DefaultDeletionRepositoryProbe,
    DeletionRepositoryProbe,
)
from iam.ports.exceptions import DeletionAlreadyExistsError
from iam.ports.repositories import DeletionQuery, IDeletionRepository

DELETION_USER_INDEX = "ix_deletions_user_id"


class DeletionRepository(IDeletionRepository):
    """PostgreSQL-backed repository for deletion requests.

    The unique index on ``user_id`` enforces one request per user.
    """

    def __init__(
        self, session: AsyncSession, probe: DeletionRepositoryProbe | None = None
    ) -> None:
        """Initialize repository with database session and probe.

        Args:
            session: AsyncSession from FastAPI dependency injection
            probe: Optional domain probe for observability
        """
        self._session = session
        self._probe = probe or DefaultDeletionRepositoryProbe()

    async def save(self, deletion: Deletion) -> None:
        """Persist a deletion request.

        Raises:
            DeletionAlreadyExistsError: If another request exists for the same user
        """
        try:
            stmt = select(DeletionModel).where(DeletionModel.id == deletion.id.value)
            result = await self._session.execute(stmt)
            model = result.scalar_one_or_none()

            if model is None:
                model = DeletionModel(id=deletion.id.value, created_at=deletion.created_at)
                self._session.add(model)

            model.user_id = deletion.user_id.value
            model.requestor_user_id = deletion.requestor_user_id.value
            model.status = deletion.status.value
            for name, value in deletion.flags().items():
                setattr(model, name, value)

            await self._session.flush()

        except IntegrityError as e:
            if is_unique_violation(e, DELETION_USER_INDEX):
                self._probe.duplicate_deletion(deletion.user_id.value)
                raise DeletionAlreadyExistsError(
                    f"Deletion already exists for user {deletion.user_id}"
                ) from e
            raise

        self._probe.deletion_saved(
            deletion.id.value, deletion.user_id.value, deletion.status.value
        )

    async def get_by_id(self, deletion_id: DeletionId) -> Deletion | None:
        """Retrieve a deletion request by id."""
        stmt = select(DeletionModel).where(DeletionModel.id == deletion_id.value)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def get_by_user_id(self, user_id: UserId) -> Deletion | None:
        """Retrieve the deletion request for a user."""
        stmt = select(DeletionModel).where(DeletionModel.user_id == user_id.value)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def list_all(self, query: DeletionQuery, page: Page) -> list[Deletion]:
        """List deletion requests matching the filter, newest first."""
        stmt = select(DeletionModel)
        if query.status is not None:
            stmt = stmt.where(DeletionModel.status == query.status.value)
        if query.user_id is not None:
            stmt = stmt.where(DeletionModel.user_id == query.user_id.value)
        if query.requestor_user_id is not None:
            stmt = stmt.where(
                DeletionModel.requestor_user_id == query.requestor_user_id.value
            )
        stmt = (
            stmt.order_by(DeletionModel.created_at.desc(), DeletionModel.id.desc())
            .offset(page.offset)
            .limit(page.size)
        )
        result = await self._session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def delete(self, deletion_id: DeletionId) -> bool:
        """Delete a deletion request.

        Returns:
            True if deleted, False if not found
        """
        stmt = delete(DeletionModel).where(DeletionModel.id == deletion_id.value)
        result = await self._session.execute(stmt)
        await self._session.flush()
        if result.rowcount == 0:
            return False
        self._probe.deletion_deleted(deletion_id.value)
        return True

    @staticmethod
    def _to_domain(model: DeletionModel) -> Deletion:
        return Deletion(
            id=DeletionId(value=model.id),
            user_id=UserId(value=model.user_id),
            requestor_user_id=UserId(value=model.requestor_user_id),
            status=DeletionStatus(model.status),
            created_at=model.created_at,
            updated_at=model.updated_at,
            **{name: bool(getattr(model, name)) for name in DELETION_FLAGS},
        )
