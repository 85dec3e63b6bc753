"""Deletion request service for IAM bounded context."""

from __future__ import annotations

from typing import Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from iam.application.observability import (
    DefaultDeletionServiceProbe,
    DeletionServiceProbe,
)
from iam.domain.aggregates import Deletion
from iam.domain.value_objects import DeletionId, DeletionStatus, Page, UserId
from iam.ports.exceptions import (
    DeletionAlreadyExistsError,
    DeletionNotFoundError,
    UnprocessableError,
)
from iam.ports.repositories import DeletionQuery, IDeletionRepository
from infrastructure.database import transaction


class DeletionService:
    """Tracks requests to erase a user's data across the platform.

    Other services tick the per-resource flags as they purge their data.
    At most one request exists per user.
    """

    def __init__(
        self,
        deletion_repository: IDeletionRepository,
        session: AsyncSession,
        probe: DeletionServiceProbe | None = None,
    ):
        """Initialize DeletionService with dependencies.

        Args:
            deletion_repository: Repository for deletion requests
            session: Database session for transaction management
            probe: Optional domain probe for observability
        """
        self._deletions = deletion_repository
        self._session = session
        self._probe = probe or DefaultDeletionServiceProbe()

    async def create_deletion(
        self,
        user_id: UserId,
        requestor_user_id: UserId,
        flags: Mapping[str, bool] | None = None,
        status: DeletionStatus = DeletionStatus.PENDING,
    ) -> Deletion:
        """Open a deletion request for a user.

        Raises:
            DeletionAlreadyExistsError: If the user already has a request
            UnprocessableError: If a flag name is unknown
        """
        try:
            deletion = Deletion.create(
                user_id=user_id,
                requestor_user_id=requestor_user_id,
                status=status,
                flags=flags,
            )
        except ValueError as e:
            raise UnprocessableError(str(e)) from e

        async with transaction(self._session):
            if await self._deletions.get_by_user_id(user_id) is not None:
                raise DeletionAlreadyExistsError(
                    f"Deletion already exists for user {user_id}"
                )
            await self._deletions.save(deletion)

        self._probe.deletion_created(deletion.id.value, user_id.value)
        return deletion

    async def update_deletion(
        self,
        deletion_id: DeletionId,
        status: DeletionStatus | None = None,
        flags: Mapping[str, bool] | None = None,
    ) -> Deletion:
        """Change the status or resource flags of a request.

        Raises:
            DeletionNotFoundError: If the request does not exist
            UnprocessableError: If a flag name is unknown
        """
        async with transaction(self._session):
            deletion = await self._require(deletion_id)
            if status is not None:
                deletion.change_status(status)
            if flags:
                try:
                    deletion.apply_flags(flags)
                except ValueError as e:
                    raise UnprocessableError(str(e)) from e
            await self._deletions.save(deletion)

        self._probe.deletion_updated(deletion_id.value, deletion.status.value)
        return deletion

    async def delete_deletion(self, deletion_id: DeletionId) -> None:
        """Remove a request.

        Raises:
            DeletionNotFoundError: If the request does not exist
        """
        async with transaction(self._session):
            deleted = await self._deletions.delete(deletion_id)
        if not deleted:
            self._probe.deletion_not_found(deletion_id.value)
            raise DeletionNotFoundError(f"Deletion {deletion_id} not found")
        self._probe.deletion_deleted(deletion_id.value)

    async def get_deletion(self, deletion_id: DeletionId) -> Deletion:
        """Retrieve a request by id.

        Raises:
            DeletionNotFoundError: If the request does not exist
        """
        async with transaction(self._session):
            return await self._require(deletion_id)

    async def get_deletion_by_user_id(self, user_id: UserId) -> Deletion:
        """Retrieve the request of a user.

        Raises:
            DeletionNotFoundError: If the user has no request
        """
        async with transaction(self._session):
            deletion = await self._deletions.get_by_user_id(user_id)
        if deletion is None:
            self._probe.deletion_not_found(user_id.value)
            raise DeletionNotFoundError(f"No deletion for user {user_id}")
        return deletion

    async def list_deletions(self, query: DeletionQuery, page: Page) -> list[Deletion]:
        """List requests matching the filter, newest first."""
        async with transaction(self._session):
            return await self._deletions.list_all(query, page)

    async def _require(self, deletion_id: DeletionId) -> Deletion:
        deletion = await self._deletions.get_by_id(deletion_id)
        if deletion is None:
            self._probe.deletion_not_found(deletion_id.value)
            raise DeletionNotFoundError(f"Deletion {deletion_id} not found")
        return deletion
