"""Protocol for deletion request service observability."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class DeletionServiceProbe(Protocol):
    """Domain probe for deletion request operations."""

    def deletion_created(self, deletion_id: str, user_id: str) -> None:
        """Record that a deletion request was created."""
        ...

    def deletion_updated(self, deletion_id: str, status: str) -> None:
        """Record that a deletion request was updated."""
        ...

    def deletion_deleted(self, deletion_id: str) -> None:
        """Record that a deletion request was removed."""
        ...

    def deletion_not_found(self, lookup: str) -> None:
        """Record that a deletion request was not found."""
        ...

    def with_context(self, context: ObservationContext) -> DeletionServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultDeletionServiceProbe:
    """Default implementation of DeletionServiceProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultDeletionServiceProbe:
        """Create a new probe with observation context bound."""
        return DefaultDeletionServiceProbe(logger=self._logger, context=context)

    def deletion_created(self, deletion_id: str, user_id: str) -> None:
        """Record that a deletion request was created."""
        self._logger.info(
            "deletion_created",
            deletion_id=deletion_id,
            user_id=user_id,
            **self._get_context_kwargs(),
        )

    def deletion_updated(self, deletion_id: str, status: str) -> None:
        """Record that a deletion request was updated."""
        self._logger.info(
            "deletion_updated",
            deletion_id=deletion_id,
            status=status,
            **self._get_context_kwargs(),
        )

    def deletion_deleted(self, deletion_id: str) -> None:
        """Record that a deletion request was removed."""
        self._logger.info(
            "deletion_deleted",
            deletion_id=deletion_id,
            **self._get_context_kwargs(),
        )

    def deletion_not_found(self, lookup: str) -> None:
        """Record that a deletion request was not found."""
        self._logger.debug(
            "deletion_not_found",
            lookup=lookup,
            **self._get_context_kwargs(),
        )
