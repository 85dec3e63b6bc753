"""Protocol for association consistency observability."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class AssociationProbe(Protocol):
    """Domain probe for application ownership changes."""

    def application_owner_changed(
        self, application_id: str, owner_kind: str, owner_id: str | None
    ) -> None:
        """Record that an application's owner link was set or removed."""
        ...

    def organization_applications_replaced(
        self, organization_id: str, count: int, moved: int
    ) -> None:
        """Record that an organization's application set was replaced."""
        ...

    def organization_members_replaced(self, organization_id: str, count: int) -> None:
        """Record that an organization's member list was replaced."""
        ...

    def associations_cleared(self, subject_kind: str, subject_id: str) -> None:
        """Record that every link of an application, organization or user went away."""
        ...

    def orphans_found(self, count: int) -> None:
        """Record the number of applications with no owner."""
        ...

    def with_context(self, context: ObservationContext) -> AssociationProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultAssociationProbe:
    """Default implementation of AssociationProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultAssociationProbe:
        """Create a new probe with observation context bound."""
        return DefaultAssociationProbe(logger=self._logger, context=context)

    def application_owner_changed(
        self, application_id: str, owner_kind: str, owner_id: str | None
    ) -> None:
        """Record that an application's owner link was set or removed."""
        self._logger.info(
            "application_owner_changed",
            application_id=application_id,
            owner_kind=owner_kind,
            owner_id=owner_id,
            **self._get_context_kwargs(),
        )

    def organization_applications_replaced(
        self, organization_id: str, count: int, moved: int
    ) -> None:
        """Record that an organization's application set was replaced."""
        self._logger.info(
            "organization_applications_replaced",
            organization_id=organization_id,
            count=count,
            moved=moved,
            **self._get_context_kwargs(),
        )

    def organization_members_replaced(self, organization_id: str, count: int) -> None:
        """Record that an organization's member list was replaced."""
        self._logger.info(
            "organization_members_replaced",
            organization_id=organization_id,
            count=count,
            **self._get_context_kwargs(),
        )

    def associations_cleared(self, subject_kind: str, subject_id: str) -> None:
        """Record that every link of an application, organization or user went away."""
        self._logger.info(
            "associations_cleared",
            subject_kind=subject_kind,
            subject_id=subject_id,
            **self._get_context_kwargs(),
        )

    def orphans_found(self, count: int) -> None:
        """Record the number of applications with no owner."""
        log = self._logger.warning if count else self._logger.debug
        log("orphans_found", count=count, **self._get_context_kwargs())
