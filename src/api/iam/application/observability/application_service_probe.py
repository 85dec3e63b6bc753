"""Protocols for application and organization service observability."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class ApplicationServiceProbe(Protocol):
    """Domain probe for application lifecycle operations."""

    def application_created(self, application_id: str, name: str) -> None:
        """Record that an application was created."""
        ...

    def application_updated(self, application_id: str) -> None:
        """Record that an application was updated."""
        ...

    def application_deleted(self, application_id: str) -> None:
        """Record that an application was deleted."""
        ...

    def application_not_found(self, application_id: str) -> None:
        """Record that an application was not found."""
        ...

    def permission_denied(self, actor_id: str, action: str) -> None:
        """Record that an actor was not allowed to perform an action."""
        ...

    def with_context(self, context: ObservationContext) -> ApplicationServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultApplicationServiceProbe:
    """Default implementation of ApplicationServiceProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultApplicationServiceProbe:
        """Create a new probe with observation context bound."""
        return DefaultApplicationServiceProbe(logger=self._logger, context=context)

    def application_created(self, application_id: str, name: str) -> None:
        """Record that an application was created."""
        self._logger.info(
            "application_created",
            application_id=application_id,
            name=name,
            **self._get_context_kwargs(),
        )

    def application_updated(self, application_id: str) -> None:
        """Record that an application was updated."""
        self._logger.info(
            "application_updated",
            application_id=application_id,
            **self._get_context_kwargs(),
        )

    def application_deleted(self, application_id: str) -> None:
        """Record that an application was deleted."""
        self._logger.info(
            "application_deleted",
            application_id=application_id,
            **self._get_context_kwargs(),
        )

    def application_not_found(self, application_id: str) -> None:
        """Record that an application was not found."""
        self._logger.debug(
            "application_not_found",
            application_id=application_id,
            **self._get_context_kwargs(),
        )

    def permission_denied(self, actor_id: str, action: str) -> None:
        """Record that an actor was not allowed to perform an action."""
        self._logger.warning(
            "application_permission_denied",
            actor_id=actor_id,
            action=action,
            **self._get_context_kwargs(),
        )


class OrganizationServiceProbe(Protocol):
    """Domain probe for organization lifecycle operations."""

    def organization_created(self, organization_id: str, name: str) -> None:
        """Record that an organization was created."""
        ...

    def organization_updated(self, organization_id: str) -> None:
        """Record that an organization was updated."""
        ...

    def organization_deleted(self, organization_id: str) -> None:
        """Record that an organization was deleted."""
        ...

    def organization_not_found(self, organization_id: str) -> None:
        """Record that an organization was not found."""
        ...

    def permission_denied(self, actor_id: str, action: str) -> None:
        """Record that an actor was not allowed to perform an action."""
        ...

    def with_context(self, context: ObservationContext) -> OrganizationServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultOrganizationServiceProbe:
    """Default implementation of OrganizationServiceProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultOrganizationServiceProbe:
        """Create a new probe with observation context bound."""
        return DefaultOrganizationServiceProbe(logger=self._logger, context=context)

    def organization_created(self, organization_id: str, name: str) -> None:
        """Record that an organization was created."""
        self._logger.info(
            "organization_created",
            organization_id=organization_id,
            name=name,
            **self._get_context_kwargs(),
        )

    def organization_updated(self, organization_id: str) -> None:
        """Record that an organization was updated."""
        self._logger.info(
            "organization_updated",
            organization_id=organization_id,
            **self._get_context_kwargs(),
        )

    def organization_deleted(self, organization_id: str) -> None:
        """Record that an organization was deleted."""
        self._logger.info(
            "organization_deleted",
            organization_id=organization_id,
            **self._get_context_kwargs(),
        )

    def organization_not_found(self, organization_id: str) -> None:
        """Record that an organization was not found."""
        self._logger.debug(
            "organization_not_found",
            organization_id=organization_id,
            **self._get_context_kwargs(),
        )

    def permission_denied(self, actor_id: str, action: str) -> None:
        """Record that an actor was not allowed to perform an action."""
        self._logger.warning(
            "organization_permission_denied",
            actor_id=actor_id,
            action=action,
            **self._get_context_kwargs(),
        )
