"""Domain probes for IAM repository operations.

Following Domain-Oriented Observability patterns, these probes capture
domain-significant events related to identity, application, organization,
association and deletion persistence.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class _StructlogProbe:
    """Shared structlog plumbing for the default repository probes."""

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

    def with_context(self, context: ObservationContext):
        """Create a new probe with observation context bound."""
        return type(self)(logger=self._logger, context=context)


class UserRepositoryProbe(Protocol):
    """Domain probe for user repository operations."""

    def user_saved(self, user_id: str, provider: str) -> None:
        """Record that a user was successfully saved."""
        ...

    def user_retrieved(self, user_id: str) -> None:
        """Record that a user was retrieved."""
        ...

    def user_not_found(self, lookup: str) -> None:
        """Record that no user matched a lookup key."""
        ...

    def duplicate_provider_identity(self, provider: str, provider_id: str) -> None:
        """Record that a (provider, provider_id) pair was already stored."""
        ...

    def users_found(self, count: int) -> None:
        """Record the result size of a user search."""
        ...

    def user_deleted(self, user_id: str) -> None:
        """Record that a user was deleted."""
        ...

    def with_context(self, context: ObservationContext) -> UserRepositoryProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultUserRepositoryProbe(_StructlogProbe):
    """Default implementation of UserRepositoryProbe using structlog."""

    def user_saved(self, user_id: str, provider: str) -> None:
        """Record that a user was successfully saved."""
        self._logger.info(
            "user_saved",
            user_id=user_id,
            provider=provider,
            **self._get_context_kwargs(),
        )

    def user_retrieved(self, user_id: str) -> None:
        """Record that a user was retrieved."""
        self._logger.debug(
            "user_retrieved",
            user_id=user_id,
            **self._get_context_kwargs(),
        )

    def user_not_found(self, lookup: str) -> None:
        """Record that no user matched a lookup key."""
        self._logger.debug(
            "user_not_found",
            lookup=lookup,
            **self._get_context_kwargs(),
        )

    def duplicate_provider_identity(self, provider: str, provider_id: str) -> None:
        """Record that a (provider, provider_id) pair was already stored."""
        self._logger.warning(
            "duplicate_provider_identity",
            provider=provider,
            provider_id=provider_id,
            **self._get_context_kwargs(),
        )

    def users_found(self, count: int) -> None:
        """Record the result size of a user search."""
        self._logger.debug(
            "users_found",
            count=count,
            **self._get_context_kwargs(),
        )

    def user_deleted(self, user_id: str) -> None:
        """Record that a user was deleted."""
        self._logger.info(
            "user_deleted",
            user_id=user_id,
            **self._get_context_kwargs(),
        )


class CredentialRepositoryProbe(Protocol):
    """Domain probe for pending sign-up and password reset storage."""

    def pending_user_saved(self, pending_user_id: str) -> None:
        """Record that a pending sign-up was stored."""
        ...

    def pending_user_deleted(self, pending_user_id: str) -> None:
        """Record that a pending sign-up was removed."""
        ...

    def pending_users_purged(self, count: int) -> None:
        """Record that expired pending sign-ups were removed."""
        ...

    def renewal_saved(self, renewal_id: str, user_id: str) -> None:
        """Record that a password reset grant was stored."""
        ...

    def renewal_deleted(self, renewal_id: str) -> None:
        """Record that a password reset grant was consumed or removed."""
        ...

    def with_context(self, context: ObservationContext) -> CredentialRepositoryProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultCredentialRepositoryProbe(_StructlogProbe):
    """Default implementation of CredentialRepositoryProbe using structlog."""

    def pending_user_saved(self, pending_user_id: str) -> None:
        """Record that a pending sign-up was stored."""
        self._logger.info(
            "pending_user_saved",
            pending_user_id=pending_user_id,
            **self._get_context_kwargs(),
        )

    def pending_user_deleted(self, pending_user_id: str) -> None:
        """Record that a pending sign-up was removed."""
        self._logger.info(
            "pending_user_deleted",
            pending_user_id=pending_user_id,
            **self._get_context_kwargs(),
        )

    def pending_users_purged(self, count: int) -> None:
        """Record that expired pending sign-ups were removed."""
        self._logger.info(
            "pending_users_purged",
            count=count,
            **self._get_context_kwargs(),
        )

    def renewal_saved(self, renewal_id: str, user_id: str) -> None:
        """Record that a password reset grant was stored."""
        self._logger.info(
            "renewal_saved",
            renewal_id=renewal_id,
            user_id=user_id,
            **self._get_context_kwargs(),
        )

    def renewal_deleted(self, renewal_id: str) -> None:
        """Record that a password reset grant was consumed or removed."""
        self._logger.info(
            "renewal_deleted",
            renewal_id=renewal_id,
            **self._get_context_kwargs(),
        )


class ApplicationRepositoryProbe(Protocol):
    """Domain probe for application and organization repository operations."""

    def application_saved(self, application_id: str) -> None:
        """Record that an application was saved."""
        ...

    def application_deleted(self, application_id: str) -> None:
        """Record that an application was deleted."""
        ...

    def applications_listed(self, count: int) -> None:
        """Record that applications were listed."""
        ...

    def organization_saved(self, organization_id: str) -> None:
        """Record that an organization was saved."""
        ...

    def organization_deleted(self, organization_id: str) -> None:
        """Record that an organization was deleted."""
        ...

    def organizations_listed(self, count: int) -> None:
        """Record that organizations were listed."""
        ...

    def with_context(self, context: ObservationContext) -> ApplicationRepositoryProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultApplicationRepositoryProbe(_StructlogProbe):
    """Default implementation of ApplicationRepositoryProbe using structlog."""

    def application_saved(self, application_id: str) -> None:
        """Record that an application was saved."""
        self._logger.info(
            "application_saved",
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

    def applications_listed(self, count: int) -> None:
        """Record that applications were listed."""
        self._logger.debug(
            "applications_listed",
            count=count,
            **self._get_context_kwargs(),
        )

    def organization_saved(self, organization_id: str) -> None:
        """Record that an organization was saved."""
        self._logger.info(
            "organization_saved",
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

    def organizations_listed(self, count: int) -> None:
        """Record that organizations were listed."""
        self._logger.debug(
            "organizations_listed",
            count=count,
            **self._get_context_kwargs(),
        )


class AssociationRepositoryProbe(Protocol):
    """Domain probe for join-row writes."""

    def link_created(self, kind: str, application_id: str, owner_id: str) -> None:
        """Record that an application was linked to an owner."""
        ...

    def links_removed(self, kind: str, subject_id: str, count: int) -> None:
        """Record that join rows were deleted."""
        ...

    def member_added(self, organization_id: str, user_id: str, role: str) -> None:
        """Record that a user joined an organization."""
        ...

    def with_context(self, context: ObservationContext) -> AssociationRepositoryProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultAssociationRepositoryProbe(_StructlogProbe):
    """Default implementation of AssociationRepositoryProbe using structlog."""

    def link_created(self, kind: str, application_id: str, owner_id: str) -> None:
        """Record that an application was linked to an owner."""
        self._logger.info(
            "link_created",
            kind=kind,
            application_id=application_id,
            owner_id=owner_id,
            **self._get_context_kwargs(),
        )

    def links_removed(self, kind: str, subject_id: str, count: int) -> None:
        """Record that join rows were deleted."""
        self._logger.info(
            "links_removed",
            kind=kind,
            subject_id=subject_id,
            count=count,
            **self._get_context_kwargs(),
        )

    def member_added(self, organization_id: str, user_id: str, role: str) -> None:
        """Record that a user joined an organization."""
        self._logger.info(
            "member_added",
            organization_id=organization_id,
            user_id=user_id,
            role=role,
            **self._get_context_kwargs(),
        )


class DeletionRepositoryProbe(Protocol):
    """Domain probe for deletion request storage."""

    def deletion_saved(self, deletion_id: str, user_id: str, status: str) -> None:
        """Record that a deletion request was stored."""
        ...

    def duplicate_deletion(self, user_id: str) -> None:
        """Record that a second deletion request for a user was rejected."""
        ...

    def deletion_deleted(self, deletion_id: str) -> None:
        """Record that a deletion request was removed."""
        ...

    def with_context(self, context: ObservationContext) -> DeletionRepositoryProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultDeletionRepositoryProbe(_StructlogProbe):
    """Default implementation of DeletionRepositoryProbe using structlog."""

    def deletion_saved(self, deletion_id: str, user_id: str, status: str) -> None:
        """Record that a deletion request was stored."""
        self._logger.info(
            "deletion_saved",
            deletion_id=deletion_id,
            user_id=user_id,
            status=status,
            **self._get_context_kwargs(),
        )

    def duplicate_deletion(self, user_id: str) -> None:
        """Record that a second deletion request for a user was rejected."""
        self._logger.warning(
            "duplicate_deletion",
            user_id=user_id,
            **self._get_context_kwargs(),
        )

    def deletion_deleted(self, deletion_id: str) -> None:
        """Record that a deletion request was removed."""
        self._logger.info(
            "deletion_deleted",
            deletion_id=deletion_id,
            **self._get_context_kwargs(),
        )
