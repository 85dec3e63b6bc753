"""Protocol for identity reconciliation observability.

Defines the interface for domain probes that capture how third-party
logins were matched to canonical users.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class ReconciliationProbe(Protocol):
    """Domain probe for reconciliation and identity provider provisioning."""

    def identity_created(self, user_id: str, provider: str) -> None:
        """Record that a first login created a new user."""
        ...

    def identity_matched(self, user_id: str, provider: str, email_refreshed: bool) -> None:
        """Record that a login matched an existing user."""
        ...

    def reconciliation_race_lost(self, provider: str, provider_id: str) -> None:
        """Record that a concurrent login created the user first."""
        ...

    def identity_not_linked(self, provider: str, provider_id: str) -> None:
        """Record a login for a provider identity no user is linked to."""
        ...

    def identity_provisioned(
        self, user_id: str, idp_user_id: str, fields: list[str]
    ) -> None:
        """Record that protected fields were written on an identity provider profile."""
        ...

    def reconciliation_failed(self, provider: str, error: str) -> None:
        """Record an unexpected reconciliation failure."""
        ...

    def with_context(self, context: ObservationContext) -> ReconciliationProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultReconciliationProbe:
    """Default implementation of ReconciliationProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultReconciliationProbe:
        """Create a new probe with observation context bound."""
        return DefaultReconciliationProbe(logger=self._logger, context=context)

    def identity_created(self, user_id: str, provider: str) -> None:
        """Record that a first login created a new user."""
        self._logger.info(
            "identity_created",
            user_id=user_id,
            provider=provider,
            **self._get_context_kwargs(),
        )

    def identity_matched(self, user_id: str, provider: str, email_refreshed: bool) -> None:
        """Record that a login matched an existing user."""
        self._logger.info(
            "identity_matched",
            user_id=user_id,
            provider=provider,
            email_refreshed=email_refreshed,
            **self._get_context_kwargs(),
        )

    def reconciliation_race_lost(self, provider: str, provider_id: str) -> None:
        """Record that a concurrent login created the user first."""
        self._logger.info(
            "reconciliation_race_lost",
            provider=provider,
            provider_id=provider_id,
            **self._get_context_kwargs(),
        )

    def identity_not_linked(self, provider: str, provider_id: str) -> None:
        """Record a login for a provider identity no user is linked to."""
        self._logger.warning(
            "identity_not_linked",
            provider=provider,
            provider_id=provider_id,
            **self._get_context_kwargs(),
        )

    def identity_provisioned(
        self, user_id: str, idp_user_id: str, fields: list[str]
    ) -> None:
        """Record that protected fields were written on an identity provider profile."""
        self._logger.info(
            "identity_provisioned",
            user_id=user_id,
            idp_user_id=idp_user_id,
            fields=fields,
            **self._get_context_kwargs(),
        )

    def reconciliation_failed(self, provider: str, error: str) -> None:
        """Record an unexpected reconciliation failure."""
        self._logger.error(
            "reconciliation_failed",
            provider=provider,
            error=error,
            **self._get_context_kwargs(),
        )
