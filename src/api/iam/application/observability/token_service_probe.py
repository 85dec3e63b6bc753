"""Protocol for session token observability.

Captures token issuance and the outcome of revocation checks. Revocation
reasons are logged here and never returned to the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class TokenServiceProbe(Protocol):
    """Domain probe for token issuance and authentication."""

    def token_issued(self, user_id: str, persisted: bool) -> None:
        """Record that a session token was signed for a user."""
        ...

    def microservice_token_issued(self) -> None:
        """Record that an internal service token was signed."""
        ...

    def token_revoked(self, user_id: str, reason: str) -> None:
        """Record that a token no longer matches the stored identity."""
        ...

    def revocation_check_failed(self, user_id: str, error: str) -> None:
        """Record that the identity lookup failed; the token counts as revoked."""
        ...

    def user_authenticated(self, user_id: str, role: str) -> None:
        """Record a successful authentication."""
        ...

    def authentication_failed(self, reason: str) -> None:
        """Record a rejected token."""
        ...

    def with_context(self, context: ObservationContext) -> TokenServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTokenServiceProbe:
    """Default implementation of TokenServiceProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultTokenServiceProbe:
        """Create a new probe with observation context bound."""
        return DefaultTokenServiceProbe(logger=self._logger, context=context)

    def token_issued(self, user_id: str, persisted: bool) -> None:
        """Record that a session token was signed for a user."""
        self._logger.info(
            "token_issued",
            user_id=user_id,
            persisted=persisted,
            **self._get_context_kwargs(),
        )

    def microservice_token_issued(self) -> None:
        """Record that an internal service token was signed."""
        self._logger.info("microservice_token_issued", **self._get_context_kwargs())

    def token_revoked(self, user_id: str, reason: str) -> None:
        """Record that a token no longer matches the stored identity."""
        self._logger.info(
            "token_revoked",
            user_id=user_id,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def revocation_check_failed(self, user_id: str, error: str) -> None:
        """Record that the identity lookup failed; the token counts as revoked."""
        self._logger.error(
            "revocation_check_failed",
            user_id=user_id,
            error=error,
            **self._get_context_kwargs(),
        )

    def user_authenticated(self, user_id: str, role: str) -> None:
        """Record a successful authentication."""
        self._logger.debug(
            "user_authenticated",
            user_id=user_id,
            role=role,
            **self._get_context_kwargs(),
        )

    def authentication_failed(self, reason: str) -> None:
        """Record a rejected token."""
        self._logger.warning(
            "authentication_failed",
            reason=reason,
            **self._get_context_kwargs(),
        )
