"""Protocol for user service observability.

Captures the local credential flows and identity management operations.
Passwords and tokens are never logged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class UserServiceProbe(Protocol):
    """Domain probe for user service operations."""

    def sign_up_requested(self, pending_user_id: str, origin_app: str) -> None:
        """Record that a pending sign-up was created."""
        ...

    def user_invited(self, pending_user_id: str, role: str, actor_id: str) -> None:
        """Record that an actor invited a new user."""
        ...

    def user_confirmed(self, user_id: str) -> None:
        """Record that a pending sign-up was promoted to a user."""
        ...

    def login_succeeded(self, user_id: str) -> None:
        """Record a successful local login."""
        ...

    def login_failed(self, reason: str) -> None:
        """Record a rejected local login."""
        ...

    def password_reset_requested(self, user_id: str) -> None:
        """Record that a reset grant was issued."""
        ...

    def password_reset(self, user_id: str) -> None:
        """Record that a password was replaced."""
        ...

    def user_updated(self, user_id: str, fields: list[str]) -> None:
        """Record that a user was updated."""
        ...

    def user_deleted(self, user_id: str) -> None:
        """Record that a user was deleted."""
        ...

    def user_not_found(self, lookup: str) -> None:
        """Record that a user lookup found nothing."""
        ...

    def permission_denied(self, actor_id: str, action: str) -> None:
        """Record that an actor was not allowed to perform an action."""
        ...

    def pending_users_purged(self, count: int) -> None:
        """Record that expired sign-ups were purged."""
        ...

    def with_context(self, context: ObservationContext) -> UserServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultUserServiceProbe:
    """Default implementation of UserServiceProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultUserServiceProbe:
        """Create a new probe with observation context bound."""
        return DefaultUserServiceProbe(logger=self._logger, context=context)

    def sign_up_requested(self, pending_user_id: str, origin_app: str) -> None:
        """Record that a pending sign-up was created."""
        self._logger.info(
            "sign_up_requested",
            pending_user_id=pending_user_id,
            origin_app=origin_app,
            **self._get_context_kwargs(),
        )

    def user_invited(self, pending_user_id: str, role: str, actor_id: str) -> None:
        """Record that an actor invited a new user."""
        self._logger.info(
            "user_invited",
            pending_user_id=pending_user_id,
            role=role,
            inviter_id=actor_id,
            **self._get_context_kwargs(),
        )

    def user_confirmed(self, user_id: str) -> None:
        """Record that a pending sign-up was promoted to a user."""
        self._logger.info(
            "user_confirmed",
            user_id=user_id,
            **self._get_context_kwargs(),
        )

    def login_succeeded(self, user_id: str) -> None:
        """Record a successful local login."""
        self._logger.info(
            "login_succeeded",
            user_id=user_id,
            **self._get_context_kwargs(),
        )

    def login_failed(self, reason: str) -> None:
        """Record a rejected local login."""
        self._logger.warning(
            "login_failed",
            reason=reason,
            **self._get_context_kwargs(),
        )

    def password_reset_requested(self, user_id: str) -> None:
        """Record that a reset grant was issued."""
        self._logger.info(
            "password_reset_requested",
            user_id=user_id,
            **self._get_context_kwargs(),
        )

    def password_reset(self, user_id: str) -> None:
        """Record that a password was replaced."""
        self._logger.info(
            "password_reset",
            user_id=user_id,
            **self._get_context_kwargs(),
        )

    def user_updated(self, user_id: str, fields: list[str]) -> None:
        """Record that a user was updated."""
        self._logger.info(
            "user_updated",
            user_id=user_id,
            fields=fields,
            **self._get_context_kwargs(),
        )

    def user_deleted(self, user_id: str) -> None:
        """Record that a user was deleted."""
        self._logger.info(
            "user_deleted",
            user_id=user_id,
            **self._get_context_kwargs(),
        )

    def user_not_found(self, lookup: str) -> None:
        """Record that a user lookup found nothing."""
        self._logger.debug(
            "user_not_found",
            lookup=lookup,
            **self._get_context_kwargs(),
        )

    def permission_denied(self, actor_id: str, action: str) -> None:
        """Record that an actor was not allowed to perform an action."""
        self._logger.warning(
            "user_permission_denied",
            actor_id=actor_id,
            action=action,
            **self._get_context_kwargs(),
        )

    def pending_users_purged(self, count: int) -> None:
        """Record that expired sign-ups were purged."""
        self._logger.info(
            "pending_users_purged",
            count=count,
            **self._get_context_kwargs(),
        )
