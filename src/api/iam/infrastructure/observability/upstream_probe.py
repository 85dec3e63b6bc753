"""Domain probe for outbound calls to the identity provider and mail service."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class UpstreamProbe(Protocol):
    """Domain probe for outbound HTTP requests."""

    def request_sent(self, service: str, method: str, path: str, status_code: int) -> None:
        """Record a completed upstream request."""
        ...

    def request_timed_out(self, service: str, method: str, path: str) -> None:
        """Record an upstream request that timed out."""
        ...

    def request_failed(
        self, service: str, method: str, path: str, status_code: int, summary: str
    ) -> None:
        """Record an upstream request that failed."""
        ...

    def mail_skipped(self, template_id: str, recipient: str) -> None:
        """Record a mail that was not sent because sending is disabled."""
        ...

    def with_context(self, context: ObservationContext) -> UpstreamProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultUpstreamProbe:
    """Default implementation of UpstreamProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultUpstreamProbe:
        """Create a new probe with observation context bound."""
        return DefaultUpstreamProbe(logger=self._logger, context=context)

    def request_sent(self, service: str, method: str, path: str, status_code: int) -> None:
        """Record a completed upstream request."""
        self._logger.debug(
            "upstream_request_sent",
            service=service,
            method=method,
            path=path,
            status_code=status_code,
            **self._get_context_kwargs(),
        )

    def request_timed_out(self, service: str, method: str, path: str) -> None:
        """Record an upstream request that timed out."""
        self._logger.warning(
            "upstream_request_timed_out",
            service=service,
            method=method,
            path=path,
            **self._get_context_kwargs(),
        )

    def request_failed(
        self, service: str, method: str, path: str, status_code: int, summary: str
    ) -> None:
        """Record an upstream request that failed."""
        self._logger.error(
            "upstream_request_failed",
            service=service,
            method=method,
            path=path,
            status_code=status_code,
            summary=summary,
            **self._get_context_kwargs(),
        )

    def mail_skipped(self, template_id: str, recipient: str) -> None:
        """Record a mail that was not sent because sending is disabled."""
        self._logger.info(
            "mail_skipped",
            template_id=template_id,
            recipient=recipient,
            **self._get_context_kwargs(),
        )
