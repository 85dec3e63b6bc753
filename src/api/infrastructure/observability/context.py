"""Observation context for domain-oriented observability.

Observation contexts collect and manage contextual metadata for instrumentation,
following the Domain Oriented Observability pattern.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class ObservationContext:
    """Immutable context containing metadata for observability.

    Captures request-scoped metadata that should be included with all
    instrumentation events, so events emitted by services and repositories
    during one request can be correlated.

    Attributes:
        request_id: Unique identifier for the current request/operation.
        actor_id: Identifier of the authenticated actor (if any).
        actor_role: Role of the authenticated actor (if any).
        extra: Additional contextual metadata.

    Example:
        context = ObservationContext(request_id="req-123", actor_id="01HX...")
        probe = DefaultTokenServiceProbe().with_context(context)
    """

    request_id: str | None = None
    actor_id: str | None = None
    actor_role: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging.

        Only includes non-None values to keep logs clean.
        """
        result: dict[str, Any] = {}
        if self.request_id is not None:
            result["request_id"] = self.request_id
        if self.actor_id is not None:
            result["actor_id"] = self.actor_id
        if self.actor_role is not None:
            result["actor_role"] = self.actor_role
        result.update(self.extra)
        return result

    def with_actor(self, actor_id: str, actor_role: str) -> ObservationContext:
        """Create a new context bound to the authenticated actor."""
        return replace(self, actor_id=actor_id, actor_role=actor_role)

    def with_extra(self, **kwargs: Any) -> ObservationContext:
        """Create a new context with additional metadata."""
        return replace(self, extra={**self.extra, **kwargs})
