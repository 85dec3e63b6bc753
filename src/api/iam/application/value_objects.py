"""Application-layer value objects for IAM bounded context.

These represent the authentication context of a request rather than core
business entities.
"""

from __future__ import annotations

from dataclasses import dataclass

from iam.domain.value_objects import MICROSERVICE_ID, Role


@dataclass(frozen=True)
class CurrentUser:
    """The caller of a request, as described by its verified session token.

    ``user_id`` is a plain string because internal service tokens carry the
    ``microservice`` pseudo-id instead of a real user id.
    """

    user_id: str
    role: Role
    email: str | None = None
    provider: str | None = None
    apps: tuple[str, ...] = ()
    name: str | None = None

    @property
    def is_microservice(self) -> bool:
        """True for internal service tokens."""
        return self.user_id == MICROSERVICE_ID

    @property
    def is_admin(self) -> bool:
        """Microservices and ADMIN or higher may manage any resource."""
        return self.is_microservice or self.role.is_admin
