"""Gateway protocols (ports) for outbound collaborators.

The API-key issuer and the transactional mail service are external to the
IAM context; services only see these contracts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ApiKeyCredential:
    """API key pair issued to an application."""

    id: str
    value: str


@runtime_checkable
class IApiKeyGateway(Protocol):
    """Issues and revokes application API keys."""

    async def create_key(self, name: str) -> ApiKeyCredential:
        """Issue a new key pair labelled with the application name.

        Raises:
            UpstreamFailureError: If the issuer rejected the request
        """
        ...

    async def update_key(self, key_id: str, name: str) -> None:
        """Relabel an existing key after the application was renamed."""
        ...

    async def delete_key(self, key_id: str) -> None:
        """Revoke a key."""
        ...


@runtime_checkable
class IMailSender(Protocol):
    """Sends the transactional mails of the credential flows.

    Every method raises ``UpstreamFailureError`` (or ``UpstreamTimeoutError``)
    when the mail service could not accept the message.
    """

    async def send_confirmation(
        self, email: str, confirmation_url: str, origin_app: str
    ) -> None:
        """Send the sign-up confirmation link."""
        ...

    async def send_invitation(
        self,
        email: str,
        password: str,
        confirmation_url: str,
        origin_app: str,
        callback_url: str | None = None,
    ) -> None:
        """Send an invitation carrying a generated password."""
        ...

    async def send_password_recovery(
        self, email: str, recovery_url: str, origin_app: str
    ) -> None:
        """Send the password reset link."""
        ...
