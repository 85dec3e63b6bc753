"""Locally issued application API keys.

Keys are random secrets generated in-process. The key pair is stored on the
application record itself, so relabelling and revocation need no remote
call; they are only logged.
"""

from __future__ import annotations

import structlog
from ulid import ULID

from iam.application.security import generate_api_key_secret
from iam.ports.gateways import ApiKeyCredential, IApiKeyGateway


class LocalApiKeyGateway(IApiKeyGateway):
    """Issues API keys with the ``agk_`` prefix."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._logger = logger or structlog.get_logger()

    async def create_key(self, name: str) -> ApiKeyCredential:
        """Issue a new key pair labelled with the application name."""
        credential = ApiKeyCredential(id=str(ULID()), value=generate_api_key_secret())
        self._logger.info("api_key_created", api_key_id=credential.id, name=name)
        return credential

    async def update_key(self, key_id: str, name: str) -> None:
        """Relabel an existing key after the application was renamed."""
        self._logger.info("api_key_relabelled", api_key_id=key_id, name=name)

    async def delete_key(self, key_id: str) -> None:
        """Revoke a key."""
        self._logger.info("api_key_revoked", api_key_id=key_id)
