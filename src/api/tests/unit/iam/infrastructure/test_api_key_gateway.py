"""Unit tests for LocalApiKeyGateway."""

import pytest
import structlog
from unittest.mock import MagicMock

from iam.application.security import API_KEY_PREFIX
from iam.infrastructure.api_key_gateway import LocalApiKeyGateway
from iam.ports.gateways import IApiKeyGateway


@pytest.fixture
def mock_logger():
    return MagicMock(spec=structlog.stdlib.BoundLogger)


@pytest.fixture
def gateway(mock_logger):
    return LocalApiKeyGateway(logger=mock_logger)


class TestLocalApiKeyGateway:
    def test_implements_protocol(self, gateway):
        assert isinstance(gateway, IApiKeyGateway)

    @pytest.mark.asyncio
    async def test_create_key(self, gateway, mock_logger):
        credential = await gateway.create_key("Map")

        assert credential.value.startswith(API_KEY_PREFIX)
        assert len(credential.id) == 26
        mock_logger.info.assert_called_once_with(
            "api_key_created", api_key_id=credential.id, name="Map"
        )

    @pytest.mark.asyncio
    async def test_keys_are_unique(self, gateway):
        first = await gateway.create_key("a")
        second = await gateway.create_key("a")
        assert first != second

    @pytest.mark.asyncio
    async def test_update_and_delete_are_logged(self, gateway, mock_logger):
        await gateway.update_key("k1", "Atlas")
        await gateway.delete_key("k1")

        mock_logger.info.assert_any_call("api_key_relabelled", api_key_id="k1", name="Atlas")
        mock_logger.info.assert_any_call("api_key_revoked", api_key_id="k1")
