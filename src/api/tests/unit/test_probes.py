"""Unit tests for domain probes.

Tests that domain probes correctly capture domain events
following the Domain Oriented Observability pattern.
"""

from unittest.mock import MagicMock

import structlog

from iam.application.observability import (
    DefaultAssociationProbe,
    DefaultReconciliationProbe,
    DefaultTokenServiceProbe,
)
from iam.infrastructure.observability import DefaultUpstreamProbe
from infrastructure.observability import ObservationContext
from infrastructure.observability.probes import (
    DefaultConnectionProbe,
    DefaultStartupProbe,
)


def _logger() -> MagicMock:
    return MagicMock(spec=structlog.stdlib.BoundLogger)


class TestConnectionProbe:
    """Tests for ConnectionProbe protocol and implementation."""

    def test_default_probe_creates_with_default_logger(self):
        """Default probe should work without explicit logger."""
        probe = DefaultConnectionProbe()
        assert probe._logger is not None

    def test_engine_created_logs_pool(self):
        mock_logger = _logger()
        probe = DefaultConnectionProbe(logger=mock_logger)

        probe.engine_created(host="db", database="authgate", pool_size=2, max_connections=10)

        mock_logger.info.assert_called_once_with(
            "database_engine_created",
            host="db",
            database="authgate",
            pool_size=2,
            max_connections=10,
        )

    def test_context_is_merged(self):
        mock_logger = _logger()
        context = ObservationContext(request_id="req-1")
        probe = DefaultConnectionProbe(logger=mock_logger).with_context(context)

        probe.engine_disposed()

        mock_logger.info.assert_called_once_with(
            "database_engine_disposed", request_id="req-1"
        )


class TestStartupProbe:
    def test_application_started(self):
        mock_logger = _logger()
        probe = DefaultStartupProbe(logger=mock_logger)

        probe.application_started(version="1.0.0", identity_backend="local")

        mock_logger.info.assert_called_once_with(
            "application_started", version="1.0.0", identity_backend="local"
        )


class TestAssociationProbe:
    def test_orphans_warn_only_when_present(self):
        mock_logger = _logger()
        probe = DefaultAssociationProbe(logger=mock_logger)

        probe.orphans_found(0)
        probe.orphans_found(3)

        mock_logger.debug.assert_called_once_with("orphans_found", count=0)
        mock_logger.warning.assert_called_once_with("orphans_found", count=3)

    def test_owner_changed_carries_actor_context(self):
        mock_logger = _logger()
        context = ObservationContext().with_actor("01USER", "ADMIN")
        probe = DefaultAssociationProbe(logger=mock_logger).with_context(context)

        probe.application_owner_changed("01APP", "organization", "01ORG")

        mock_logger.info.assert_called_once_with(
            "application_owner_changed",
            application_id="01APP",
            owner_kind="organization",
            owner_id="01ORG",
            actor_id="01USER",
            actor_role="ADMIN",
        )


class TestReconciliationProbe:
    def test_failure_logs_error(self):
        mock_logger = _logger()
        probe = DefaultReconciliationProbe(logger=mock_logger)

        probe.reconciliation_failed("google", "db down")

        mock_logger.error.assert_called_once_with(
            "reconciliation_failed", provider="google", error="db down"
        )

    def test_unlinked_identity_warns(self):
        mock_logger = _logger()
        probe = DefaultReconciliationProbe(logger=mock_logger)

        probe.identity_not_linked("okta", "00u1")

        mock_logger.warning.assert_called_once_with(
            "identity_not_linked", provider="okta", provider_id="00u1"
        )


class TestTokenServiceProbe:
    def test_revocation_check_failure_logs_error(self):
        mock_logger = _logger()
        probe = DefaultTokenServiceProbe(logger=mock_logger)

        probe.revocation_check_failed("01USER", "timeout")

        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args[0][0] == "revocation_check_failed"


class TestUpstreamProbe:
    def test_request_failed_logs_summary(self):
        mock_logger = _logger()
        probe = DefaultUpstreamProbe(logger=mock_logger)

        probe.request_failed("mail", "POST", "/transmissions", 500, "boom")

        mock_logger.error.assert_called_once_with(
            "upstream_request_failed",
            service="mail",
            method="POST",
            path="/transmissions",
            status_code=500,
            summary="boom",
        )

    def test_context_extra_is_merged(self):
        mock_logger = _logger()
        context = ObservationContext(request_id="r").with_extra(attempt=2)
        probe = DefaultUpstreamProbe(logger=mock_logger).with_context(context)

        probe.request_timed_out("identity_provider", "GET", "/api/v1/users")

        mock_logger.warning.assert_called_once_with(
            "upstream_request_timed_out",
            service="identity_provider",
            method="GET",
            path="/api/v1/users",
            request_id="r",
            attempt=2,
        )
