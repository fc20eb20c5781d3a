"""
Unit tests for ServiceContainer lifecycle.
"""

import logging

import pytest

from gamevault.core.services.container import SERVICE_COUNT, ServiceContainer
from gamevault.modules.audit import AuditConsumer
from gamevault.modules.economy import LedgerService


class TestServiceContainer:
    def test_access_before_initialize_raises(self, mock_config_manager, mock_event_bus):
        container = ServiceContainer(mock_config_manager, mock_event_bus, logging.getLogger("test"))

        with pytest.raises(RuntimeError):
            _ = container.ledger

    async def test_initialize_builds_every_service(self, mock_config_manager, mock_event_bus):
        container = ServiceContainer(mock_config_manager, mock_event_bus, logging.getLogger("test"))

        await container.initialize()

        assert container.is_initialized is True
        assert isinstance(container.ledger, LedgerService)

        health = await container.health_check()
        assert health["service_count"] == SERVICE_COUNT
        assert health["all_services_available"] is True
        assert health["audit_consumer_running"] is True
        assert isinstance(container.audit, AuditConsumer)
        mock_event_bus.subscribe.assert_called_once()

        await container.shutdown()

        mock_event_bus.unsubscribe.assert_called_once()

    async def test_shutdown_blocks_access(self, mock_config_manager, mock_event_bus):
        container = ServiceContainer(mock_config_manager, mock_event_bus, logging.getLogger("test"))
        await container.initialize()

        await container.shutdown()

        with pytest.raises(RuntimeError):
            _ = container.identity
