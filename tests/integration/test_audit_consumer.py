"""
Integration Tests for AuditConsumer
===================================

Test Coverage
-------------
- Audited mutations land in the audit_log table
- Records outlive deleted players
- Container lifecycle subscribes and unsubscribes the consumer
- Records are written before the publishing call returns
"""

import logging

import pytest
from sqlalchemy import select

from gamevault.core.database.service import DatabaseService
from gamevault.core.services.container import ServiceContainer
from gamevault.database.models import AuditRecord
from gamevault.modules.audit.consumer import AuditConsumer


@pytest.mark.integration
@pytest.mark.database
class TestAuditPersistence:
    """Test the audit trail write path end to end."""

    async def test_ledger_mutations_are_persisted(self, services, register):
        # Arrange
        pid = (await register("g1", "alice"))["player_id"]

        # Act
        await services.ledger.add(pid, 50)
        await services.ledger.spend(pid, 20)
        records = await services.audit.list_records(player_id=pid)

        # Assert
        assert sorted(r["transaction_type"] for r in records) == ["credits_add", "credits_spend"]
        spend = next(r for r in records if r["transaction_type"] == "credits_spend")
        assert spend["details"]["old_value"] == 50
        assert spend["details"]["new_value"] == 30
        assert spend["details"]["delta"] == -20
        assert spend["context"] == "economy.spend"

        timestamps = [r["created_at"] for r in records]
        assert timestamps == sorted(timestamps, reverse=True)

    async def test_inventory_and_cosmetic_mutations_are_persisted(self, services, funded_player):
        player = await funded_player("alice", 100)
        pid = player["player_id"]
        cosmetic = await services.cosmetics.create_cosmetic("g1", "Hat", "hat", price=10)

        await services.inventory.add_item(pid, "sword", 1)
        await services.cosmetics.buy_cosmetic(pid, cosmetic["cosmetic_id"])

        types = {r["transaction_type"] for r in await services.audit.list_records(player_id=pid)}
        assert {"item_add", "credits_cosmetic_purchase"} <= types

    async def test_records_survive_player_deletion(self, services, register):
        pid = (await register("g1", "alice"))["player_id"]
        await services.ledger.add(pid, 5)

        await services.admin.delete_player(pid)

        records = await services.audit.list_records(player_id=pid)
        assert [r["transaction_type"] for r in records] == ["credits_add"]

    async def test_limit_applies(self, services, register):
        pid = (await register("g1", "alice"))["player_id"]
        for _ in range(3):
            await services.ledger.add(pid, 1)

        assert len(await services.audit.list_records(player_id=pid, limit=2)) == 2


@pytest.mark.integration
@pytest.mark.database
class TestAuditLifecycle:
    """Test subscription and shutdown behavior through the container."""

    async def test_container_subscribes_and_unsubscribes(
        self, database, config_manager, event_bus
    ):
        # Arrange
        container = ServiceContainer(config_manager, event_bus, logging.getLogger("test"))

        # Act
        await container.initialize()
        subscribed = event_bus.get_listener_count(AuditConsumer.EVENT_NAME)
        health = await container.health_check()
        await container.shutdown()

        # Assert
        assert subscribed == 1
        assert health["audit_consumer_running"] is True
        assert event_bus.get_listener_count(AuditConsumer.EVENT_NAME) == 0

    async def test_record_written_before_operation_returns(self, database, config_manager, event_bus):
        # Arrange
        container = ServiceContainer(config_manager, event_bus, logging.getLogger("test"))
        await container.initialize()
        player = await container.identity.register("g1", "alice", "pw")

        # Act
        await container.ledger.add(player["player_id"], 10)

        # Assert
        async with DatabaseService.get_session() as session:
            rows = (await session.execute(select(AuditRecord))).scalars().all()
        assert [(r.player_id, r.transaction_type) for r in rows] == [
            (player["player_id"], "credits_add")
        ]
        assert container.audit.pending == 0

        await container.shutdown()
