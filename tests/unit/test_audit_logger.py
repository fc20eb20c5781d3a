"""
Unit tests for AuditLogger.
"""

import pytest

from gamevault.core.infra.audit_logger import AuditLogger
from gamevault.modules.shared.exceptions import ValidationError


@pytest.fixture(autouse=True)
def _fresh_metrics():
    AuditLogger.reset_metrics()
    yield
    AuditLogger.reset_metrics()


class TestAuditLogger:
    async def test_publishes_transaction_event(self, mock_event_bus):
        await AuditLogger.log(
            player_id="p1",
            transaction_type="item_add",
            details={"item_name": "sword", "quantity": 1},
            context="inventory.add_item",
            bus=mock_event_bus,
        )

        mock_event_bus.publish.assert_awaited_once()
        event_name, payload = mock_event_bus.publish.call_args.args
        assert event_name == "audit.transaction.logged"
        assert payload["player_id"] == "p1"
        assert payload["details"] == {"item_name": "sword", "quantity": 1}
        assert payload["context"] == "inventory.add_item"
        assert payload["meta"] == {}
        assert AuditLogger.get_metrics()["events_emitted"] == 1

    async def test_credit_change_details(self, mock_event_bus):
        await AuditLogger.log_credit_change(
            player_id="p1", old_value=100, new_value=75, reason="spend", bus=mock_event_bus
        )

        _, payload = mock_event_bus.publish.call_args.args
        assert payload["transaction_type"] == "credits_spend"
        assert payload["details"]["delta"] == -25

    async def test_invalid_payload_raises(self, mock_event_bus):
        with pytest.raises(ValidationError):
            await AuditLogger.log(
                player_id="", transaction_type="item_add", details={}, bus=mock_event_bus
            )

        mock_event_bus.publish.assert_not_awaited()
        assert AuditLogger.get_metrics()["validation_errors"] == 1

    async def test_publish_failure_is_swallowed(self, mock_event_bus):
        mock_event_bus.publish.side_effect = RuntimeError("bus down")

        await AuditLogger.log(
            player_id="p1", transaction_type="item_add", details={}, bus=mock_event_bus
        )

        assert AuditLogger.get_metrics()["publish_errors"] == 1
