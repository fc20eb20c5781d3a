"""
Unit tests for the event system (router, registry, bus).
"""

import pytest

from gamevault.core.event.bus import EventBus
from gamevault.core.event.router import EventRouter
from gamevault.core.event.types import ListenerPriority


class TestEventRouter:
    """Wildcard pattern matching."""

    @pytest.mark.parametrize(
        "event_name,pattern,expected",
        [
            ("ledger.spent", "ledger.spent", True),
            ("ledger.spent", "ledger.added", False),
            ("ledger.spent", "*", True),
            ("ledger.spent", "ledger.*", True),
            ("cosmetic.purchased", "ledger.*", False),
            ("cosmetic.deleted", "*.deleted", True),
            ("admin.bulk_ban.completed", "admin.*.completed", True),
            ("admin.completed", "admin.*.completed", False),
            ("ledger.spent", "ledger.**", True),
        ],
    )
    def test_matches(self, event_name, pattern, expected):
        assert EventRouter().matches(event_name, pattern) is expected


class TestEventBus:
    """Subscription, delivery and isolation."""

    async def test_publish_delivers_payload(self):
        bus = EventBus()
        received = []

        async def on_spent(payload):
            received.append(payload)
            return "ok"

        bus.subscribe("ledger.spent", on_spent)

        # Act
        results = await bus.publish("ledger.spent", {"player_id": "p1", "delta": -5})

        # Assert
        assert received == [{"player_id": "p1", "delta": -5}]
        assert results == ["ok"]

    async def test_wildcard_subscription(self):
        bus = EventBus()
        names = []

        async def on_any(payload):
            names.append(payload["n"])

        bus.subscribe("ledger.*", on_any)

        await bus.publish("ledger.spent", {"n": 1})
        await bus.publish("ledger.added", {"n": 2})
        await bus.publish("cosmetic.purchased", {"n": 3})

        assert names == [1, 2]

    async def test_failing_listener_is_isolated(self):
        bus = EventBus()
        calls = []

        async def broken(payload):
            raise RuntimeError("listener bug")

        async def healthy(payload):
            calls.append(payload)
            return True

        bus.subscribe("player.registered", broken, priority=ListenerPriority.HIGH)
        bus.subscribe("player.registered", healthy)

        results = await bus.publish("player.registered", {"player_id": "p1"})

        assert results == [None, True]
        assert calls == [{"player_id": "p1"}]

    async def test_priority_order(self):
        bus = EventBus()
        order = []

        async def normal(payload):
            order.append("normal")

        async def critical(payload):
            order.append("critical")

        bus.subscribe("e", normal)
        bus.subscribe("e", critical, priority=ListenerPriority.CRITICAL)

        await bus.publish("e", {})

        assert order == ["critical", "normal"]

    async def test_once_listener_runs_once(self):
        bus = EventBus()
        calls = []

        async def once(payload):
            calls.append(payload)

        bus.subscribe("e", once, once=True)

        await bus.publish("e", {"i": 1})
        await bus.publish("e", {"i": 2})

        assert calls == [{"i": 1}]

    async def test_low_priority_runs_in_background(self):
        bus = EventBus()
        calls = []

        async def low(payload):
            calls.append(payload)

        bus.subscribe("e", low, priority=ListenerPriority.LOW)

        results = await bus.publish("e", {"i": 1})
        await bus.drain()

        assert results == []
        assert calls == [{"i": 1}]

    async def test_sync_callback_supported(self):
        bus = EventBus()

        def sync_listener(payload):
            return payload["x"] * 2

        bus.subscribe("e", sync_listener)

        assert await bus.publish("e", {"x": 21}) == [42]

    def test_subscribe_rejects_wrong_signature(self):
        bus = EventBus()

        async def two_args(payload, extra):
            return None

        with pytest.raises(ValueError):
            bus.subscribe("e", two_args)

    def test_unsubscribe_and_counts(self):
        bus = EventBus()

        async def listener(payload):
            return None

        identifier = bus.subscribe("ledger.spent", listener)
        assert bus.get_listener_count("ledger.spent") == 1

        assert bus.unsubscribe("ledger.spent", identifier) is True
        assert bus.get_listener_count("ledger.spent") == 0

    async def test_publish_counts(self):
        bus = EventBus()

        await bus.publish("a", {})
        await bus.publish("a", {})

        assert bus.get_publish_counts() == {"a": 2}
