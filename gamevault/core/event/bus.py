"""
GameVault EventBus: async pub/sub with tiered concurrency.

Purpose
-------
Decouples services from side effects. Services publish domain events
(``player.registered``, ``ledger.spent``, ``cosmetic.purchased``, ...) after
their transaction commits; audit sinks, projections and notifications
subscribe without the publisher knowing about them.

Responsibilities
----------------
- Register/unregister listeners with priorities and wildcard patterns
- Publish events to every matching listener
- Apply the tiered execution model (see ``scheduler``)
- Isolate listener errors from publishers
- Tag log records with the event being dispatched

Usage
-----
>>> bus = EventBus()
>>> bus.subscribe("ledger.*", on_ledger_event, priority=ListenerPriority.HIGH)
>>> await bus.publish("ledger.spent", {"player_id": "...", "amount": 5})
"""

from __future__ import annotations

import inspect
from typing import Any, Optional

from gamevault.core.event.registry import ListenerRegistry
from gamevault.core.event.router import EventRouter
from gamevault.core.event.scheduler import EventScheduler
from gamevault.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from gamevault.core.logging.logger import get_logger, set_log_context

logger = get_logger(__name__)


class EventBus:
    """
    Instance-based event bus.

    Designed for single-threaded asyncio usage; all methods must be called
    from the same event loop. Separate instances are independent, which
    keeps tests isolated from the global ``event_bus``.
    """

    def __init__(
        self,
        registry: Optional[ListenerRegistry] = None,
        scheduler: Optional[EventScheduler] = None,
        config_manager: Any = None,
        *,
        critical_timeout_seconds: Optional[float] = None,
        high_timeout_seconds: Optional[float] = None,
    ) -> None:
        self._config_manager = config_manager
        self._registry = registry or ListenerRegistry(EventRouter())
        self._scheduler = scheduler or EventScheduler()
        self._published: dict[str, int] = {}

        self._critical_timeout = self._load_timeout(
            key="core.event.listener_timeout.critical_seconds",
            override=critical_timeout_seconds,
            default=5.0,
        )
        self._high_timeout = self._load_timeout(
            key="core.event.listener_timeout.high_seconds",
            override=high_timeout_seconds,
            default=5.0,
        )

        logger.debug(
            "EventBus initialized",
            extra={
                "critical_timeout_seconds": self._critical_timeout,
                "high_timeout_seconds": self._high_timeout,
            },
        )

    def _load_timeout(self, key: str, override: Optional[float], default: float) -> float:
        """Resolve a timeout: explicit override, then config, then default."""
        if override is not None:
            return float(override)

        if self._config_manager is None:
            return float(default)

        value = self._config_manager.get(key, default)
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning(
                "Invalid listener timeout in config, using default",
                extra={"config_key": key, "value": value, "default_value": default},
            )
            return float(default)

    @staticmethod
    def _validate_callback_signature(callback: CallbackType) -> None:
        """
        Ensure the callback accepts exactly one parameter (the payload).

        Raises:
            ValueError: If the signature takes any other number of parameters.
        """
        try:
            sig = inspect.signature(callback)
        except (TypeError, ValueError):
            # Built-ins may not expose a signature
            return

        params = list(sig.parameters.values())
        if len(params) != 1:
            callback_name = getattr(callback, "__qualname__", None) or repr(callback)
            raise ValueError(
                f"Event listener must accept exactly 1 parameter (EventPayload), "
                f"got {len(params)} parameters for '{callback_name}'"
            )

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
        allow_duplicates: bool = False,
    ) -> str:
        """
        Subscribe a callback to an event name or wildcard pattern.

        Args:
            event_name: "ledger.spent" or a pattern such as "ledger.*"
            callback: Async or sync callable taking the payload dict
            priority: Execution tier
            identifier: Explicit id; derived from the callback when None
            once: Remove after the first delivery
            allow_duplicates: Permit the same identifier twice for one event

        Returns:
            The listener identifier, for ``unsubscribe``.

        Raises:
            ValueError: If the callback signature is invalid.
        """
        self._validate_callback_signature(callback)

        listener = EventListener.from_callback(
            event_name=event_name,
            callback=callback,
            priority=priority,
            identifier=identifier,
            once=once,
        )

        added = self._registry.add_listener(
            event_name=event_name,
            listener=listener,
            allow_duplicates=allow_duplicates,
        )

        if added:
            logger.debug(
                "EventBus: subscribed listener",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                    "once": listener.once,
                },
            )
        else:
            logger.warning(
                "EventBus: duplicate listener prevented",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )

        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        removed = self._registry.remove_listener(event_name=event_name, identifier=identifier)

        if removed:
            logger.debug(
                "EventBus: unsubscribed listener",
                extra={"event_name": event_name, "listener_id": identifier},
            )

        return removed

    def clear(self) -> None:
        """Remove every listener. Intended for tests and full re-init."""
        total = self._registry.clear_all()
        logger.info(
            "EventBus: cleared all listeners",
            extra={"previous_listener_count": total},
        )

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Publish an event to all matching listeners.

        Returns:
            Results of CRITICAL/HIGH/NORMAL listeners (``None`` for failures).
            LOW-tier listeners are not awaited.
        """
        self._published[event_name] = self._published.get(event_name, 0) + 1

        # Only payload keys go into the log context, never values
        set_log_context(event_name=event_name, event_keys=list(data.keys()))

        listeners = self._registry.extract_listeners_for_event(event_name=event_name)

        if not listeners:
            logger.debug("EventBus: no listeners for event", extra={"event_name": event_name})
            return []

        logger.debug(
            "EventBus: executing listeners",
            extra={"event_name": event_name, "listener_count": len(listeners)},
        )

        return await self._scheduler.execute(
            event_name=event_name,
            payload=data,
            listeners=listeners,
            logger=logger,
            critical_timeout=self._critical_timeout,
            high_timeout=self._high_timeout,
        )

    async def drain(self) -> None:
        """Wait for fire-and-forget listeners to finish."""
        await self._scheduler.drain()

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        """Listeners that would receive ``event_name``, or the total when None."""
        if event_name:
            return self._registry.get_listener_count_for_event(event_name)
        return self._registry.get_total_listener_count()

    def get_all_events(self) -> list[str]:
        return self._registry.get_all_event_keys()

    def get_publish_counts(self) -> dict[str, int]:
        return dict(self._published)
