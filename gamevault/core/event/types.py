"""
Core event types for the GameVault EventBus.

Priority Levels
---------------
- CRITICAL (0): Sequential, awaited, timeout-protected. Ledger integrity hooks.
- HIGH (10): Sequential, awaited, timeout-protected. Audit sinks.
- NORMAL (50): Concurrent, awaited. Notifications, projections.
- LOW (100): Fire-and-forget. Logging, analytics.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

# Payloads should stay JSON-serializable so audit sinks can persist them as-is
EventPayload = dict[str, Any]


class ListenerPriority(Enum):
    """
    Priority levels for event listeners.

    Lower values run earlier. The scheduler partitions listeners into
    tiers by these values.
    """

    CRITICAL = 0
    HIGH = 10
    NORMAL = 50
    LOW = 100


CallbackType = Union[
    Callable[[EventPayload], Any],
    Callable[[EventPayload], Awaitable[Any]],
]


@dataclass(slots=True, frozen=True)
class EventListener:
    """
    Immutable record of a registered listener.

    Attributes
    ----------
    callback:
        Async or sync callable invoked with the event payload.
    priority:
        Tier the listener runs in.
    identifier:
        Unique string used for deduplication and unsubscription.
    once:
        Remove the listener before its first execution.
    """

    callback: CallbackType
    priority: ListenerPriority
    identifier: str
    once: bool = False

    @classmethod
    def from_callback(
        cls,
        event_name: str,
        callback: CallbackType,
        priority: ListenerPriority,
        identifier: Optional[str],
        once: bool,
    ) -> EventListener:
        """
        Build a listener, deriving the identifier from the callback when absent.

        >>> async def on_spent(payload): ...
        >>> EventListener.from_callback("ledger.spent", on_spent,
        ...     ListenerPriority.NORMAL, None, False).identifier
        'mymodule.on_spent@ledger.spent'
        """
        if identifier is None:
            module = getattr(callback, "__module__", "unknown")
            qualname = getattr(
                callback, "__qualname__", getattr(callback, "__name__", "callback")
            )
            identifier = f"{module}.{qualname}@{event_name}"

        return cls(
            callback=callback,
            priority=priority,
            identifier=identifier,
            once=once,
        )
