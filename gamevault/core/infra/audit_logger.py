"""
Audit trail logger for GameVault.

Purpose
-------
Event-driven audit trail for every credit, item and ownership mutation.
This module is a **pure event producer**: it shapes and validates audit
events, then publishes them to the EventBus. Persistence belongs to
whatever sink subscribes to ``audit.transaction.logged``.

Canonical Event Shape
---------------------
Event name: "audit.transaction.logged"

Payload:
{
    "timestamp": str,          # ISO8601 UTC timestamp
    "player_id": str,          # Player UUID
    "transaction_type": str,   # e.g. "credits_spend", "cosmetic_purchase"
    "details": dict,           # Structured transaction data
    "context": str,            # Service operation that produced it
    "meta": dict,              # Optional metadata (game_id, batch size, ...)
}

Failure Policy
--------------
Validation failures raise ``ValidationError`` to the caller. Publish
failures are logged and counted but never raised: the audited
transaction has already committed.

Usage
-----
    await AuditLogger.log(
        player_id=player.id,
        transaction_type="cosmetic_purchase",
        details={"cosmetic_id": cosmetic.id, "price": 150},
        context="cosmetics.buy",
        bus=self._events,
    )

    await AuditLogger.log_credit_change(
        player_id=player.id,
        old_value=500,
        new_value=350,
        reason="spend",
        context="economy.spend",
        bus=self._events,
    )
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from gamevault.core.event import EventBus, EventPayload, event_bus
from gamevault.core.logging.logger import get_logger
from gamevault.modules.shared.exceptions import ValidationError

logger = get_logger(__name__)


@dataclass
class AuditMetrics:
    """In-memory counters for audit event production."""

    events_emitted: int = 0
    validation_errors: int = 0
    publish_errors: int = 0
    total_log_time_ms: float = 0.0

    def as_dict(self) -> Dict[str, Any]:
        total_events = max(self.events_emitted, 1)
        error_events = self.validation_errors + self.publish_errors

        return {
            "events_emitted": self.events_emitted,
            "validation_errors": self.validation_errors,
            "publish_errors": self.publish_errors,
            "total_errors": error_events,
            "error_rate_percent": round((error_events / total_events) * 100.0, 2),
            "avg_log_time_ms": round(self.total_log_time_ms / total_events, 3),
        }


_metrics = AuditMetrics()


class AuditLogger:
    """
    Write-only audit producer.

    Every call publishes exactly one ``audit.transaction.logged`` event on
    ``bus`` (the global ``event_bus`` when omitted).
    """

    EVENT_NAME: str = "audit.transaction.logged"

    @staticmethod
    def _validate(
        player_id: Any,
        transaction_type: Any,
        details: Any,
    ) -> None:
        if not isinstance(player_id, str) or not player_id:
            raise ValidationError("player_id", "must be a non-empty string")
        if not isinstance(transaction_type, str) or not transaction_type.strip():
            raise ValidationError("transaction_type", "must be a non-empty string")
        if not isinstance(details, Mapping):
            raise ValidationError("details", "must be a mapping")

    @classmethod
    async def log(
        cls,
        *,
        player_id: str,
        transaction_type: str,
        details: Mapping[str, Any],
        context: Optional[str] = None,
        meta: Optional[Mapping[str, Any]] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        """
        Publish a canonical audit transaction event.

        Raises:
            ValidationError: If the payload is malformed.
        """
        start_time = time.perf_counter()

        try:
            cls._validate(player_id, transaction_type, details)
        except ValidationError as exc:
            _metrics.validation_errors += 1
            logger.error(
                "Audit validation failed",
                extra={
                    "player_id": player_id,
                    "transaction_type": transaction_type,
                    "validation_error": str(exc),
                },
            )
            raise

        payload: EventPayload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "player_id": player_id,
            "transaction_type": transaction_type,
            "details": dict(details),
            "context": context or "unknown",
            "meta": dict(meta) if meta is not None else {},
        }

        try:
            await (bus or event_bus).publish(cls.EVENT_NAME, payload)
        except Exception:
            # The audited transaction is already committed
            _metrics.publish_errors += 1
            logger.error(
                "Failed to publish audit event",
                extra={
                    "player_id": player_id,
                    "transaction_type": transaction_type,
                    "context": context,
                },
                exc_info=True,
            )
            return

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        _metrics.events_emitted += 1
        _metrics.total_log_time_ms += elapsed_ms

        logger.debug(
            "Audit event emitted",
            extra={
                "player_id": player_id,
                "transaction_type": transaction_type,
                "context": payload["context"],
                "log_time_ms": round(elapsed_ms, 3),
            },
        )

    @classmethod
    async def log_credit_change(
        cls,
        *,
        player_id: str,
        old_value: int,
        new_value: int,
        reason: str,
        context: Optional[str] = None,
        meta: Optional[Mapping[str, Any]] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        """
        Audit a credit balance change.

        Emits transaction_type ``credits_{reason}`` with old/new/delta.
        """
        await cls.log(
            player_id=player_id,
            transaction_type=f"credits_{reason}",
            details={
                "resource": "credits",
                "old_value": old_value,
                "new_value": new_value,
                "delta": new_value - old_value,
                "reason": reason,
            },
            context=context,
            meta=meta,
            bus=bus,
        )

    @staticmethod
    def get_metrics() -> Dict[str, Any]:
        return _metrics.as_dict()

    @staticmethod
    def reset_metrics() -> None:
        global _metrics
        _metrics = AuditMetrics()
