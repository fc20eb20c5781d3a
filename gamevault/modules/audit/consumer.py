"""
Audit Event Consumer
====================

Purpose
-------
Write path for the audit trail. Subscribes to the canonical
``audit.transaction.logged`` event published by AuditLogger and persists
each payload as an AuditRecord row.

Responsibilities
----------------
- Subscribe on start, unsubscribe on stop
- Persist every received payload in its own short transaction
- Keep records whose write failed and retry them with the next event
- Serve recent records to the operator CLI

Non-Responsibilities
--------------------
- Validation (AuditLogger validates before publishing)
- Business logic

Architecture Notes
------------------
- Delivery is at NORMAL priority, so the write completes inside the
  ``AuditLogger.log`` call that published it. No timers or background tasks.
- The audited domain transaction has already committed; a failed audit
  write never undoes it.
- Unwritten records are bounded by ``audit.consumer.max_buffer_size``
  (default 10000); past it the oldest are dropped with a warning.

Example Usage
-------------
>>> consumer = AuditConsumer(event_bus, ConfigManager, logger)
>>> await consumer.start()
>>> # ledger, inventory and cosmetics mutations are now persisted
>>> await consumer.stop()
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Deque, Dict, List, Optional

from sqlalchemy import select

from gamevault.core.database.service import DatabaseService
from gamevault.core.event.types import ListenerPriority
from gamevault.core.infra.audit_logger import AuditLogger

if TYPE_CHECKING:
    from logging import Logger

    from gamevault.core.config.manager import ConfigManager
    from gamevault.core.event.bus import EventBus

LISTENER_ID = "audit.consumer"


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return datetime.now(timezone.utc)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


def serialize_record(record: Any) -> Dict[str, Any]:
    return {
        "id": record.id,
        "player_id": record.player_id,
        "transaction_type": record.transaction_type,
        "context": record.context,
        "details": record.details,
        "meta": record.meta,
        "created_at": record.created_at.isoformat() if record.created_at else None,
    }


class AuditConsumer:
    """
    Event consumer that persists audit events as they are published.
    """

    EVENT_NAME = AuditLogger.EVENT_NAME

    def __init__(
        self,
        event_bus: EventBus,
        config_manager: ConfigManager,
        logger: Logger,
    ) -> None:
        self._event_bus = event_bus
        self._config = config_manager
        self.log = logger

        self._pending: Deque[Dict[str, Any]] = deque()
        self._write_lock = asyncio.Lock()
        self._is_running = False

        self._max_buffer_size = int(self._config.get("audit.consumer.max_buffer_size", 10000))

        self._events_received = 0
        self._events_persisted = 0
        self._events_dropped = 0
        self._write_failures = 0
        self._last_write_time: Optional[float] = None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def start(self) -> None:
        """Subscribe to audit events."""
        if self._is_running:
            self.log.warning("AuditConsumer already running")
            return

        self._event_bus.subscribe(
            self.EVENT_NAME,
            self._handle_audit_event,
            priority=ListenerPriority.NORMAL,
            identifier=LISTENER_ID,
        )
        self._is_running = True

        self.log.info(
            "AuditConsumer started",
            extra={"event_name": self.EVENT_NAME, "max_buffer_size": self._max_buffer_size},
        )

    async def stop(self) -> None:
        """Unsubscribe and make a last attempt at unwritten records."""
        if not self._is_running:
            return

        self._is_running = False
        self._event_bus.unsubscribe(self.EVENT_NAME, LISTENER_ID)

        await self.flush()

        if self._pending:
            self._events_dropped += len(self._pending)
            self.log.error(
                "AuditConsumer stopped with unwritten records",
                extra={"unwritten": len(self._pending)},
            )
            self._pending.clear()

        self.log.info("AuditConsumer stopped", extra=self.get_status())

    # ========================================================================
    # Event Handling
    # ========================================================================

    async def _handle_audit_event(self, payload: Dict[str, Any]) -> None:
        self._events_received += 1

        if len(self._pending) >= self._max_buffer_size:
            dropped = self._pending.popleft()
            self._events_dropped += 1
            self.log.warning(
                "Audit backlog full, dropping oldest record",
                extra={
                    "max_buffer_size": self._max_buffer_size,
                    "dropped_transaction_type": dropped["transaction_type"],
                },
            )

        self._pending.append(
            {
                "player_id": str(payload.get("player_id")),
                "transaction_type": str(payload.get("transaction_type", "unknown")),
                "context": str(payload.get("context") or "unknown"),
                "details": dict(payload.get("details") or {}),
                "meta": dict(payload.get("meta") or {}),
                "created_at": _parse_timestamp(payload.get("timestamp")),
            }
        )

        await self.flush()

    # ========================================================================
    # Writing
    # ========================================================================

    async def flush(self) -> int:
        """
        Write every unwritten record in one transaction.

        On failure the records stay queued for the next attempt.

        Returns:
            Number of records written
        """
        from gamevault.database.models import AuditRecord

        async with self._write_lock:
            if not self._pending:
                return 0

            batch: List[Dict[str, Any]] = list(self._pending)
            self._pending.clear()
            start_time = time.perf_counter()

            try:
                async with DatabaseService.get_transaction() as session:
                    session.add_all([AuditRecord(**row) for row in batch])
            except Exception as exc:
                self._write_failures += 1
                self._pending.extendleft(reversed(batch))
                while len(self._pending) > self._max_buffer_size:
                    self._pending.popleft()
                    self._events_dropped += 1
                self.log.error(
                    "Audit write failed; records kept for retry",
                    extra={
                        "batch_size": len(batch),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
                return 0

            self._events_persisted += len(batch)
            self._last_write_time = time.time()
            self.log.debug(
                "Audit records written",
                extra={
                    "count": len(batch),
                    "latency_ms": round((time.perf_counter() - start_time) * 1000, 2),
                },
            )
            return len(batch)

    # ========================================================================
    # Reads
    # ========================================================================

    async def list_records(
        self, player_id: Optional[str] = None, limit: int = 50
    ) -> List[Dict[str, Any]]:
        """Most recent persisted records, newest first."""
        from gamevault.database.models import AuditRecord

        await self.flush()

        stmt = select(AuditRecord).order_by(AuditRecord.created_at.desc(), AuditRecord.id)
        if player_id is not None:
            stmt = stmt.where(AuditRecord.player_id == player_id)
        stmt = stmt.limit(max(1, min(int(limit), 500)))

        async with DatabaseService.get_session() as session:
            records = (await session.execute(stmt)).scalars().all()

        return [serialize_record(r) for r in records]

    # ========================================================================
    # Introspection
    # ========================================================================

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def pending(self) -> int:
        return len(self._pending)

    def get_status(self) -> Dict[str, Any]:
        return {
            "running": self._is_running,
            "pending": len(self._pending),
            "events_received": self._events_received,
            "events_persisted": self._events_persisted,
            "events_dropped": self._events_dropped,
            "write_failures": self._write_failures,
            "last_write_time": self._last_write_time,
        }
