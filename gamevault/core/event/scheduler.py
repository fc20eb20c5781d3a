"""
Tiered listener execution for the EventBus.

Execution Tiers
---------------
- CRITICAL / HIGH: sequential, awaited, timeout-protected
- NORMAL: concurrent via ``asyncio.gather``, awaited
- LOW: fire-and-forget background tasks

A failing or timed-out listener is logged and yields ``None``; it never
blocks the remaining listeners or propagates to the publisher.
"""

from __future__ import annotations

import asyncio
import inspect
from logging import Logger
from typing import Any, Optional

from gamevault.core.event.types import EventListener, EventPayload, ListenerPriority


def handle_listener_error(
    *,
    logger: Logger,
    event_name: str,
    listener: EventListener,
    exc: BaseException,
) -> None:
    """Log a listener failure with full context."""
    logger.error(
        "EventBus listener failed",
        extra={
            "event_name": event_name,
            "listener_id": listener.identifier,
            "priority": listener.priority.name,
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
        exc_info=(type(exc), exc, exc.__traceback__),
    )


class EventScheduler:
    """Executes listeners according to their priority tier."""

    def __init__(self) -> None:
        # Strong references keep LOW-tier tasks alive until they finish
        self._background_tasks: set[asyncio.Task[Any]] = set()

    async def execute(
        self,
        *,
        event_name: str,
        payload: EventPayload,
        listeners: list[EventListener],
        logger: Logger,
        critical_timeout: Optional[float],
        high_timeout: Optional[float],
    ) -> list[Any]:
        """
        Run ``listeners`` (already sorted) and return CRITICAL/HIGH/NORMAL results.

        LOW-tier results are never collected.
        """
        critical = [lst for lst in listeners if lst.priority == ListenerPriority.CRITICAL]
        high = [lst for lst in listeners if lst.priority == ListenerPriority.HIGH]
        normal = [lst for lst in listeners if lst.priority == ListenerPriority.NORMAL]
        low = [lst for lst in listeners if lst.priority == ListenerPriority.LOW]

        results: list[Any] = []

        for tier, tier_listeners, timeout in (
            ("CRITICAL", critical, critical_timeout),
            ("HIGH", high, high_timeout),
        ):
            for listener in tier_listeners:
                results.append(
                    await self._run_with_timeout(
                        listener=listener,
                        event_name=event_name,
                        payload=payload,
                        logger=logger,
                        tier=tier,
                        timeout=timeout,
                    )
                )

        if normal:
            normal_results = await asyncio.gather(
                *[
                    self._run_listener(
                        listener=lst,
                        event_name=event_name,
                        payload=payload,
                        logger=logger,
                        tier="NORMAL",
                    )
                    for lst in normal
                ]
            )
            results.extend(normal_results)

        if low:
            loop = asyncio.get_running_loop()
            for listener in low:
                task = loop.create_task(
                    self._run_listener(
                        listener=listener,
                        event_name=event_name,
                        payload=payload,
                        logger=logger,
                        tier="LOW",
                    ),
                    name=f"eventbus-low-{event_name}-{listener.identifier}",
                )
                self._background_tasks.add(task)
                task.add_done_callback(self._background_tasks.discard)

        return results

    async def _run_with_timeout(
        self,
        *,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
        logger: Logger,
        tier: str,
        timeout: Optional[float],
    ) -> Any:
        coro = self._run_listener(
            listener=listener,
            event_name=event_name,
            payload=payload,
            logger=logger,
            tier=tier,
        )

        if timeout is None or timeout <= 0:
            return await coro

        try:
            return await asyncio.wait_for(coro, timeout=timeout)
        except asyncio.TimeoutError as exc:
            logger.error(
                "EventBus listener timeout",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "tier": tier,
                    "timeout_seconds": timeout,
                },
            )
            handle_listener_error(
                logger=logger, event_name=event_name, listener=listener, exc=exc
            )
            return None

    async def _run_listener(
        self,
        *,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
        logger: Logger,
        tier: str,
    ) -> Any:
        """Run one listener; sync callbacks go to the default executor."""
        try:
            logger.debug(
                "EventBus: executing listener",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "tier": tier,
                },
            )

            if inspect.iscoroutinefunction(listener.callback):
                return await listener.callback(payload)

            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, listener.callback, payload)

        except Exception as exc:
            handle_listener_error(
                logger=logger, event_name=event_name, listener=listener, exc=exc
            )
            return None

    async def drain(self) -> None:
        """Wait for outstanding LOW-tier tasks (shutdown and tests)."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    def get_background_task_count(self) -> int:
        return len(self._background_tasks)
