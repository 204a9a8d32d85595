"""Notification outbox: best-effort, non-blocking delivery of lifecycle events."""

import asyncio
import logging
from collections import deque
from typing import Any

from scanback.application.interfaces import NotificationDispatcher
from scanback.domain.entities import DeliveryRecord, LifecycleEvent, TagRecord

logger = logging.getLogger(__name__)


class NotificationOutbox:
    """Schedules dispatcher calls as background tasks and records their outcome.

    A failing dispatcher never reaches the lifecycle operation that emitted the
    event: the failure is logged and kept as a ``DeliveryRecord`` with status
    ``failed``. Only the most recent ``history_size`` deliveries are kept.
    """

    def __init__(self, dispatcher: NotificationDispatcher, *, history_size: int = 500):
        self._dispatcher = dispatcher
        self._deliveries: deque[DeliveryRecord] = deque(maxlen=history_size)
        self._tasks: set[asyncio.Task[None]] = set()

    def emit(
        self,
        event: LifecycleEvent,
        record: TagRecord,
        payload: dict[str, Any] | None = None,
    ) -> DeliveryRecord:
        """Queue delivery and return its (still pending) delivery record."""
        delivery = DeliveryRecord(event=event, code=record.code)
        self._deliveries.append(delivery)
        task = asyncio.create_task(self._deliver(delivery, record, payload or {}))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return delivery

    async def _deliver(
        self, delivery: DeliveryRecord, record: TagRecord, payload: dict[str, Any]
    ) -> None:
        try:
            await self._dispatcher.notify(delivery.event, record, payload)
        except Exception as exc:
            delivery.mark_failed(f"{type(exc).__name__}: {exc}")
            logger.warning(
                "Notification %s for %s via %s failed: %s",
                delivery.event.value,
                record.code,
                self._dispatcher.dispatcher_name,
                exc,
            )
        else:
            delivery.mark_sent()
            logger.debug("Notification %s for %s sent", delivery.event.value, record.code)

    def deliveries(self, code: str | None = None) -> list[DeliveryRecord]:
        if code is None:
            return list(self._deliveries)
        return [d for d in self._deliveries if d.code == code]

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled delivery to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
