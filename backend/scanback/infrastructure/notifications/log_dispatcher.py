"""Dispatcher that only writes events to the application log."""

import logging
from typing import Any

from scanback.application.interfaces import NotificationDispatcher
from scanback.domain.entities import LifecycleEvent, TagRecord

logger = logging.getLogger(__name__)


class LoggingNotificationDispatcher(NotificationDispatcher):
    """Default when no webhook is configured."""

    @property
    def dispatcher_name(self) -> str:
        return "log"

    async def notify(
        self, event: LifecycleEvent, record: TagRecord, payload: dict[str, Any]
    ) -> None:
        logger.info(
            "Event %s for %s tag %s (owner=%s, notify=%s)",
            event.value,
            record.kind.value,
            record.code,
            record.owner,
            record.contact.email,
        )
