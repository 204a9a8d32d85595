"""Port for outbound delivery of lifecycle events (email, SMS, webhooks...)."""

from abc import ABC, abstractmethod
from typing import Any

from scanback.domain.entities import LifecycleEvent, TagRecord


class NotificationDispatcher(ABC):
    """Delivers one event about one record. May raise; callers isolate failures."""

    @property
    @abstractmethod
    def dispatcher_name(self) -> str:
        ...

    @abstractmethod
    async def notify(
        self, event: LifecycleEvent, record: TagRecord, payload: dict[str, Any]
    ) -> None:
        ...
