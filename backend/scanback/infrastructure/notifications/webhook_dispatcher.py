"""Dispatcher that POSTs lifecycle events to an HTTP endpoint.

The receiving service owns email/SMS delivery; this side only hands over a
JSON event document.
"""

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from scanback.application.interfaces import NotificationDispatcher
from scanback.domain.entities import LifecycleEvent, TagRecord

logger = logging.getLogger(__name__)


class WebhookNotificationDispatcher(NotificationDispatcher):
    """Sends one request per event. Raises on transport errors and non-2xx replies."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ):
        if not url:
            raise ValueError("Webhook URL is required")
        self._url = url
        self._timeout = timeout
        self._client = client

    @property
    def dispatcher_name(self) -> str:
        return "webhook"

    async def notify(
        self, event: LifecycleEvent, record: TagRecord, payload: dict[str, Any]
    ) -> None:
        document = self._build_document(event, record, payload)
        if self._client is not None:
            response = await self._client.post(self._url, json=document, timeout=self._timeout)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(self._url, json=document, timeout=self._timeout)
        response.raise_for_status()
        logger.debug("Webhook accepted %s for %s (%d)", event.value, record.code, response.status_code)

    @staticmethod
    def _build_document(
        event: LifecycleEvent, record: TagRecord, payload: dict[str, Any]
    ) -> dict[str, Any]:
        return {
            "event": event.value,
            "sent_at": datetime.now(timezone.utc).isoformat(),
            "tag": {
                "code": record.code,
                "kind": record.kind.value,
                "name": record.name,
                "owner": record.owner,
                "status": record.status.value,
            },
            "recipient": {
                "name": record.contact.name,
                "email": record.contact.email,
                "phone": record.contact.phone,
            },
            "payload": payload,
        }
