"""In-process pending contact-update store: one expiring token per code."""

import asyncio
import hmac
import logging
from dataclasses import replace
from datetime import datetime

from scanback.application.interfaces import PendingUpdateStore
from scanback.domain.entities import PendingContactUpdate

logger = logging.getLogger(__name__)


class InMemoryPendingUpdateStore(PendingUpdateStore):
    """Keeps pending updates in a dict keyed by code, guarded by an asyncio.Lock.

    Entries are ephemeral by nature: a restart simply means the owner asks
    for a new code.
    """

    def __init__(self) -> None:
        self._pending: dict[str, PendingContactUpdate] = {}
        self._lock = asyncio.Lock()

    async def put(self, pending: PendingContactUpdate) -> None:
        async with self._lock:
            self._pending[pending.code] = replace(pending)

    async def get(self, code: str) -> PendingContactUpdate | None:
        pending = self._pending.get(code)
        return replace(pending) if pending else None

    async def consume(
        self, code: str, otp: str, *, now: datetime, max_attempts: int
    ) -> PendingContactUpdate | None:
        async with self._lock:
            pending = self._pending.get(code)
            if pending is None:
                return None
            if pending.is_expired(now):
                del self._pending[code]
                return None
            if not hmac.compare_digest(pending.otp.encode(), otp.encode()):
                pending.attempts += 1
                if pending.attempts >= max_attempts:
                    del self._pending[code]
                    logger.warning("Too many wrong codes for %s, pending update dropped", code)
                return None
            return self._pending.pop(code)

    async def discard(self, code: str) -> bool:
        async with self._lock:
            return self._pending.pop(code, None) is not None

    async def purge_expired(self, now: datetime) -> int:
        async with self._lock:
            expired = [c for c, p in self._pending.items() if p.is_expired(now)]
            for code in expired:
                del self._pending[code]
        return len(expired)

    def __len__(self) -> int:
        return len(self._pending)
