"""Port for the short-lived contact-update token store."""

from abc import ABC, abstractmethod
from datetime import datetime

from scanback.domain.entities import PendingContactUpdate


class PendingUpdateStore(ABC):
    """Holds at most one pending contact update per code."""

    @abstractmethod
    async def put(self, pending: PendingContactUpdate) -> None:
        """Store ``pending``, replacing any previous one for the same code."""
        ...

    @abstractmethod
    async def get(self, code: str) -> PendingContactUpdate | None:
        ...

    @abstractmethod
    async def consume(
        self, code: str, otp: str, *, now: datetime, max_attempts: int
    ) -> PendingContactUpdate | None:
        """Remove and return the pending update if ``otp`` matches and it is unexpired.

        A wrong guess counts against ``max_attempts``; once reached, or once
        expired, the pending update is dropped. Returns None on any failure.
        """
        ...

    @abstractmethod
    async def discard(self, code: str) -> bool:
        ...

    @abstractmethod
    async def purge_expired(self, now: datetime) -> int:
        """Drop every expired entry. Returns how many were removed."""
        ...
