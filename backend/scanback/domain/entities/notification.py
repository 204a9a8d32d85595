"""Domain entities for lifecycle notifications and their delivery status."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class LifecycleEvent(str, Enum):
    """Events the lifecycle core hands to the notification dispatcher."""

    SCANNED = "scanned"
    FOUND = "found"
    CONTACT_UPDATE_OTP = "contact_update_otp"


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


@dataclass
class DeliveryRecord:
    """Side-channel record of one notification attempt."""

    event: LifecycleEvent
    code: str
    status: DeliveryStatus = DeliveryStatus.PENDING
    error: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None

    def mark_sent(self) -> None:
        self.status = DeliveryStatus.SENT
        self.completed_at = datetime.now(timezone.utc)

    def mark_failed(self, error: str) -> None:
        self.status = DeliveryStatus.FAILED
        self.error = error
        self.completed_at = datetime.now(timezone.utc)
