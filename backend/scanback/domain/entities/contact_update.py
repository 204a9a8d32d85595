"""Domain entities for the OTP-gated contact update flow."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class PendingContactUpdate:
    """An outstanding contact change waiting for its one-time code.

    Lives in its own expiring token store keyed by ``code``; never on the
    durable record.
    """

    code: str
    otp: str
    expires_at: datetime
    proposed_email: str | None = None
    proposed_phone: str | None = None
    attempts: int = 0

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class OtpChallenge:
    """Returned to the caller, who is responsible for delivering ``otp``."""

    code: str
    otp: str
    expires_at: datetime
    deliver_to: str
    changes_email: bool
