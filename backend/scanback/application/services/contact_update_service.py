"""Application service for OTP-gated changes of a tag's contact email/phone."""

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta

from scanback.application.interfaces import PendingUpdateStore
from scanback.application.schemas.contact_update import ContactUpdateRequest
from scanback.application.schemas.tag import ContactPatch, TagUpdate
from scanback.application.services.lifecycle_service import TagLifecycleService
from scanback.domain.entities import OtpChallenge, PendingContactUpdate, TagRecord, utcnow
from scanback.domain.exceptions import InvalidOrExpiredOTPError

logger = logging.getLogger(__name__)

OTP_DIGITS = 6


def generate_otp() -> str:
    """Six-digit numeric code, never starting with zero."""
    return str(100_000 + secrets.randbelow(900_000))


class ContactUpdateService:
    """Two-step contact change: request an OTP, then verify it and apply the update.

    The OTP is consumed before the update is applied, so the same code can
    never be used twice even when two verifications race.
    """

    def __init__(
        self,
        lifecycle: TagLifecycleService,
        pending_store: PendingUpdateStore,
        *,
        otp_ttl_seconds: int = 600,
        max_attempts: int = 5,
        clock: Callable[[], datetime] = utcnow,
        otp_factory: Callable[[], str] = generate_otp,
    ):
        self._lifecycle = lifecycle
        self._pending = pending_store
        self._ttl = timedelta(seconds=otp_ttl_seconds)
        self._max_attempts = max_attempts
        self._clock = clock
        self._otp_factory = otp_factory

    async def request_update(self, code: str, data: ContactUpdateRequest) -> OtpChallenge:
        """Issue a fresh OTP for ``code``, replacing any outstanding one.

        The OTP goes to the proposed email when the email is changing,
        otherwise to the email currently on file.
        """
        record = await self._lifecycle.get_tag(code)
        now = self._clock()
        pending = PendingContactUpdate(
            code=record.code,
            otp=self._otp_factory(),
            expires_at=now + self._ttl,
            proposed_email=data.new_email,
            proposed_phone=data.new_phone,
        )
        await self._pending.put(pending)
        await self._pending.purge_expired(now)

        logger.info(
            "Contact update requested for %s (email=%s, phone=%s)",
            record.code,
            data.new_email is not None,
            data.new_phone is not None,
        )
        return OtpChallenge(
            code=record.code,
            otp=pending.otp,
            expires_at=pending.expires_at,
            deliver_to=data.new_email or record.contact.email,
            changes_email=data.new_email is not None,
        )

    async def verify_and_apply(self, code: str, otp: str, patch: TagUpdate) -> TagRecord:
        """Apply ``patch`` if ``otp`` is the outstanding, unexpired code for ``code``.

        The verified email/phone always win over whatever the patch carries
        for those two fields.

        Raises:
            InvalidOrExpiredOTPError: no pending update, wrong code, or expired.
        """
        code = self._lifecycle.code_generator.normalize(code)
        pending = await self._pending.consume(
            code, otp, now=self._clock(), max_attempts=self._max_attempts
        )
        if pending is None:
            logger.warning("Rejected contact update OTP for %s", code)
            raise InvalidOrExpiredOTPError(code)

        contact = patch.contact.model_dump(exclude_unset=True) if patch.contact else {}
        if pending.proposed_email is not None:
            contact["email"] = pending.proposed_email
        if pending.proposed_phone is not None:
            contact["phone"] = pending.proposed_phone
        merged = TagUpdate(
            details=patch.details,
            contact=ContactPatch(**contact),
            settings=patch.settings,
        )

        updated = await self._lifecycle.update_details(code, merged)
        logger.info("Contact details updated for %s", code)
        return updated

    async def pending_for(self, code: str) -> PendingContactUpdate | None:
        return await self._pending.get(self._lifecycle.code_generator.normalize(code))
