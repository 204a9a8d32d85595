"""Application service (use case) for the tag lifecycle state machine.

Transitions over ``(status, is_activated)``:

    create ──► (active, not activated)
    activate ──► is_activated = True, owner bound          (same owner again: no-op)
    record_scan ──► scan_count + 1, history append          (activated only)
    report_found ──► status = found, found_info set         (once)
    toggle_status ──► active ⇄ inactive
    deactivate ──► status = inactive, is_activated = False
    update_details ──► partial merge of details / contact / settings

Each successful mutation evicts the code from the public lookup cache after
the store call has returned.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar

from scanback.application.interfaces import AuthorizationCheck, RecordStore
from scanback.application.schemas.tag import (
    FoundReport,
    ScanMetadata,
    TagActivate,
    TagCreate,
    TagUpdate,
)
from scanback.application.services.code_generator import CodeGenerator
from scanback.application.services.notification_outbox import NotificationOutbox
from scanback.application.services.public_lookup_cache import PublicLookupCache
from scanback.application.services.store_timeout import with_store_timeout
from scanback.domain.entities import (
    SCAN_HISTORY_LIMIT,
    ContactInfo,
    FoundInfo,
    LifecycleEvent,
    RecordPatch,
    ScanEvent,
    TagKind,
    TagRecord,
    TagSettings,
    TagStatus,
    utcnow,
)
from scanback.domain.exceptions import (
    AlreadyActivatedError,
    AlreadyFoundError,
    InvalidStatusTransitionError,
    NotActivatedError,
    PatchConflictError,
    TagNotFoundError,
    UniqueConstraintViolationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TOGGLE = {
    TagStatus.ACTIVE: TagStatus.INACTIVE,
    TagStatus.INACTIVE: TagStatus.ACTIVE,
}


class TagLifecycleService:
    """Owns every state change of a tag. Depends on ports only (DI)."""

    def __init__(
        self,
        store: RecordStore,
        *,
        authorization: AuthorizationCheck,
        code_generator: CodeGenerator | None = None,
        lookup_cache: PublicLookupCache | None = None,
        outbox: NotificationOutbox | None = None,
        store_timeout: float = 5.0,
        code_generation_attempts: int = 5,
        scan_history_limit: int = SCAN_HISTORY_LIMIT,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._authorization = authorization
        self._codes = code_generator or CodeGenerator()
        self._cache = lookup_cache
        self._outbox = outbox
        self._store_timeout = store_timeout
        self._code_attempts = max(1, code_generation_attempts)
        self._history_limit = scan_history_limit
        self._clock = clock

    @property
    def code_generator(self) -> CodeGenerator:
        return self._codes

    # ── Queries ──────────────────────────────────────────────────────

    async def get_tag(self, code: str) -> TagRecord:
        code = self._codes.normalize(code)
        record = await self._call(self._store.find_by_code(code), code, "find_by_code")
        if record is None:
            raise TagNotFoundError(code)
        return record

    async def list_tags(
        self,
        owner: str,
        *,
        kind: TagKind | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[TagRecord]:
        return await self._call(
            self._store.list_records(owner=owner, kind=kind, skip=skip, limit=limit),
            owner,
            "list_records",
        )

    # ── Issuance ─────────────────────────────────────────────────────

    async def create_tag(self, data: TagCreate, owner: str | None = None) -> TagRecord:
        """Issue a new, not yet activated tag, regenerating the code on collision."""
        settings = (
            TagSettings(**data.settings.model_dump()) if data.settings else TagSettings()
        )
        contact = ContactInfo.from_dict(data.contact.model_dump())

        attempt = 0
        while True:
            attempt += 1
            code = self._codes.generate()
            record = TagRecord(
                code=code,
                kind=data.kind,
                details=dict(data.details),
                contact=contact,
                owner=owner,
                settings=settings,
            )
            try:
                created = await self._call(self._store.insert(record), code, "insert")
            except UniqueConstraintViolationError:
                if attempt >= self._code_attempts:
                    logger.error("No free code after %d attempts", attempt)
                    raise
                logger.warning(
                    "Code collision on %s (attempt %d/%d), regenerating",
                    code,
                    attempt,
                    self._code_attempts,
                )
                continue
            logger.info("Issued %s tag %s", created.kind.value, created.code)
            return created

    # ── Transitions ──────────────────────────────────────────────────

    async def activate(self, code: str, payload: TagActivate, owner: str) -> TagRecord:
        """Bind a tag to ``owner``.

        Re-activation by the current owner returns the record unchanged;
        activation by anyone else once activated fails, including when the
        other activation lands between this read and this write.
        """
        record = await self.get_tag(code)
        if record.is_activated:
            return self._reactivation(record, owner)

        # Unset optional contact fields (location included) keep their stored value
        changes = payload.model_dump(exclude_none=True)
        patch = RecordPatch(
            set_fields={
                "details": {**record.details, **payload.details},
                "contact": record.contact.merged(changes["contact"]),
                "settings": record.settings.merged(changes.get("settings", {})),
                "is_activated": True,
                "owner": owner,
                "activated_at": self._clock(),
            },
            expect={"is_activated": False},
        )
        try:
            updated = await self._apply(record.code, patch, "activate")
        except PatchConflictError:
            return self._reactivation(await self.get_tag(record.code), owner)
        logger.info("Activated tag %s for owner %s", updated.code, owner)
        return updated

    def _reactivation(self, record: TagRecord, owner: str) -> TagRecord:
        if self._authorization.is_authorized(owner, record.owner):
            logger.info("Tag %s already activated by the same owner, no-op", record.code)
            return record
        raise AlreadyActivatedError(record.code)

    async def record_scan(self, code: str, meta: ScanMetadata) -> TagRecord:
        """Count one scan of an activated tag and notify the owner if enabled."""
        record = await self.get_tag(code)
        if not record.is_activated:
            raise NotActivatedError(record.code)

        now = self._clock()
        event = ScanEvent(
            scanned_at=now,
            ip_address=meta.ip_address or "unknown",
            user_agent=meta.user_agent or "unknown",
            location=meta.location or "unknown",
        )
        patch = RecordPatch(
            set_fields={"last_scanned_at": now},
            increments={"scan_count": 1},
            scan_event=event,
            history_limit=self._history_limit,
            expect={"is_activated": True},
        )
        try:
            updated = await self._apply(record.code, patch, "record_scan")
        except PatchConflictError as exc:
            raise NotActivatedError(record.code) from exc
        logger.debug("Scan #%d recorded for %s", updated.scan_count, updated.code)

        if updated.settings.instant_alerts:
            self._emit(
                LifecycleEvent.SCANNED,
                updated,
                {"scan": event.to_dict(), "scan_count": updated.scan_count},
            )
        return updated

    async def report_found(self, code: str, finder: FoundReport) -> TagRecord:
        record = await self.get_tag(code)
        if record.status is TagStatus.FOUND:
            raise AlreadyFoundError(record.code)

        found = FoundInfo(**finder.model_dump(), found_at=self._clock())
        patch = RecordPatch(
            set_fields={"status": TagStatus.FOUND, "found_info": found},
            forbid={"status": TagStatus.FOUND},
        )
        try:
            updated = await self._apply(record.code, patch, "report_found")
        except PatchConflictError as exc:
            raise AlreadyFoundError(record.code) from exc
        logger.info("Tag %s reported found at %s", updated.code, found.found_location)

        self._emit(LifecycleEvent.FOUND, updated, {"finder": found.to_dict()})
        return updated

    async def toggle_status(self, code: str) -> TagRecord:
        """Flip between active and inactive; other statuses cannot be toggled."""
        record = await self.get_tag(code)
        target = _TOGGLE.get(record.status)
        if target is None:
            raise InvalidStatusTransitionError(record.code, record.status.value, "toggle")

        patch = RecordPatch(set_fields={"status": target}, expect={"status": record.status})
        try:
            updated = await self._apply(record.code, patch, "toggle_status")
        except PatchConflictError as exc:
            raise InvalidStatusTransitionError(record.code, exc.actual.value, "toggle") from exc
        logger.info("Tag %s is now %s", updated.code, updated.status.value)
        return updated

    async def deactivate(self, code: str) -> TagRecord:
        """Take a tag out of service; the only path that clears ``is_activated``."""
        code = self._codes.normalize(code)
        patch = RecordPatch(
            set_fields={"status": TagStatus.INACTIVE, "is_activated": False}
        )
        updated = await self._apply(code, patch, "deactivate")
        logger.info("Deactivated tag %s", updated.code)
        return updated

    async def update_details(self, code: str, patch: TagUpdate) -> TagRecord:
        """Merge the sections present in ``patch``; fields not set are kept."""
        record = await self.get_tag(code)
        set_fields: dict[str, Any] = {}

        if patch.details is not None:
            set_fields["details"] = {**record.details, **patch.details}
        if patch.contact is not None:
            set_fields["contact"] = record.contact.merged(
                patch.contact.model_dump(exclude_unset=True, exclude_none=True)
            )
        if patch.settings is not None:
            set_fields["settings"] = record.settings.merged(
                patch.settings.model_dump(exclude_unset=True, exclude_none=True)
            )

        if not set_fields:
            return record
        return await self._apply(record.code, RecordPatch(set_fields=set_fields), "update")

    # ── Helpers ──────────────────────────────────────────────────────

    async def _call(self, awaitable: Awaitable[T], code: str, operation: str) -> T:
        return await with_store_timeout(
            awaitable, code=code, operation=operation, timeout=self._store_timeout
        )

    async def _apply(self, code: str, patch: RecordPatch, operation: str) -> TagRecord:
        updated = await self._call(
            self._store.update_by_code(code, patch), code, operation
        )
        if updated is None:
            raise TagNotFoundError(code)
        if self._cache is not None:
            self._cache.invalidate(code)
        return updated

    def _emit(self, event: LifecycleEvent, record: TagRecord, payload: dict[str, Any]) -> None:
        if self._outbox is None:
            return
        self._outbox.emit(event, record, payload)
