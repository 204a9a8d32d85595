"""Concrete RecordStore implementation backed by SQLAlchemy.

Unlike request-scoped repositories, every method opens its own session and
transaction from the session factory: one store call is one committed unit,
so the lifecycle core can evict the lookup cache as soon as a call returns.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from scanback.application.interfaces import RecordStore
from scanback.domain.entities import (
    ContactInfo,
    FoundInfo,
    PublicTagView,
    RecordPatch,
    ScanEvent,
    TagKind,
    TagRecord,
    TagSettings,
    TagStatus,
)
from scanback.domain.exceptions import UniqueConstraintViolationError
from scanback.infrastructure.database.models import TagRecordModel

logger = logging.getLogger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything stored here is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SQLAlchemyTagRecordRepository(RecordStore):
    """Implements the RecordStore port using SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    def _to_entity(self, model: TagRecordModel) -> TagRecord:
        """Map ORM model → domain entity."""
        return TagRecord(
            id=model.id,
            code=model.code,
            kind=TagKind(model.kind),
            owner=model.owner_id,
            details=dict(model.details or {}),
            contact=ContactInfo.from_dict(model.contact),
            settings=TagSettings.from_dict(model.settings),
            status=TagStatus(model.status),
            is_activated=model.is_activated,
            activated_at=_aware(model.activated_at),
            scan_count=model.scan_count,
            last_scanned_at=_aware(model.last_scanned_at),
            scan_history=[ScanEvent.from_dict(e) for e in model.scan_history or []],
            found_info=FoundInfo.from_dict(model.found_info),
            created_at=_aware(model.created_at),
            updated_at=_aware(model.updated_at),
        )

    def _write_fields(self, model: TagRecordModel, entity: TagRecord) -> None:
        """Copy mutable entity fields onto the model as fresh JSON values."""
        model.owner_id = entity.owner
        model.details = dict(entity.details)
        model.contact = entity.contact.to_dict()
        model.settings = entity.settings.to_dict()
        model.status = entity.status.value
        model.is_activated = entity.is_activated
        model.activated_at = entity.activated_at
        model.scan_count = entity.scan_count
        model.last_scanned_at = entity.last_scanned_at
        model.scan_history = [e.to_dict() for e in entity.scan_history]
        model.found_info = entity.found_info.to_dict() if entity.found_info else None
        model.updated_at = entity.updated_at

    def _to_model(self, entity: TagRecord) -> TagRecordModel:
        """Map domain entity → ORM model (for creation)."""
        model = TagRecordModel(
            id=entity.id,
            code=entity.code,
            kind=entity.kind.value,
            created_at=entity.created_at,
        )
        self._write_fields(model, entity)
        return model

    async def find_by_code(self, code: str) -> TagRecord | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TagRecordModel).where(TagRecordModel.code == code)
            )
            model = result.scalar_one_or_none()
            return self._to_entity(model) if model else None

    async def find_public_view(self, code: str) -> PublicTagView | None:
        stmt = select(
            TagRecordModel.code,
            TagRecordModel.kind,
            TagRecordModel.status,
            TagRecordModel.is_activated,
            TagRecordModel.details,
            TagRecordModel.contact,
            TagRecordModel.settings,
        ).where(TagRecordModel.code == code)

        async with self._session_factory() as session:
            row = (await session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return PublicTagView.build(
            code=row.code,
            kind=TagKind(row.kind),
            status=TagStatus(row.status),
            is_activated=row.is_activated,
            details=row.details or {},
            contact=ContactInfo.from_dict(row.contact),
            settings=TagSettings.from_dict(row.settings),
        )

    async def insert(self, record: TagRecord) -> TagRecord:
        model = self._to_model(record)
        async with self._session_factory() as session:
            session.add(model)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                logger.debug("Insert of %s rejected: %s", record.code, exc.orig)
                raise UniqueConstraintViolationError(record.code) from exc
            return self._to_entity(model)

    async def update_by_code(self, code: str, patch: RecordPatch) -> TagRecord | None:
        stmt = (
            select(TagRecordModel)
            .where(TagRecordModel.code == code)
            .with_for_update()
        )
        async with self._session_factory() as session:
            async with session.begin():
                model = (await session.execute(stmt)).scalar_one_or_none()
                if model is None:
                    return None
                entity = patch.apply_to(self._to_entity(model))
                self._write_fields(model, entity)
            return self._to_entity(model)

    async def list_records(
        self,
        *,
        owner: str | None = None,
        kind: TagKind | None = None,
        status: TagStatus | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[TagRecord]:
        stmt = select(TagRecordModel)

        if owner is not None:
            stmt = stmt.where(TagRecordModel.owner_id == owner)
        if kind is not None:
            stmt = stmt.where(TagRecordModel.kind == kind.value)
        if status is not None:
            stmt = stmt.where(TagRecordModel.status == status.value)

        stmt = stmt.order_by(TagRecordModel.created_at.desc()).offset(skip).limit(limit)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_entity(row) for row in result.scalars().all()]
