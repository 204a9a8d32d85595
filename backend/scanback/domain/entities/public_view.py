"""Minimal projection of a tag served on the public (unauthenticated) read path."""

from dataclasses import dataclass, field
from typing import Any

from .tag_record import ContactInfo, TagKind, TagRecord, TagSettings, TagStatus


@dataclass(frozen=True)
class PublicTagView:
    code: str
    kind: TagKind
    status: TagStatus
    is_activated: bool
    details: dict[str, Any] = field(default_factory=dict)
    contact: ContactInfo | None = None

    @classmethod
    def build(
        cls,
        *,
        code: str,
        kind: TagKind,
        status: TagStatus,
        is_activated: bool,
        details: dict[str, Any],
        contact: ContactInfo,
        settings: TagSettings,
    ) -> "PublicTagView":
        """Apply the owner's display settings while projecting."""
        return cls(
            code=code,
            kind=kind,
            status=status,
            is_activated=is_activated,
            details=dict(details),
            contact=contact if settings.show_contact_on_lookup else None,
        )

    @classmethod
    def from_record(cls, record: TagRecord) -> "PublicTagView":
        return cls.build(
            code=record.code,
            kind=record.kind,
            status=record.status,
            is_activated=record.is_activated,
            details=record.details,
            contact=record.contact,
            settings=record.settings,
        )
