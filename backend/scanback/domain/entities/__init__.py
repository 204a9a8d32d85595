from .tag_record import (
    SCAN_HISTORY_LIMIT,
    ContactInfo,
    ContactLocation,
    FoundInfo,
    ScanEvent,
    TagKind,
    TagRecord,
    TagSettings,
    TagStatus,
    utcnow,
)
from .record_patch import RecordPatch
from .public_view import PublicTagView
from .contact_update import OtpChallenge, PendingContactUpdate
from .notification import DeliveryRecord, DeliveryStatus, LifecycleEvent

__all__ = [
    "SCAN_HISTORY_LIMIT",
    "ContactInfo",
    "ContactLocation",
    "FoundInfo",
    "ScanEvent",
    "TagKind",
    "TagRecord",
    "TagSettings",
    "TagStatus",
    "utcnow",
    "RecordPatch",
    "PublicTagView",
    "OtpChallenge",
    "PendingContactUpdate",
    "DeliveryRecord",
    "DeliveryStatus",
    "LifecycleEvent",
]
