"""Domain entities for scannable tags: the record linking a code to its owner."""

from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

SCAN_HISTORY_LIMIT = 50


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class TagKind(str, Enum):
    """What the physical tag is attached to."""

    ITEM = "item"
    PET = "pet"


class TagStatus(str, Enum):
    """Lifecycle status of a tag (orthogonal to activation)."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    FOUND = "found"


@dataclass
class ContactLocation:
    address: str = ""
    city: str = ""
    country: str = ""
    lat: float | None = None
    lng: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ContactLocation | None":
        if data is None:
            return None
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class ContactInfo:
    """Owner contact details shown to whoever scans the tag."""

    name: str
    phone: str
    email: str
    backup_phone: str | None = None
    country_code: str = "+27"
    message: str | None = None
    location: ContactLocation | None = None

    def merged(self, changes: dict[str, Any]) -> "ContactInfo":
        """Return a copy with only the given fields replaced.

        A nested ``location`` dict replaces the location as a whole.
        """
        if not changes:
            return replace(self)
        values = dict(changes)
        if "location" in values and isinstance(values["location"], dict):
            values["location"] = ContactLocation.from_dict(values["location"])
        return replace(self, **values)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContactInfo":
        values = dict(data)
        values["location"] = ContactLocation.from_dict(values.get("location"))
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known})


@dataclass
class TagSettings:
    instant_alerts: bool = True
    location_sharing: bool = True
    show_contact_on_lookup: bool = True

    def merged(self, changes: dict[str, Any]) -> "TagSettings":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "TagSettings":
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class ScanEvent:
    """One access of a tag's public page."""

    scanned_at: datetime = field(default_factory=utcnow)
    ip_address: str = "unknown"
    user_agent: str = "unknown"
    location: str = "unknown"

    def to_dict(self) -> dict[str, Any]:
        return {
            "scanned_at": self.scanned_at.isoformat(),
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "location": self.location,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScanEvent":
        return cls(
            scanned_at=_parse_datetime(data["scanned_at"]),
            ip_address=data.get("ip_address") or "unknown",
            user_agent=data.get("user_agent") or "unknown",
            location=data.get("location") or "unknown",
        )


@dataclass
class FoundInfo:
    """What the finder reported when marking the tag as found."""

    finder_name: str
    finder_phone: str
    found_location: str
    finder_email: str | None = None
    notes: str | None = None
    found_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["found_at"] = self.found_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "FoundInfo | None":
        if data is None:
            return None
        values = dict(data)
        values["found_at"] = _parse_datetime(values.get("found_at")) or utcnow()
        return cls(**values)


@dataclass
class TagRecord:
    """Core domain entity: one issued code and everything attached to it.

    ``is_activated`` only moves false → true, except through an explicit
    deactivation. ``status == FOUND`` always comes with ``found_info``.
    """

    code: str
    kind: TagKind
    details: dict[str, Any]
    contact: ContactInfo
    owner: str | None = None
    settings: TagSettings = field(default_factory=TagSettings)
    status: TagStatus = TagStatus.ACTIVE
    is_activated: bool = False
    activated_at: datetime | None = None
    scan_count: int = 0
    last_scanned_at: datetime | None = None
    scan_history: list[ScanEvent] = field(default_factory=list)
    found_info: FoundInfo | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def name(self) -> str:
        return str(self.details.get("name", ""))
