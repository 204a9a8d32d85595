"""Pydantic DTOs (Data Transfer Objects) for the tag lifecycle."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from scanback.domain.entities import TagKind, TagStatus

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def _require_name(details: dict[str, Any]) -> dict[str, Any]:
    name = details.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError("details.name is required")
    details["name"] = name.strip()
    return details


class ContactLocationSchema(BaseModel):
    address: str = ""
    city: str = ""
    country: str = ""
    lat: float | None = None
    lng: float | None = None

    model_config = {"from_attributes": True}


class ContactSchema(BaseModel):
    """Complete contact block, as supplied at creation or activation."""

    name: str = Field(..., min_length=1, max_length=200, examples=["Jane Doe"])
    phone: str = Field(..., min_length=5, max_length=32, examples=["0821234567"])
    email: str = Field(
        ..., max_length=255, pattern=_EMAIL_PATTERN, examples=["jane@example.com"],
    )
    backup_phone: str | None = Field(None, max_length=32)
    country_code: str = Field("+27", max_length=8)
    message: str | None = Field(None, max_length=1000)
    location: ContactLocationSchema | None = None

    model_config = {"from_attributes": True}


class ContactPatch(BaseModel):
    """Contact fields for a partial update: only fields that are set change."""

    name: str | None = Field(None, min_length=1, max_length=200)
    phone: str | None = Field(None, min_length=5, max_length=32)
    email: str | None = Field(None, max_length=255, pattern=_EMAIL_PATTERN)
    backup_phone: str | None = Field(None, max_length=32)
    country_code: str | None = Field(None, max_length=8)
    message: str | None = Field(None, max_length=1000)
    location: ContactLocationSchema | None = None


class SettingsSchema(BaseModel):
    instant_alerts: bool = True
    location_sharing: bool = True
    show_contact_on_lookup: bool = True

    model_config = {"from_attributes": True}


class SettingsPatch(BaseModel):
    instant_alerts: bool | None = None
    location_sharing: bool | None = None
    show_contact_on_lookup: bool | None = None


class TagCreate(BaseModel):
    """Schema for issuing a new tag."""

    kind: TagKind = Field(..., examples=["pet"])
    details: dict[str, Any] = Field(
        ..., examples=[{"name": "Rex", "breed": "Beagle", "microchipId": "9810"}],
    )
    contact: ContactSchema
    settings: SettingsSchema | None = None

    @field_validator("details")
    @classmethod
    def _details_need_name(cls, value: dict[str, Any]) -> dict[str, Any]:
        return _require_name(value)


class TagActivate(BaseModel):
    """Schema for binding a tag to its owner on first use."""

    details: dict[str, Any]
    contact: ContactSchema
    settings: SettingsPatch | None = None

    @field_validator("details")
    @classmethod
    def _details_need_name(cls, value: dict[str, Any]) -> dict[str, Any]:
        return _require_name(value)


class TagUpdate(BaseModel):
    """Partial update: absent sections and absent fields are left untouched."""

    details: dict[str, Any] | None = None
    contact: ContactPatch | None = None
    settings: SettingsPatch | None = None


class ScanMetadata(BaseModel):
    ip_address: str | None = Field(None, max_length=64)
    user_agent: str | None = Field(None, max_length=512)
    location: str | None = Field(None, max_length=255)


class FoundReport(BaseModel):
    """What a finder submits from the public page."""

    finder_name: str = Field(..., min_length=1, max_length=200)
    finder_phone: str = Field(..., min_length=5, max_length=32)
    finder_email: str | None = Field(None, max_length=255, pattern=_EMAIL_PATTERN)
    found_location: str = Field(..., min_length=1, max_length=500)
    notes: str | None = Field(None, max_length=2000)


class ScanEventResponse(BaseModel):
    scanned_at: datetime
    ip_address: str
    user_agent: str
    location: str

    model_config = {"from_attributes": True}


class FoundInfoResponse(BaseModel):
    finder_name: str
    finder_phone: str
    finder_email: str | None
    found_location: str
    notes: str | None
    found_at: datetime

    model_config = {"from_attributes": True}


class TagResponse(BaseModel):
    """Full record, returned to the owner."""

    code: str
    kind: TagKind
    owner: str | None
    details: dict[str, Any]
    contact: ContactSchema
    settings: SettingsSchema
    status: TagStatus
    is_activated: bool
    activated_at: datetime | None
    scan_count: int
    last_scanned_at: datetime | None
    scan_history: list[ScanEventResponse]
    found_info: FoundInfoResponse | None
    created_at: datetime
    updated_at: datetime
    scan_url: str | None = None

    model_config = {"from_attributes": True}


class PublicTagResponse(BaseModel):
    """Public lookup result: no owner identity, contact only if allowed."""

    code: str
    kind: TagKind
    status: TagStatus
    is_activated: bool
    details: dict[str, Any]
    contact: ContactSchema | None
    scan_url: str | None = None

    model_config = {"from_attributes": True}


class ScanResponse(BaseModel):
    code: str
    kind: TagKind
    name: str
    scan_count: int
    last_scanned_at: datetime | None
    contact: ContactSchema | None
    message: str | None
