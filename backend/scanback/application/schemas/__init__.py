from .tag import (
    ContactLocationSchema,
    ContactPatch,
    ContactSchema,
    FoundReport,
    PublicTagResponse,
    ScanMetadata,
    ScanResponse,
    SettingsPatch,
    SettingsSchema,
    TagActivate,
    TagCreate,
    TagResponse,
    TagUpdate,
)
from .contact_update import (
    ContactUpdateChallengeResponse,
    ContactUpdateRequest,
    ContactUpdateVerify,
)

__all__ = [
    "ContactLocationSchema",
    "ContactPatch",
    "ContactSchema",
    "FoundReport",
    "PublicTagResponse",
    "ScanMetadata",
    "ScanResponse",
    "SettingsPatch",
    "SettingsSchema",
    "TagActivate",
    "TagCreate",
    "TagResponse",
    "TagUpdate",
    "ContactUpdateChallengeResponse",
    "ContactUpdateRequest",
    "ContactUpdateVerify",
]
