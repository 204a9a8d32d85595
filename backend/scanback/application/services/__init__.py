from .code_generator import CodeGenerator
from .notification_outbox import NotificationOutbox
from .public_lookup_cache import CacheStats, PublicLookupCache
from .lifecycle_service import TagLifecycleService
from .contact_update_service import ContactUpdateService, generate_otp

__all__ = [
    "CodeGenerator",
    "NotificationOutbox",
    "CacheStats",
    "PublicLookupCache",
    "TagLifecycleService",
    "ContactUpdateService",
    "generate_otp",
]
