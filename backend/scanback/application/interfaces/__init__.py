from .record_store import RecordStore
from .pending_update_store import PendingUpdateStore
from .notification_dispatcher import NotificationDispatcher
from .authorization_check import AuthorizationCheck

__all__ = [
    "RecordStore",
    "PendingUpdateStore",
    "NotificationDispatcher",
    "AuthorizationCheck",
]
