from .log_dispatcher import LoggingNotificationDispatcher
from .webhook_dispatcher import WebhookNotificationDispatcher

__all__ = ["LoggingNotificationDispatcher", "WebhookNotificationDispatcher"]
