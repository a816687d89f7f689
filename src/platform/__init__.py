"""Platform-specific functionality for okyimages."""

from .notifications import NotificationType, notify_outcome, send_notification

__all__ = [
    "NotificationType",
    "notify_outcome",
    "send_notification",
]
