"""
Desktop notifications for okyimages.

On macOS a native notification is posted through NSUserNotificationCenter
(pyobjc). Elsewhere, or when pyobjc is not installed, the message is only
logged.
"""

import logging
import sys
from enum import Enum

from src.capture.orchestrator import CaptureOutcome
from src.core.logging import log_exception

logger = logging.getLogger(__name__)

APP_TITLE = "OKY Images"


class NotificationType(str, Enum):
    """Types of notifications."""

    INFO = "info"
    ERROR = "error"
    SUCCESS = "success"


def send_notification(
    title: str,
    message: str,
    subtitle: str | None = None,
    sound: bool = False,
    notification_type: NotificationType = NotificationType.INFO,
) -> bool:
    """
    Post a desktop notification.

    Args:
        title: Notification title
        message: Main notification message
        subtitle: Optional subtitle
        sound: Whether to play the default sound
        notification_type: Type of notification (for logging)

    Returns:
        True if a native notification was delivered
    """
    logger.debug(f"Notification ({notification_type.value}): {title} - {message}")

    if sys.platform != "darwin":
        return False

    try:
        # Import here to avoid issues on non-macOS platforms
        from Foundation import NSUserNotification, NSUserNotificationCenter
    except ImportError:
        logger.debug("pyobjc Foundation not available - notifications disabled")
        return False

    try:
        notification = NSUserNotification.alloc().init()
        notification.setTitle_(title)
        notification.setInformativeText_(message)
        if subtitle:
            notification.setSubtitle_(subtitle)
        if sound:
            notification.setSoundName_("default")

        center = NSUserNotificationCenter.defaultUserNotificationCenter()
        center.deliverNotification_(notification)
        return True
    except Exception as e:
        log_exception(logger, "Failed to send notification", e, level=logging.WARNING)
        return False


def notify_outcome(outcome: CaptureOutcome) -> bool:
    """
    Tell the user how a capture ended.

    Args:
        outcome: Result of a capture invocation

    Returns:
        True if a native notification was delivered
    """
    if outcome.success:
        return send_notification(
            title=APP_TITLE,
            message="Image uploaded",
            subtitle=outcome.display_name,
            notification_type=NotificationType.SUCCESS,
        )

    return send_notification(
        title=f"{APP_TITLE} - Upload failed",
        message=outcome.message,
        subtitle=outcome.display_name,
        sound=True,
        notification_type=NotificationType.ERROR,
    )


if __name__ == "__main__":
    import fire

    def test(message: str = "This is a test notification"):
        """Send a test notification."""
        return {"success": send_notification(APP_TITLE, message, subtitle="Test")}

    fire.Fire({"test": test})
