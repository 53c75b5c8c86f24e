"""In-app notifications."""

from secure_retire.notifications.center import (
    NotificationCenter,
    NotificationPoller,
    renewal_message,
)

__all__ = [
    "NotificationCenter",
    "NotificationPoller",
    "renewal_message",
]
