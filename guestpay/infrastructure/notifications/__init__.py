"""Notification dispatch adapters."""

from .dispatcher import (
    HttpNotificationDispatcher,
    LoggingNotificationDispatcher,
    NotificationDispatcher,
    NotificationError,
)

__all__ = [
    "HttpNotificationDispatcher",
    "LoggingNotificationDispatcher",
    "NotificationDispatcher",
    "NotificationError",
]
