"""Notification hooks invoked when a refresh finds new content."""

from .hooks import (
    CallbackNotificationHook,
    CompositeNotificationHook,
    LoggingNotificationHook,
    NewContentEvent,
    NotificationHook,
    NullNotificationHook,
    WebhookNotificationHook,
)

__all__ = [
    "CallbackNotificationHook",
    "CompositeNotificationHook",
    "LoggingNotificationHook",
    "NewContentEvent",
    "NotificationHook",
    "NullNotificationHook",
    "WebhookNotificationHook",
]
