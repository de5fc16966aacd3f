"""
Notifications Module

In-app notifications and transfer chat system messages sent after state changes.
"""

from .service import NotificationService, get_notification_service

__all__ = [
    "NotificationService",
    "get_notification_service",
]
