"""SQLModel models package."""

from .notification import (
    ACTIONABLE_NOTIFICATION_TYPES,
    ActionStatus,
    Notification,
    NotificationType,
)
from .notification_preference import NotificationPreference
from .relationship import MAX_FOLLOW_MESSAGE_LENGTH, Relationship, RelationshipStatus
from .user import User

__all__ = [
    "User",
    "Relationship",
    "RelationshipStatus",
    "MAX_FOLLOW_MESSAGE_LENGTH",
    "Notification",
    "NotificationType",
    "ActionStatus",
    "ACTIONABLE_NOTIFICATION_TYPES",
    "NotificationPreference",
]
