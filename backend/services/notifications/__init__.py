"""Notification domain services."""

from .preferences import (
    PREFERENCE_FIELDS,
    get_preferences,
    is_type_enabled,
    update_preferences,
)
from .retention import prune_read_notifications, retention_cutoff
from .schemas import (
    MarkAllReadResponse,
    NotificationActionRequest,
    NotificationActionResponse,
    NotificationItem,
    NotificationPageResponse,
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
    UnreadCountResponse,
)
from .sink import (
    MAX_NOTIFICATION_PAGE_SIZE,
    count_unread,
    delete_notification,
    emit,
    find_request_notification,
    get_notification,
    get_notification_item,
    list_for_recipient,
    mark_all_read,
    mark_read,
    mutate_action_status,
    resolve_request_notification,
)

__all__ = [
    "MarkAllReadResponse",
    "NotificationActionRequest",
    "NotificationActionResponse",
    "NotificationItem",
    "NotificationPageResponse",
    "NotificationPreferencesResponse",
    "NotificationPreferencesUpdate",
    "UnreadCountResponse",
    "MAX_NOTIFICATION_PAGE_SIZE",
    "PREFERENCE_FIELDS",
    "emit",
    "get_notification",
    "get_notification_item",
    "find_request_notification",
    "mutate_action_status",
    "resolve_request_notification",
    "mark_read",
    "mark_all_read",
    "delete_notification",
    "count_unread",
    "list_for_recipient",
    "get_preferences",
    "update_preferences",
    "is_type_enabled",
    "prune_read_notifications",
    "retention_cutoff",
]
