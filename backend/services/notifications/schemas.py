"""Notification API payload schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class NotificationItem(BaseModel):
    id: str
    type: str
    actor_id: str | None
    actor_username: str | None
    title: str
    message: str | None = None
    action_url: str | None = None
    relationship_id: str | None = None
    payload: dict[str, Any] | None = None
    is_read: bool
    read_at: datetime | None = None
    action_status: Literal["pending", "accepted", "declined"] | None = None
    # False once the underlying request was resolved, cancelled or removed.
    is_actionable: bool = False
    created_at: datetime


class NotificationPageResponse(BaseModel):
    notifications: list[NotificationItem]
    next_cursor: str | None = None
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated_count: int


class NotificationActionRequest(BaseModel):
    action: Literal["accept", "decline"]


class NotificationActionResponse(BaseModel):
    detail: str
    action_status: Literal["accepted", "declined"]
    relationship_state: Literal["none", "requested", "following"]


class NotificationPreferencesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    follow_request_enabled: bool
    follow_accepted_enabled: bool
    new_follower_enabled: bool
    like_enabled: bool
    comment_enabled: bool
    comment_reply_enabled: bool
    mention_enabled: bool
    tag_enabled: bool
    achievement_enabled: bool
    system_announcement_enabled: bool
    club_update_enabled: bool
    team_update_enabled: bool


class NotificationPreferencesUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    follow_request_enabled: bool | None = None
    follow_accepted_enabled: bool | None = None
    new_follower_enabled: bool | None = None
    like_enabled: bool | None = None
    comment_enabled: bool | None = None
    comment_reply_enabled: bool | None = None
    mention_enabled: bool | None = None
    tag_enabled: bool | None = None
    achievement_enabled: bool | None = None
    system_announcement_enabled: bool | None = None
    club_update_enabled: bool | None = None
    team_update_enabled: bool | None = None
