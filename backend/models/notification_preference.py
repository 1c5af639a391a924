"""Per-user notification type toggles."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, func, text
from sqlmodel import Field, SQLModel

from ._time import utc_now


def _enabled_column() -> Column:
    return Column(Boolean, nullable=False, server_default=text("true"))


class NotificationPreference(SQLModel, table=True):
    """Which notification types a user wants delivered; missing rows mean all enabled."""

    __tablename__ = "notification_preferences"

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    user_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        )
    )
    follow_request_enabled: bool = Field(default=True, sa_column=_enabled_column())
    follow_accepted_enabled: bool = Field(default=True, sa_column=_enabled_column())
    new_follower_enabled: bool = Field(default=True, sa_column=_enabled_column())
    like_enabled: bool = Field(default=True, sa_column=_enabled_column())
    comment_enabled: bool = Field(default=True, sa_column=_enabled_column())
    comment_reply_enabled: bool = Field(default=True, sa_column=_enabled_column())
    mention_enabled: bool = Field(default=True, sa_column=_enabled_column())
    tag_enabled: bool = Field(default=True, sa_column=_enabled_column())
    achievement_enabled: bool = Field(default=True, sa_column=_enabled_column())
    system_announcement_enabled: bool = Field(default=True, sa_column=_enabled_column())
    club_update_enabled: bool = Field(default=True, sa_column=_enabled_column())
    team_update_enabled: bool = Field(default=True, sa_column=_enabled_column())
    updated_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True),
            default=utc_now,
            server_default=func.now(),
            onupdate=utc_now,
            nullable=False,
        )
    )

    def is_enabled(self, notification_type: str) -> bool:
        return bool(getattr(self, f"{notification_type}_enabled", True))
