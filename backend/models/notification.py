"""User-facing notification log."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    func,
    text,
)
from sqlmodel import Field, SQLModel

from ._time import utc_now


class NotificationType(str, Enum):
    FOLLOW_REQUEST = "follow_request"
    FOLLOW_ACCEPTED = "follow_accepted"
    NEW_FOLLOWER = "new_follower"
    LIKE = "like"
    COMMENT = "comment"
    COMMENT_REPLY = "comment_reply"
    MENTION = "mention"
    TAG = "tag"
    ACHIEVEMENT = "achievement"
    SYSTEM_ANNOUNCEMENT = "system_announcement"
    CLUB_UPDATE = "club_update"
    TEAM_UPDATE = "team_update"


class ActionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


ACTIONABLE_NOTIFICATION_TYPES = frozenset({NotificationType.FOLLOW_REQUEST.value})


def _sql_in(values: list[str]) -> str:
    return ", ".join(f"'{value}'" for value in values)


class Notification(SQLModel, table=True):
    """An event delivered to ``recipient_id``; only read and action state ever change."""

    __tablename__ = "notifications"
    __table_args__ = (
        CheckConstraint(
            f"type IN ({_sql_in([item.value for item in NotificationType])})",
            name="ck_notifications_type",
        ),
        CheckConstraint(
            f"action_status IS NULL OR action_status IN ({_sql_in([item.value for item in ActionStatus])})",
            name="ck_notifications_action_status",
        ),
        Index(
            "ix_notifications_recipient_created_at",
            "recipient_id",
            "created_at",
            "id",
        ),
        Index(
            "ix_notifications_recipient_is_read",
            "recipient_id",
            "is_read",
        ),
        Index("ix_notifications_relationship_id", "relationship_id"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    recipient_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    actor_id: str | None = Field(
        default=None,
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=True,
        ),
    )
    type: str = Field(sa_column=Column(String(32), nullable=False))
    # Plain column: the notification outlives the edge it was raised for.
    relationship_id: str | None = Field(
        default=None, sa_column=Column(String(36), nullable=True)
    )
    payload: dict[str, Any] | None = Field(
        default=None, sa_column=Column(JSON, nullable=True)
    )
    title: str = Field(sa_column=Column(String(255), nullable=False))
    message: str | None = Field(
        default=None, sa_column=Column(Text, nullable=True)
    )
    action_url: str | None = Field(
        default=None, sa_column=Column(String(255), nullable=True)
    )
    is_read: bool = Field(
        default=False,
        sa_column=Column(
            Boolean,
            nullable=False,
            server_default=text("false"),
        ),
    )
    read_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    action_status: str | None = Field(
        default=None, sa_column=Column(String(16), nullable=True)
    )
    action_taken_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    created_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True),
            default=utc_now,
            server_default=func.now(),
            nullable=False,
        )
    )
