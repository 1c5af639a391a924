"""Directed follow edge between two users."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    func,
)
from sqlmodel import Field, SQLModel

from ._time import utc_now

MAX_FOLLOW_MESSAGE_LENGTH = 280


class RelationshipStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"


class Relationship(SQLModel, table=True):
    """A follower -> followee edge; declines and unfollows delete the row."""

    __tablename__ = "relationships"
    __table_args__ = (
        UniqueConstraint(
            "follower_id",
            "followee_id",
            name="ux_relationships_follower_followee",
        ),
        CheckConstraint(
            "follower_id <> followee_id",
            name="ck_relationships_no_self_follow",
        ),
        CheckConstraint(
            "status IN ('pending', 'accepted')",
            name="ck_relationships_status",
        ),
        Index(
            "ix_relationships_followee_status_created_at",
            "followee_id",
            "status",
            "created_at",
        ),
        Index(
            "ix_relationships_follower_status_created_at",
            "follower_id",
            "status",
            "created_at",
        ),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    follower_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    followee_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    status: str = Field(
        sa_column=Column(String(16), nullable=False)
    )
    message: str | None = Field(
        default=None,
        sa_column=Column(String(MAX_FOLLOW_MESSAGE_LENGTH), nullable=True),
    )
    created_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True),
            default=utc_now,
            server_default=func.now(),
            nullable=False,
        )
    )
    updated_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True),
            default=utc_now,
            server_default=func.now(),
            onupdate=utc_now,
            nullable=False,
        )
    )
