"""User domain model."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String, func, text
from sqlmodel import Field, SQLModel

from ._time import utc_now


class User(SQLModel, table=True):
    """Registered account; the identity every relationship and notification points at."""

    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), sa_column=Column(String(36), primary_key=True))
    username: str = Field(
        sa_column=Column(String(30), unique=True, nullable=False, index=True)
    )
    display_name: str | None = Field(
        default=None, sa_column=Column(String(80), nullable=True)
    )
    password_hash: str = Field(
        sa_column=Column(String(255), nullable=False)
    )
    # Private accounts receive follow requests instead of direct follows.
    is_private: bool = Field(
        default=False,
        sa_column=Column(
            Boolean,
            nullable=False,
            server_default=text("false"),
        ),
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

    @property
    def label(self) -> str:
        return self.display_name or self.username
