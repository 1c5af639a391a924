"""Relationship store access: one row per ordered (follower, followee) pair."""

from __future__ import annotations

from typing import Any, cast

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from models import Relationship, RelationshipStatus, User
from models._time import utc_now
from services.common import eq

from .machine import RelationshipState


async def get_user(session: AsyncSession, user_id: str) -> User | None:
    return await session.get(User, user_id)


async def get_user_by_username(session: AsyncSession, username: str) -> User | None:
    result = await session.execute(select(User).where(eq(User.username, username)))
    return result.scalar_one_or_none()


async def get_relationship(
    session: AsyncSession,
    *,
    follower_id: str,
    followee_id: str,
) -> Relationship | None:
    result = await session.execute(
        select(Relationship)
        .where(
            eq(Relationship.follower_id, follower_id),
            eq(Relationship.followee_id, followee_id),
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_relationship_by_id(
    session: AsyncSession,
    relationship_id: str,
) -> Relationship | None:
    result = await session.execute(
        select(Relationship)
        .where(eq(Relationship.id, relationship_id))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_relationship_state(
    session: AsyncSession,
    *,
    follower_id: str,
    followee_id: str,
) -> RelationshipState:
    status_column = cast(ColumnElement[str], Relationship.status)
    result = await session.execute(
        select(status_column).where(
            eq(Relationship.follower_id, follower_id),
            eq(Relationship.followee_id, followee_id),
        )
    )
    return RelationshipState.from_status(result.scalar_one_or_none())


async def is_following(
    session: AsyncSession,
    *,
    follower_id: str,
    followee_id: str,
) -> bool:
    state = await get_relationship_state(
        session,
        follower_id=follower_id,
        followee_id=followee_id,
    )
    return state is RelationshipState.ACCEPTED


async def insert_relationship(
    session: AsyncSession,
    *,
    follower_id: str,
    followee_id: str,
    state: RelationshipState,
    message: str | None = None,
) -> Relationship:
    """Stage a new edge and flush so the uniqueness constraint is checked now."""
    relationship = Relationship(
        follower_id=follower_id,
        followee_id=followee_id,
        status=state.value,
        message=message,
    )
    session.add(relationship)
    await session.flush()
    return relationship


async def promote_pending(session: AsyncSession, relationship_id: str) -> bool:
    """Flip a pending edge to accepted; False when no pending row matched."""
    result = await session.execute(
        update(Relationship)
        .where(
            eq(Relationship.id, relationship_id),
            eq(Relationship.status, RelationshipStatus.PENDING.value),
        )
        .values(status=RelationshipStatus.ACCEPTED.value, updated_at=utc_now())
    )
    return int(cast(Any, result).rowcount or 0) == 1


async def delete_relationship(
    session: AsyncSession,
    relationship_id: str,
    *,
    expected_state: RelationshipState | None = None,
) -> bool:
    """Delete an edge, optionally only while it is still in ``expected_state``."""
    stmt = delete(Relationship).where(eq(Relationship.id, relationship_id))
    if expected_state is not None and expected_state is not RelationshipState.NONE:
        stmt = stmt.where(eq(Relationship.status, expected_state.value))
    result = await session.execute(stmt)
    return int(cast(Any, result).rowcount or 0) == 1


__all__ = [
    "get_user",
    "get_user_by_username",
    "get_relationship",
    "get_relationship_by_id",
    "get_relationship_state",
    "is_following",
    "insert_relationship",
    "promote_pending",
    "delete_relationship",
]
