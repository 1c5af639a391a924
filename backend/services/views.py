"""Read-side projections of the follow graph and notification log."""

from __future__ import annotations

from datetime import datetime
from typing import Any, cast

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from models import Relationship, RelationshipStatus, User
from services.common import desc, eq, older_than_keyset
from services.cursor import Page, build_page, decode_cursor
from services.errors import Forbidden, InvalidOperation, NotFound
from services.notifications.sink import count_unread
from services.relationships.schemas import (
    FollowListItem,
    FollowStats,
    PendingRequestItem,
)
from services.relationships.store import get_relationship_state, get_user, is_following

MAX_PAGE_SIZE = 100


def _check_limit(limit: int) -> None:
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise InvalidOperation(
            f"limit must be between 1 and {MAX_PAGE_SIZE}",
            code="invalid_limit",
        )


async def can_view_relationships(
    session: AsyncSession,
    *,
    viewer_id: str,
    account: User,
) -> bool:
    if viewer_id == account.id:
        return True
    if not account.is_private:
        return True
    return await is_following(
        session,
        follower_id=viewer_id,
        followee_id=account.id,
    )


async def _require_visible_account(
    session: AsyncSession,
    *,
    viewer_id: str,
    user_id: str,
) -> User:
    account = await get_user(session, user_id)
    if account is None:
        raise NotFound("User not found", code="user_not_found")
    if not await can_view_relationships(session, viewer_id=viewer_id, account=account):
        raise Forbidden("This account is private", code="private_account")
    return account


async def _list_edges(
    session: AsyncSession,
    *,
    anchor_column: Any,
    anchor_id: str,
    other_column: Any,
    status: RelationshipStatus,
    cursor: str | None,
    limit: int,
) -> list[tuple[Relationship, User]]:
    created_at_column = cast(ColumnElement[datetime], Relationship.created_at)
    id_column = cast(ColumnElement[str], Relationship.id)
    stmt = (
        select(Relationship, User)
        .join(User, eq(User.id, other_column))
        .where(
            eq(anchor_column, anchor_id),
            eq(Relationship.status, status.value),
        )
    )
    if cursor is not None:
        position = decode_cursor(cursor)
        stmt = stmt.where(
            older_than_keyset(
                created_at_column,
                id_column,
                created_at=position.created_at,
                row_id=position.row_id,
            )
        )
    result = await session.execute(
        stmt.order_by(desc(created_at_column), desc(id_column)).limit(limit + 1)
    )
    return [(relationship, user) for relationship, user in result.all()]


def _follow_item(relationship: Relationship, user: User) -> FollowListItem:
    return FollowListItem(
        relationship_id=relationship.id,
        user_id=user.id,
        username=user.username,
        display_name=user.display_name,
        followed_at=relationship.created_at,
    )


def _page_key(item: FollowListItem) -> tuple[datetime, str]:
    return item.followed_at, item.relationship_id


async def list_followers(
    session: AsyncSession,
    *,
    viewer_id: str,
    user_id: str,
    cursor: str | None = None,
    limit: int = 20,
) -> Page[FollowListItem]:
    """Accepted followers of ``user_id``, newest edge first."""
    _check_limit(limit)
    await _require_visible_account(session, viewer_id=viewer_id, user_id=user_id)
    rows = await _list_edges(
        session,
        anchor_column=Relationship.followee_id,
        anchor_id=user_id,
        other_column=Relationship.follower_id,
        status=RelationshipStatus.ACCEPTED,
        cursor=cursor,
        limit=limit,
    )
    items = [_follow_item(relationship, user) for relationship, user in rows]
    return build_page(items, limit=limit, key=_page_key)


async def list_following(
    session: AsyncSession,
    *,
    viewer_id: str,
    user_id: str,
    cursor: str | None = None,
    limit: int = 20,
) -> Page[FollowListItem]:
    """Accounts ``user_id`` follows with an accepted edge, newest edge first."""
    _check_limit(limit)
    await _require_visible_account(session, viewer_id=viewer_id, user_id=user_id)
    rows = await _list_edges(
        session,
        anchor_column=Relationship.follower_id,
        anchor_id=user_id,
        other_column=Relationship.followee_id,
        status=RelationshipStatus.ACCEPTED,
        cursor=cursor,
        limit=limit,
    )
    items = [_follow_item(relationship, user) for relationship, user in rows]
    return build_page(items, limit=limit, key=_page_key)


async def list_pending_requests(
    session: AsyncSession,
    *,
    viewer_id: str,
    followee_id: str,
    cursor: str | None = None,
    limit: int = 20,
) -> Page[PendingRequestItem]:
    """Incoming pending requests; only the followee may list them."""
    if viewer_id != followee_id:
        raise InvalidOperation(
            "Only the account owner can view pending requests",
            code="not_account_owner",
        )
    _check_limit(limit)
    rows = await _list_edges(
        session,
        anchor_column=Relationship.followee_id,
        anchor_id=followee_id,
        other_column=Relationship.follower_id,
        status=RelationshipStatus.PENDING,
        cursor=cursor,
        limit=limit,
    )
    items = [
        PendingRequestItem(
            relationship_id=relationship.id,
            requester_id=user.id,
            requester_username=user.username,
            requester_display_name=user.display_name,
            message=relationship.message,
            requested_at=relationship.created_at,
        )
        for relationship, user in rows
    ]
    return build_page(
        items,
        limit=limit,
        key=lambda item: (item.requested_at, item.relationship_id),
    )


async def count_unread_notifications(
    session: AsyncSession,
    *,
    viewer_id: str,
    user_id: str,
) -> int:
    if viewer_id != user_id:
        raise InvalidOperation(
            "Only the account owner can view unread notifications",
            code="not_account_owner",
        )
    return await count_unread(session, user_id)


async def _count_edges(
    session: AsyncSession,
    *,
    anchor_column: Any,
    anchor_id: str,
    status: RelationshipStatus,
) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(Relationship)
        .where(
            eq(anchor_column, anchor_id),
            eq(Relationship.status, status.value),
        )
    )
    return int(result.scalar_one())


async def get_follow_stats(
    session: AsyncSession,
    *,
    viewer_id: str,
    user_id: str,
) -> FollowStats:
    """Accepted edge counts for ``user_id`` plus the viewer's edges with them."""
    account = await get_user(session, user_id)
    if account is None:
        raise NotFound("User not found", code="user_not_found")

    followers_count = await _count_edges(
        session,
        anchor_column=Relationship.followee_id,
        anchor_id=user_id,
        status=RelationshipStatus.ACCEPTED,
    )
    following_count = await _count_edges(
        session,
        anchor_column=Relationship.follower_id,
        anchor_id=user_id,
        status=RelationshipStatus.ACCEPTED,
    )
    pending_requests_count = None
    if viewer_id == user_id:
        pending_requests_count = await _count_edges(
            session,
            anchor_column=Relationship.followee_id,
            anchor_id=user_id,
            status=RelationshipStatus.PENDING,
        )

    state = await get_relationship_state(
        session, follower_id=viewer_id, followee_id=user_id
    )
    follows_you = await is_following(
        session, follower_id=user_id, followee_id=viewer_id
    )
    return FollowStats(
        followers_count=followers_count,
        following_count=following_count,
        pending_requests_count=pending_requests_count,
        state=cast(Any, state.client_state),
        follows_you=follows_you,
    )


__all__ = [
    "MAX_PAGE_SIZE",
    "can_view_relationships",
    "count_unread_notifications",
    "get_follow_stats",
    "list_followers",
    "list_following",
    "list_pending_requests",
]
