"""Notification sink: emission, action resolution, read state and listing."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, cast

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlalchemy.sql import ColumnElement

from models import (
    ACTIONABLE_NOTIFICATION_TYPES,
    ActionStatus,
    Notification,
    NotificationType,
    Relationship,
    RelationshipStatus,
    User,
)
from models._time import utc_now
from services.common import desc, eq, older_than_keyset
from services.cursor import Page, build_page, decode_cursor
from services.errors import InvalidOperation, InvalidTransition, NotFound

from .preferences import is_type_enabled
from .schemas import NotificationItem

MAX_NOTIFICATION_PAGE_SIZE = 100
logger = logging.getLogger(__name__)


async def emit(
    session: AsyncSession,
    *,
    recipient_id: str,
    actor_id: str | None,
    notification_type: NotificationType,
    title: str,
    message: str | None = None,
    action_url: str | None = None,
    relationship_id: str | None = None,
    payload: dict[str, Any] | None = None,
) -> str | None:
    """Stage a notification in the caller's transaction and return its id.

    Self-notifications and types the recipient disabled are expected no-ops and
    return ``None`` instead of raising. Nothing is committed here.
    """
    if actor_id is not None and actor_id == recipient_id:
        logger.debug(
            "Skipped self notification",
            extra={"recipient_id": recipient_id, "type": notification_type.value},
        )
        return None
    if not await is_type_enabled(session, recipient_id, notification_type.value):
        logger.debug(
            "Skipped disabled notification type",
            extra={"recipient_id": recipient_id, "type": notification_type.value},
        )
        return None

    action_status = None
    if notification_type.value in ACTIONABLE_NOTIFICATION_TYPES:
        action_status = ActionStatus.PENDING.value

    notification = Notification(
        recipient_id=recipient_id,
        actor_id=actor_id,
        type=notification_type.value,
        title=title,
        message=message,
        action_url=action_url,
        relationship_id=relationship_id,
        payload=payload,
        action_status=action_status,
    )
    session.add(notification)
    await session.flush()
    return notification.id


async def get_notification(
    session: AsyncSession,
    notification_id: str,
) -> Notification | None:
    result = await session.execute(
        select(Notification).where(eq(Notification.id, notification_id))
    )
    return result.scalar_one_or_none()


async def find_request_notification(
    session: AsyncSession,
    relationship_id: str,
) -> Notification | None:
    """Return the follow-request notification raised for ``relationship_id``, if any."""
    result = await session.execute(
        select(Notification)
        .where(
            eq(Notification.relationship_id, relationship_id),
            eq(Notification.type, NotificationType.FOLLOW_REQUEST.value),
        )
        .order_by(desc(cast(Any, Notification.created_at)))
        .limit(1)
    )
    return result.scalar_one_or_none()


def _resolve_action_status(
    notification: Notification,
    new_status: ActionStatus,
) -> None:
    if notification.type not in ACTIONABLE_NOTIFICATION_TYPES:
        raise InvalidTransition(
            "This notification does not support actions",
            code="not_actionable",
        )
    if new_status is ActionStatus.PENDING:
        raise InvalidTransition("Cannot reset a notification to pending")
    if notification.action_status != ActionStatus.PENDING.value:
        raise InvalidTransition(
            f"Follow request already {notification.action_status}",
            code="request_already_handled",
        )
    notification.action_status = new_status.value
    notification.action_taken_at = utc_now()


async def mutate_action_status(
    session: AsyncSession,
    notification_id: str,
    new_status: ActionStatus,
) -> Notification:
    """Resolve a pending actionable notification; never commits."""
    notification = await get_notification(session, notification_id)
    if notification is None:
        raise NotFound("Notification not found", code="notification_not_found")
    _resolve_action_status(notification, new_status)
    await session.flush()
    return notification


async def resolve_request_notification(
    session: AsyncSession,
    relationship_id: str,
    new_status: ActionStatus,
) -> Notification | None:
    """Resolve the request notification of an edge when one was delivered."""
    notification = await find_request_notification(session, relationship_id)
    if notification is None:
        return None
    _resolve_action_status(notification, new_status)
    await session.flush()
    return notification


async def _get_owned_notification(
    session: AsyncSession,
    *,
    notification_id: str,
    recipient_id: str,
) -> Notification:
    result = await session.execute(
        select(Notification).where(
            eq(Notification.id, notification_id),
            eq(Notification.recipient_id, recipient_id),
        )
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        raise NotFound("Notification not found", code="notification_not_found")
    return notification


async def mark_read(
    session: AsyncSession,
    *,
    notification_id: str,
    recipient_id: str,
) -> Notification:
    notification = await _get_owned_notification(
        session,
        notification_id=notification_id,
        recipient_id=recipient_id,
    )
    if notification.is_read:
        return notification

    notification.is_read = True
    notification.read_at = utc_now()
    await session.commit()
    return notification


async def mark_all_read(
    session: AsyncSession,
    *,
    recipient_id: str,
) -> int:
    result = await session.execute(
        update(Notification)
        .where(
            eq(Notification.recipient_id, recipient_id),
            eq(Notification.is_read, False),
        )
        .values(is_read=True, read_at=utc_now())
    )
    updated = int(cast(Any, result).rowcount or 0)
    await session.commit()
    if updated:
        logger.info(
            "Marked notifications read",
            extra={"recipient_id": recipient_id, "updated": updated},
        )
    return updated


async def delete_notification(
    session: AsyncSession,
    *,
    notification_id: str,
    recipient_id: str,
) -> None:
    await _get_owned_notification(
        session,
        notification_id=notification_id,
        recipient_id=recipient_id,
    )
    await session.execute(
        delete(Notification).where(
            eq(Notification.id, notification_id),
            eq(Notification.recipient_id, recipient_id),
        )
    )
    await session.commit()


async def count_unread(session: AsyncSession, recipient_id: str) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(Notification)
        .where(
            eq(Notification.recipient_id, recipient_id),
            eq(Notification.is_read, False),
        )
    )
    return int(result.scalar_one())


def _item_query(recipient_id: str) -> Any:
    """Notifications joined with the actor name and the still-pending request edge."""
    actor = aliased(User)
    live_request = aliased(Relationship)
    live_request_id_column = cast(ColumnElement[str | None], live_request.id)
    actor_username_column = cast(ColumnElement[str | None], actor.username)
    return (
        select(Notification, actor_username_column, live_request_id_column)
        .outerjoin(actor, eq(actor.id, Notification.actor_id))
        .outerjoin(
            live_request,
            and_(
                eq(live_request.id, Notification.relationship_id),
                eq(live_request.status, RelationshipStatus.PENDING.value),
            ),
        )
        .where(eq(Notification.recipient_id, recipient_id))
    )


async def get_notification_item(
    session: AsyncSession,
    *,
    notification_id: str,
    recipient_id: str,
) -> NotificationItem:
    result = await session.execute(
        _item_query(recipient_id).where(eq(Notification.id, notification_id))
    )
    row = result.first()
    if row is None:
        raise NotFound("Notification not found", code="notification_not_found")
    notification, actor_username, live_request_id = row
    return _build_notification_item(notification, actor_username, live_request_id)


async def list_for_recipient(
    session: AsyncSession,
    *,
    recipient_id: str,
    unread_only: bool = False,
    notification_type: NotificationType | None = None,
    cursor: str | None = None,
    limit: int = 20,
) -> Page[NotificationItem]:
    """Return one newest-first page of the recipient's notifications."""
    if limit < 1 or limit > MAX_NOTIFICATION_PAGE_SIZE:
        raise InvalidOperation(
            f"limit must be between 1 and {MAX_NOTIFICATION_PAGE_SIZE}",
            code="invalid_limit",
        )

    created_at_column = cast(ColumnElement[datetime], Notification.created_at)
    id_column = cast(ColumnElement[str], Notification.id)
    stmt = _item_query(recipient_id)
    if unread_only:
        stmt = stmt.where(eq(Notification.is_read, False))
    if notification_type is not None:
        stmt = stmt.where(eq(Notification.type, notification_type.value))
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
    rows = [
        _build_notification_item(notification, actor_username, live_request_id)
        for notification, actor_username, live_request_id in result.all()
    ]
    return build_page(rows, limit=limit, key=lambda item: (item.created_at, item.id))


def _build_notification_item(
    notification: Notification,
    actor_username: str | None,
    live_request_id: str | None,
) -> NotificationItem:
    is_actionable = (
        notification.type in ACTIONABLE_NOTIFICATION_TYPES
        and notification.action_status == ActionStatus.PENDING.value
        and live_request_id is not None
    )
    return NotificationItem(
        id=notification.id,
        type=notification.type,
        actor_id=notification.actor_id,
        actor_username=actor_username,
        title=notification.title,
        message=notification.message,
        action_url=notification.action_url,
        relationship_id=notification.relationship_id,
        payload=notification.payload,
        is_read=notification.is_read,
        read_at=notification.read_at,
        action_status=cast(Any, notification.action_status),
        is_actionable=is_actionable,
        created_at=notification.created_at,
    )
