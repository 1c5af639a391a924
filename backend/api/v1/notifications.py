"""Notification inbox endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from core import settings
from models import NotificationType, User
from services import relationships, views
from services.notifications import (
    MarkAllReadResponse,
    NotificationActionRequest,
    NotificationActionResponse,
    NotificationItem,
    NotificationPageResponse,
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
    UnreadCountResponse,
    delete_notification,
    get_notification_item,
    get_preferences,
    list_for_recipient,
    mark_all_read,
    mark_read,
    update_preferences,
)
from services.notifications.sink import MAX_NOTIFICATION_PAGE_SIZE

from .pagination import set_next_cursor_header

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationPageResponse)
async def list_notifications(
    response: Response,
    limit: Annotated[int | None, Query(ge=1, le=MAX_NOTIFICATION_PAGE_SIZE)] = None,
    cursor: Annotated[str | None, Query(max_length=256)] = None,
    unread_only: bool = False,
    notification_type: Annotated[NotificationType | None, Query(alias="type")] = None,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationPageResponse:
    page = await list_for_recipient(
        session,
        recipient_id=current_user.id,
        unread_only=unread_only,
        notification_type=notification_type,
        cursor=cursor,
        limit=limit or settings.notification_page_size,
    )
    unread_count = await views.count_unread_notifications(
        session,
        viewer_id=current_user.id,
        user_id=current_user.id,
    )
    set_next_cursor_header(response, page.next_cursor)
    return NotificationPageResponse(
        notifications=page.items,
        next_cursor=page.next_cursor,
        unread_count=unread_count,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UnreadCountResponse:
    unread_count = await views.count_unread_notifications(
        session,
        viewer_id=current_user.id,
        user_id=current_user.id,
    )
    return UnreadCountResponse(unread_count=unread_count)


@router.post("/read-all", response_model=MarkAllReadResponse)
async def read_all_notifications(
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MarkAllReadResponse:
    updated = await mark_all_read(session, recipient_id=current_user.id)
    return MarkAllReadResponse(updated_count=updated)


@router.get("/preferences", response_model=NotificationPreferencesResponse)
async def read_preferences(
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationPreferencesResponse:
    preferences = await get_preferences(session, current_user.id)
    return NotificationPreferencesResponse.model_validate(preferences)


@router.patch("/preferences", response_model=NotificationPreferencesResponse)
async def patch_preferences(
    payload: NotificationPreferencesUpdate,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationPreferencesResponse:
    changes = payload.model_dump(exclude_none=True)
    preferences = await update_preferences(session, current_user.id, changes)
    return NotificationPreferencesResponse.model_validate(preferences)


@router.post("/{notification_id}/read", response_model=NotificationItem)
async def read_notification(
    notification_id: str,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationItem:
    await mark_read(
        session,
        notification_id=notification_id,
        recipient_id=current_user.id,
    )
    return await get_notification_item(
        session,
        notification_id=notification_id,
        recipient_id=current_user.id,
    )


@router.post("/{notification_id}/action", response_model=NotificationActionResponse)
async def act_on_notification(
    notification_id: str,
    payload: NotificationActionRequest,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationActionResponse:
    relationship = await relationships.respond_via_notification(
        session,
        actor_id=current_user.id,
        notification_id=notification_id,
        decision=payload.action,
    )
    if payload.action == "accept":
        return NotificationActionResponse(
            detail="Follow request accepted",
            action_status="accepted",
            relationship_state="following" if relationship is not None else "none",
        )
    return NotificationActionResponse(
        detail="Follow request declined",
        action_status="declined",
        relationship_state="none",
    )


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_notification(
    notification_id: str,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Response:
    await delete_notification(
        session,
        notification_id=notification_id,
        recipient_id=current_user.id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
