"""Incoming follow request endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from core import settings
from models import User
from services import relationships, views
from services.relationships.schemas import PendingRequestListResponse, RespondResponse

from .pagination import MAX_PAGE_SIZE, set_next_cursor_header

router = APIRouter(prefix="/relationships", tags=["relationships"])


@router.get("/requests", response_model=PendingRequestListResponse)
async def list_pending_requests(
    response: Response,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    cursor: Annotated[str | None, Query(max_length=256)] = None,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PendingRequestListResponse:
    page = await views.list_pending_requests(
        session,
        viewer_id=current_user.id,
        followee_id=current_user.id,
        cursor=cursor,
        limit=limit or settings.notification_page_size,
    )
    set_next_cursor_header(response, page.next_cursor)
    return PendingRequestListResponse(items=page.items, next_cursor=page.next_cursor)


@router.post("/{relationship_id}/accept", response_model=RespondResponse)
async def accept_request(
    relationship_id: str,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> RespondResponse:
    await relationships.accept_request(
        session,
        actor_id=current_user.id,
        relationship_id=relationship_id,
    )
    return RespondResponse(
        detail="Follow request accepted",
        relationship_id=relationship_id,
        state="following",
    )


@router.post("/{relationship_id}/decline", response_model=RespondResponse)
async def decline_request(
    relationship_id: str,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> RespondResponse:
    await relationships.decline_request(
        session,
        actor_id=current_user.id,
        relationship_id=relationship_id,
    )
    return RespondResponse(
        detail="Follow request declined",
        relationship_id=relationship_id,
        state="none",
    )
