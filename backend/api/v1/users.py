"""User profile and follow graph endpoints."""

from __future__ import annotations

import logging
from typing import Annotated, Any, cast

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from core import settings
from models import User
from services import relationships, views
from services.errors import Forbidden, NotFound
from services.relationships import RelationshipState
from services.relationships.schemas import (
    FollowBody,
    FollowListResponse,
    FollowStateResponse,
    FollowStats,
    FollowStatusResponse,
)
from services.relationships.store import get_user_by_username

from .pagination import MAX_PAGE_SIZE, set_next_cursor_header

router = APIRouter(tags=["users"])
logger = logging.getLogger(__name__)


class UserProfilePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    display_name: str | None = None
    is_private: bool = False


class UpdateProfileRequest(BaseModel):
    display_name: str | None = Field(default=None, max_length=80)
    is_private: bool | None = None


async def _require_user(session: AsyncSession, username: str) -> User:
    user = await get_user_by_username(session, username)
    if user is None:
        raise NotFound("User not found", code="user_not_found")
    return user


def _client_state(state: RelationshipState) -> Any:
    return cast(Any, state.client_state)


@router.get("/me", response_model=UserProfilePublic)
async def get_me(current_user: User = Depends(get_current_user)) -> UserProfilePublic:
    """Return the authenticated user's profile."""
    return UserProfilePublic.model_validate(current_user)


@router.patch("/me", response_model=UserProfilePublic)
async def update_me(
    payload: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> UserProfilePublic:
    """Update the display name or account visibility."""
    changes = payload.model_dump(exclude_unset=True)
    if "display_name" in changes:
        display_name = (changes["display_name"] or "").strip()
        current_user.display_name = display_name or None
    if changes.get("is_private") is not None:
        current_user.is_private = changes["is_private"]

    if changes:
        session.add(current_user)
        await session.commit()
        await session.refresh(current_user)
        logger.info(
            "Updated profile",
            extra={"user_id": current_user.id, "fields": sorted(changes)},
        )
    return UserProfilePublic.model_validate(current_user)


@router.get("/users/{username}", response_model=UserProfilePublic)
async def get_user_profile(
    username: str,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UserProfilePublic:
    user = await _require_user(session, username)
    return UserProfilePublic.model_validate(user)


@router.post(
    "/users/{username}/follow",
    response_model=FollowStateResponse,
    status_code=status.HTTP_200_OK,
)
async def follow_user(
    username: str,
    payload: FollowBody | None = None,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FollowStateResponse:
    target = await _require_user(session, username)
    outcome = await relationships.follow(
        session,
        actor_id=current_user.id,
        target_id=target.id,
        message=payload.message if payload is not None else None,
    )
    detail = "Followed"
    if outcome.state is RelationshipState.PENDING:
        detail = "Follow request sent"
    return FollowStateResponse(
        detail=detail,
        state=_client_state(outcome.state),
        relationship_id=outcome.relationship.id,
    )


@router.delete(
    "/users/{username}/follow",
    response_model=FollowStateResponse,
    status_code=status.HTTP_200_OK,
)
async def unfollow_user(
    username: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FollowStateResponse:
    target = await _require_user(session, username)
    previous = await relationships.get_relationship_state(
        session,
        follower_id=current_user.id,
        followee_id=target.id,
    )
    await relationships.unfollow(
        session,
        actor_id=current_user.id,
        target_id=target.id,
    )
    detail = "Unfollowed"
    if previous is RelationshipState.PENDING:
        detail = "Follow request cancelled"
    return FollowStateResponse(detail=detail, state="none")


@router.delete(
    "/users/{username}/followers/{follower_username}",
    response_model=FollowStateResponse,
    status_code=status.HTTP_200_OK,
)
async def remove_follower(
    username: str,
    follower_username: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FollowStateResponse:
    if username != current_user.username:
        raise Forbidden(
            "You can only remove your own followers",
            code="not_account_owner",
        )
    follower = await _require_user(session, follower_username)
    await relationships.remove_follower(
        session,
        actor_id=current_user.id,
        follower_id=follower.id,
    )
    return FollowStateResponse(detail="Follower removed", state="none")


@router.get("/users/{username}/follow-status", response_model=FollowStatusResponse)
async def get_follow_status(
    username: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FollowStatusResponse:
    target = await _require_user(session, username)
    state = await relationships.get_relationship_state(
        session,
        follower_id=current_user.id,
        followee_id=target.id,
    )
    reverse_state = await relationships.get_relationship_state(
        session,
        follower_id=target.id,
        followee_id=current_user.id,
    )
    return FollowStatusResponse(
        state=_client_state(state),
        follows_you=reverse_state is RelationshipState.ACCEPTED,
    )


@router.get("/users/{username}/followers", response_model=FollowListResponse)
async def list_followers(
    username: str,
    response: Response,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    cursor: Annotated[str | None, Query(max_length=256)] = None,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FollowListResponse:
    target = await _require_user(session, username)
    page = await views.list_followers(
        session,
        viewer_id=current_user.id,
        user_id=target.id,
        cursor=cursor,
        limit=limit or settings.notification_page_size,
    )
    set_next_cursor_header(response, page.next_cursor)
    return FollowListResponse(items=page.items, next_cursor=page.next_cursor)


@router.get("/users/{username}/following", response_model=FollowListResponse)
async def list_following(
    username: str,
    response: Response,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    cursor: Annotated[str | None, Query(max_length=256)] = None,
    session: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> FollowListResponse:
    target = await _require_user(session, username)
    page = await views.list_following(
        session,
        viewer_id=current_user.id,
        user_id=target.id,
        cursor=cursor,
        limit=limit or settings.notification_page_size,
    )
    set_next_cursor_header(response, page.next_cursor)
    return FollowListResponse(items=page.items, next_cursor=page.next_cursor)


@router.get("/users/{username}/follow-stats", response_model=FollowStats)
async def get_follow_stats(
    username: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FollowStats:
    target = await _require_user(session, username)
    return await views.get_follow_stats(
        session,
        viewer_id=current_user.id,
        user_id=target.id,
    )
