"""Follow graph API payload schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from models import MAX_FOLLOW_MESSAGE_LENGTH

ClientRelationshipState = Literal["none", "requested", "following"]


class FollowBody(BaseModel):
    message: str | None = Field(default=None, max_length=MAX_FOLLOW_MESSAGE_LENGTH)


class FollowStateResponse(BaseModel):
    """Server-truth state of the viewer's edge to a profile after any mutation."""

    detail: str
    state: ClientRelationshipState
    relationship_id: str | None = None


class FollowStatusResponse(BaseModel):
    state: ClientRelationshipState
    follows_you: bool


class FollowListItem(BaseModel):
    relationship_id: str
    user_id: str
    username: str
    display_name: str | None = None
    followed_at: datetime


class FollowListResponse(BaseModel):
    items: list[FollowListItem]
    next_cursor: str | None = None


class PendingRequestItem(BaseModel):
    relationship_id: str
    requester_id: str
    requester_username: str
    requester_display_name: str | None = None
    message: str | None = None
    requested_at: datetime


class PendingRequestListResponse(BaseModel):
    items: list[PendingRequestItem]
    next_cursor: str | None = None


class FollowStats(BaseModel):
    followers_count: int
    following_count: int
    # Only reported to the account owner.
    pending_requests_count: int | None = None
    state: ClientRelationshipState
    follows_you: bool


class RespondResponse(BaseModel):
    detail: str
    relationship_id: str
    state: ClientRelationshipState
