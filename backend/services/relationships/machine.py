"""Pure follow-relationship transition planning.

``plan_transition`` decides the next edge state and the notification side
effects for an action, without touching storage. The lifecycle module applies
the resulting plan inside a single transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from models import RelationshipStatus
from services.errors import (
    AlreadyExists,
    AlreadyFollowing,
    InvalidTransition,
    NotFound,
)


class RelationshipState(str, Enum):
    NONE = "none"
    PENDING = "pending"
    ACCEPTED = "accepted"

    @classmethod
    def from_status(cls, status: str | None) -> "RelationshipState":
        if status is None:
            return cls.NONE
        if status == RelationshipStatus.PENDING.value:
            return cls.PENDING
        if status == RelationshipStatus.ACCEPTED.value:
            return cls.ACCEPTED
        raise ValueError(f"Unknown relationship status: {status!r}")

    @property
    def client_state(self) -> str:
        """Name exposed to clients for the follower's view of the edge."""
        return {
            RelationshipState.NONE: "none",
            RelationshipState.PENDING: "requested",
            RelationshipState.ACCEPTED: "following",
        }[self]


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"

    @classmethod
    def for_account(cls, is_private: bool) -> "Visibility":
        return cls.PRIVATE if is_private else cls.PUBLIC


class Action(str, Enum):
    FOLLOW = "follow"
    ACCEPT = "accept"
    DECLINE = "decline"
    UNFOLLOW = "unfollow"
    REMOVE = "remove"


class Effect(str, Enum):
    EMIT_NEW_FOLLOWER = "emit_new_follower"
    EMIT_FOLLOW_REQUEST = "emit_follow_request"
    EMIT_FOLLOW_ACCEPTED = "emit_follow_accepted"
    RESOLVE_REQUEST_ACCEPTED = "resolve_request_accepted"
    RESOLVE_REQUEST_DECLINED = "resolve_request_declined"


@dataclass(frozen=True, slots=True)
class Transition:
    current: RelationshipState
    action: Action
    next_state: RelationshipState
    effects: tuple[Effect, ...] = ()

    @property
    def deletes_row(self) -> bool:
        return (
            self.current is not RelationshipState.NONE
            and self.next_state is RelationshipState.NONE
        )

    @property
    def creates_row(self) -> bool:
        return (
            self.current is RelationshipState.NONE
            and self.next_state is not RelationshipState.NONE
        )


def _plan_follow(current: RelationshipState, visibility: Visibility | None) -> Transition:
    if current is RelationshipState.ACCEPTED:
        raise AlreadyFollowing("Already following this user")
    if current is RelationshipState.PENDING:
        raise AlreadyExists("Follow request already pending", code="request_pending")
    if visibility is None:
        raise ValueError("visibility is required to plan a follow")

    if visibility is Visibility.PRIVATE:
        return Transition(
            current=current,
            action=Action.FOLLOW,
            next_state=RelationshipState.PENDING,
            effects=(Effect.EMIT_FOLLOW_REQUEST,),
        )
    return Transition(
        current=current,
        action=Action.FOLLOW,
        next_state=RelationshipState.ACCEPTED,
        effects=(Effect.EMIT_NEW_FOLLOWER,),
    )


def _plan_response(current: RelationshipState, action: Action) -> Transition:
    if current is RelationshipState.NONE:
        raise NotFound("Follow request no longer exists", code="request_not_found")
    if current is RelationshipState.ACCEPTED:
        raise InvalidTransition(
            "Follow request was already accepted",
            code="request_already_handled",
        )

    if action is Action.ACCEPT:
        return Transition(
            current=current,
            action=action,
            next_state=RelationshipState.ACCEPTED,
            effects=(Effect.RESOLVE_REQUEST_ACCEPTED, Effect.EMIT_FOLLOW_ACCEPTED),
        )
    return Transition(
        current=current,
        action=action,
        next_state=RelationshipState.NONE,
        effects=(Effect.RESOLVE_REQUEST_DECLINED,),
    )


def _plan_removal(current: RelationshipState, action: Action) -> Transition:
    if current is RelationshipState.NONE:
        raise NotFound("Not following this user", code="relationship_not_found")
    return Transition(
        current=current,
        action=action,
        next_state=RelationshipState.NONE,
    )


def plan_transition(
    current: RelationshipState,
    action: Action,
    visibility: Visibility | None = None,
) -> Transition:
    """Return the transition for ``action`` on an edge in ``current`` state.

    ``visibility`` is the followee's account visibility and only matters for
    ``follow``. Disallowed combinations raise the matching service error.
    """
    if action is Action.FOLLOW:
        return _plan_follow(current, visibility)
    if action in (Action.ACCEPT, Action.DECLINE):
        return _plan_response(current, action)
    return _plan_removal(current, action)


__all__ = [
    "Action",
    "Effect",
    "RelationshipState",
    "Transition",
    "Visibility",
    "plan_transition",
]
