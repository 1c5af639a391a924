"""Follow relationship lifecycle services."""

from .lifecycle import (
    FollowOutcome,
    accept_request,
    decline_request,
    follow,
    get_relationship_state,
    remove_follower,
    respond_to_request,
    respond_via_notification,
    unfollow,
)
from .machine import (
    Action,
    Effect,
    RelationshipState,
    Transition,
    Visibility,
    plan_transition,
)

__all__ = [
    "Action",
    "Effect",
    "FollowOutcome",
    "RelationshipState",
    "Transition",
    "Visibility",
    "accept_request",
    "decline_request",
    "follow",
    "get_relationship_state",
    "plan_transition",
    "remove_follower",
    "respond_to_request",
    "respond_via_notification",
    "unfollow",
]
