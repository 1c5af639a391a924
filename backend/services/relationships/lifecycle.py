"""Transactional follow lifecycle operations.

Every operation plans its transition with ``plan_transition``, applies the
store writes and notification effects on the caller's session, and commits
once. Any failure rolls the whole unit back so no partial state is visible.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from db.errors import (
    is_check_violation,
    is_foreign_key_violation,
    is_unique_violation,
)
from models import (
    MAX_FOLLOW_MESSAGE_LENGTH,
    ACTIONABLE_NOTIFICATION_TYPES,
    ActionStatus,
    NotificationType,
    Relationship,
    User,
)
from services.errors import (
    AlreadyExists,
    Forbidden,
    InvalidOperation,
    InvalidTransition,
    NotFound,
    SocialGraphError,
)
from services.notifications.sink import (
    emit,
    get_notification,
    resolve_request_notification,
)

from . import store
from .machine import (
    Action,
    Effect,
    RelationshipState,
    Transition,
    Visibility,
    plan_transition,
)

FOLLOW_REQUESTS_URL = "/app/followers?tab=requests"
logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FollowOutcome:
    relationship: Relationship
    state: RelationshipState
    notification_id: str | None = None


def profile_url(user_id: str) -> str:
    return f"/athlete/{user_id}"


def _parse_decision(decision: Action | str) -> Action:
    try:
        action = Action(decision)
    except ValueError as exc:
        raise InvalidOperation(
            "decision must be 'accept' or 'decline'",
            code="invalid_decision",
        ) from exc
    if action not in (Action.ACCEPT, Action.DECLINE):
        raise InvalidOperation(
            "decision must be 'accept' or 'decline'",
            code="invalid_decision",
        )
    return action


def _normalize_message(message: str | None) -> str | None:
    if message is None:
        return None
    normalized = message.strip()
    if not normalized:
        return None
    if len(normalized) > MAX_FOLLOW_MESSAGE_LENGTH:
        raise InvalidOperation(
            f"message must be at most {MAX_FOLLOW_MESSAGE_LENGTH} characters",
            code="message_too_long",
        )
    return normalized


def _translate_integrity_error(exc: IntegrityError) -> SocialGraphError | None:
    if is_unique_violation(exc):
        return AlreadyExists(
            "A relationship between these users already exists",
            code="relationship_exists",
        )
    if is_check_violation(exc):
        return InvalidOperation("Relationship violates a store constraint")
    if is_foreign_key_violation(exc):
        return InvalidOperation("Unknown user", code="unknown_user")
    return None


@asynccontextmanager
async def _transition_scope(
    session: AsyncSession,
    operation: str,
    **context: Any,
) -> AsyncIterator[None]:
    """Commit the enclosed writes once, or roll all of them back."""
    try:
        yield
        await session.commit()
    except SocialGraphError:
        await session.rollback()
        raise
    except IntegrityError as exc:
        await session.rollback()
        logger.warning(
            "Rolled back relationship transition after integrity error",
            extra={"operation": operation, **context},
        )
        translated = _translate_integrity_error(exc)
        if translated is None:
            raise
        raise translated from exc
    except Exception:
        await session.rollback()
        logger.warning(
            "Rolled back relationship transition",
            extra={"operation": operation, **context},
            exc_info=True,
        )
        raise


async def _apply_effects(
    session: AsyncSession,
    transition: Transition,
    *,
    follower: User,
    followee: User,
    relationship_id: str,
    message: str | None = None,
) -> str | None:
    """Run the notification effects of ``transition``; return the emitted id, if any."""
    notification_id: str | None = None
    for effect in transition.effects:
        if effect is Effect.EMIT_NEW_FOLLOWER:
            notification_id = await emit(
                session,
                recipient_id=followee.id,
                actor_id=follower.id,
                notification_type=NotificationType.NEW_FOLLOWER,
                title=f"{follower.label} started following you",
                action_url=profile_url(follower.id),
                relationship_id=relationship_id,
                payload={"follower_id": follower.id},
            )
        elif effect is Effect.EMIT_FOLLOW_REQUEST:
            notification_id = await emit(
                session,
                recipient_id=followee.id,
                actor_id=follower.id,
                notification_type=NotificationType.FOLLOW_REQUEST,
                title=f"{follower.label} sent you a follow request",
                message=message,
                action_url=FOLLOW_REQUESTS_URL,
                relationship_id=relationship_id,
                payload={"follower_id": follower.id, "relationship_id": relationship_id},
            )
        elif effect is Effect.EMIT_FOLLOW_ACCEPTED:
            notification_id = await emit(
                session,
                recipient_id=follower.id,
                actor_id=followee.id,
                notification_type=NotificationType.FOLLOW_ACCEPTED,
                title=f"{followee.label} accepted your follow request",
                action_url=profile_url(followee.id),
                relationship_id=relationship_id,
                payload={"followee_id": followee.id},
            )
        elif effect is Effect.RESOLVE_REQUEST_ACCEPTED:
            await resolve_request_notification(
                session, relationship_id, ActionStatus.ACCEPTED
            )
        elif effect is Effect.RESOLVE_REQUEST_DECLINED:
            await resolve_request_notification(
                session, relationship_id, ActionStatus.DECLINED
            )
    return notification_id


async def _require_user(session: AsyncSession, user_id: str) -> User:
    user = await store.get_user(session, user_id)
    if user is None:
        raise InvalidOperation("Unknown user", code="unknown_user")
    return user


async def get_relationship_state(
    session: AsyncSession,
    *,
    follower_id: str,
    followee_id: str,
) -> RelationshipState:
    return await store.get_relationship_state(
        session,
        follower_id=follower_id,
        followee_id=followee_id,
    )


async def follow(
    session: AsyncSession,
    *,
    actor_id: str,
    target_id: str,
    message: str | None = None,
) -> FollowOutcome:
    """Follow ``target_id``: accepted at once for public accounts, pending for private ones."""
    if actor_id == target_id:
        raise InvalidOperation("You cannot follow yourself", code="self_follow")
    normalized_message = _normalize_message(message)

    async with _transition_scope(
        session, "follow", actor_id=actor_id, target_id=target_id
    ):
        actor = await _require_user(session, actor_id)
        target = await _require_user(session, target_id)
        current = await store.get_relationship_state(
            session,
            follower_id=actor.id,
            followee_id=target.id,
        )
        transition = plan_transition(
            current,
            Action.FOLLOW,
            Visibility.for_account(target.is_private),
        )
        relationship = await store.insert_relationship(
            session,
            follower_id=actor.id,
            followee_id=target.id,
            state=transition.next_state,
            message=normalized_message,
        )
        notification_id = await _apply_effects(
            session,
            transition,
            follower=actor,
            followee=target,
            relationship_id=relationship.id,
            message=normalized_message,
        )

    logger.info(
        "Follow relationship created",
        extra={
            "relationship_id": relationship.id,
            "follower_id": actor_id,
            "followee_id": target_id,
            "state": transition.next_state.value,
        },
    )
    return FollowOutcome(
        relationship=relationship,
        state=transition.next_state,
        notification_id=notification_id,
    )


async def respond_to_request(
    session: AsyncSession,
    *,
    actor_id: str,
    relationship_id: str,
    decision: Action | str,
) -> Relationship | None:
    """Accept or decline a pending request addressed to ``actor_id``.

    Returns the accepted relationship, or ``None`` after a decline deleted it.
    """
    action = _parse_decision(decision)

    async with _transition_scope(
        session,
        action.value,
        actor_id=actor_id,
        relationship_id=relationship_id,
    ):
        relationship = await store.get_relationship_by_id(session, relationship_id)
        if relationship is None:
            raise NotFound("Follow request no longer exists", code="request_not_found")
        if relationship.followee_id != actor_id:
            raise Forbidden(
                "Only the requested user can respond to this request",
                code="not_request_recipient",
            )

        transition = plan_transition(
            RelationshipState.from_status(relationship.status), action
        )
        follower = await _require_user(session, relationship.follower_id)
        followee = await _require_user(session, relationship.followee_id)

        if action is Action.ACCEPT:
            changed = await store.promote_pending(session, relationship.id)
        else:
            changed = await store.delete_relationship(
                session,
                relationship.id,
                expected_state=RelationshipState.PENDING,
            )
        if not changed:
            raise NotFound("Follow request no longer exists", code="request_not_found")

        await _apply_effects(
            session,
            transition,
            follower=follower,
            followee=followee,
            relationship_id=relationship.id,
        )

    logger.info(
        "Follow request %s",
        "accepted" if action is Action.ACCEPT else "declined",
        extra={
            "relationship_id": relationship_id,
            "follower_id": follower.id,
            "followee_id": followee.id,
        },
    )
    if transition.deletes_row:
        return None
    # The conditional update already synchronized the loaded row.
    return relationship


async def accept_request(
    session: AsyncSession,
    *,
    actor_id: str,
    relationship_id: str,
) -> Relationship | None:
    return await respond_to_request(
        session,
        actor_id=actor_id,
        relationship_id=relationship_id,
        decision=Action.ACCEPT,
    )


async def decline_request(
    session: AsyncSession,
    *,
    actor_id: str,
    relationship_id: str,
) -> None:
    await respond_to_request(
        session,
        actor_id=actor_id,
        relationship_id=relationship_id,
        decision=Action.DECLINE,
    )


async def _remove_edge(
    session: AsyncSession,
    *,
    action: Action,
    follower_id: str,
    followee_id: str,
) -> None:
    async with _transition_scope(
        session,
        action.value,
        follower_id=follower_id,
        followee_id=followee_id,
    ):
        relationship = await store.get_relationship(
            session,
            follower_id=follower_id,
            followee_id=followee_id,
        )
        current = RelationshipState.from_status(
            relationship.status if relationship is not None else None
        )
        plan_transition(current, action)
        if relationship is None or not await store.delete_relationship(
            session, relationship.id
        ):
            raise NotFound("Not following this user", code="relationship_not_found")
        removed_id = relationship.id

    logger.info(
        "Follow relationship removed",
        extra={
            "relationship_id": removed_id,
            "follower_id": follower_id,
            "followee_id": followee_id,
            "action": action.value,
            "previous_state": current.value,
        },
    )


async def unfollow(
    session: AsyncSession,
    *,
    actor_id: str,
    target_id: str,
) -> None:
    """Drop the actor's edge to ``target_id``, cancelling a pending request too."""
    if actor_id == target_id:
        raise InvalidOperation("You cannot unfollow yourself", code="self_follow")
    await _remove_edge(
        session,
        action=Action.UNFOLLOW,
        follower_id=actor_id,
        followee_id=target_id,
    )


async def remove_follower(
    session: AsyncSession,
    *,
    actor_id: str,
    follower_id: str,
) -> None:
    """Drop ``follower_id``'s edge to the actor."""
    if actor_id == follower_id:
        raise InvalidOperation("You cannot remove yourself", code="self_follow")
    await _remove_edge(
        session,
        action=Action.REMOVE,
        follower_id=follower_id,
        followee_id=actor_id,
    )


async def respond_via_notification(
    session: AsyncSession,
    *,
    actor_id: str,
    notification_id: str,
    decision: Action | str,
) -> Relationship | None:
    """Act on a follow-request notification by delegating to ``respond_to_request``."""
    action = _parse_decision(decision)
    notification = await get_notification(session, notification_id)
    if notification is None or notification.recipient_id != actor_id:
        raise NotFound("Notification not found", code="notification_not_found")
    if notification.type not in ACTIONABLE_NOTIFICATION_TYPES:
        raise InvalidTransition(
            "This notification does not support actions",
            code="not_actionable",
        )
    if notification.action_status != ActionStatus.PENDING.value:
        raise InvalidTransition(
            f"Follow request already {notification.action_status}",
            code="request_already_handled",
        )
    if notification.relationship_id is None:
        raise NotFound("Follow request no longer exists", code="request_not_found")

    return await respond_to_request(
        session,
        actor_id=actor_id,
        relationship_id=notification.relationship_id,
        decision=action,
    )


__all__ = [
    "FOLLOW_REQUESTS_URL",
    "FollowOutcome",
    "accept_request",
    "decline_request",
    "follow",
    "get_relationship_state",
    "profile_url",
    "remove_follower",
    "respond_to_request",
    "respond_via_notification",
    "unfollow",
]
