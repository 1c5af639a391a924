"""Tests for the notification sink, preferences and retention sweep."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from models import ActionStatus, Notification, NotificationType
from services import relationships
from services.errors import InvalidOperation, InvalidTransition, NotFound
from services.notifications import (
    count_unread,
    delete_notification,
    emit,
    get_preferences,
    list_for_recipient,
    mark_all_read,
    mark_read,
    mutate_action_status,
    prune_read_notifications,
    update_preferences,
)


async def _emit_like(session: AsyncSession, *, recipient_id: str, actor_id: str) -> str:
    notification_id = await emit(
        session,
        recipient_id=recipient_id,
        actor_id=actor_id,
        notification_type=NotificationType.LIKE,
        title="liked your activity",
        payload={"activity_id": "run-42"},
    )
    assert notification_id is not None
    return notification_id


@pytest.mark.asyncio
async def test_self_notification_is_a_silent_noop(db_session, user_factory) -> None:
    alice = await user_factory("alice")

    for notification_type in NotificationType:
        result = await emit(
            db_session,
            recipient_id=alice.id,
            actor_id=alice.id,
            notification_type=notification_type,
            title="self",
        )
        assert result is None
    await db_session.commit()

    stored = await db_session.execute(select(Notification))
    assert stored.scalars().all() == []


@pytest.mark.asyncio
async def test_emit_joins_caller_transaction(db_session, session_maker, user_factory) -> None:
    alice = await user_factory("alice")
    bob = await user_factory("bob")

    await _emit_like(db_session, recipient_id=bob.id, actor_id=alice.id)
    await db_session.rollback()

    async with session_maker() as session:
        assert await count_unread(session, bob.id) == 0


@pytest.mark.asyncio
async def test_system_notification_without_actor_is_stored(db_session, user_factory) -> None:
    bob = await user_factory("bob")

    notification_id = await emit(
        db_session,
        recipient_id=bob.id,
        actor_id=None,
        notification_type=NotificationType.SYSTEM_ANNOUNCEMENT,
        title="Club season starts Monday",
    )
    await db_session.commit()

    page = await list_for_recipient(db_session, recipient_id=bob.id)
    assert [item.id for item in page.items] == [notification_id]
    assert page.items[0].actor_username is None
    assert page.items[0].action_status is None
    assert page.items[0].is_actionable is False


@pytest.mark.asyncio
async def test_disabled_type_is_not_emitted(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    bob = await user_factory("bob")
    await update_preferences(db_session, bob.id, {"like_enabled": False})

    result = await emit(
        db_session,
        recipient_id=bob.id,
        actor_id=alice.id,
        notification_type=NotificationType.LIKE,
        title="liked your activity",
    )

    assert result is None
    # Other types are still delivered.
    assert await emit(
        db_session,
        recipient_id=bob.id,
        actor_id=alice.id,
        notification_type=NotificationType.COMMENT,
        title="commented on your activity",
    ) is not None


@pytest.mark.asyncio
async def test_mutate_action_status_only_once(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    bob = await user_factory("bob", is_private=True)
    outcome = await relationships.follow(db_session, actor_id=alice.id, target_id=bob.id)
    assert outcome.notification_id is not None

    updated = await mutate_action_status(
        db_session, outcome.notification_id, ActionStatus.DECLINED
    )
    assert updated.action_status == "declined"
    assert updated.action_taken_at is not None

    with pytest.raises(InvalidTransition) as exc_info:
        await mutate_action_status(db_session, outcome.notification_id, ActionStatus.ACCEPTED)
    assert exc_info.value.code == "request_already_handled"


@pytest.mark.asyncio
async def test_mutate_action_status_rejects_non_actionable_and_unknown(
    db_session,
    user_factory,
) -> None:
    alice = await user_factory("alice")
    bob = await user_factory("bob")
    like_id = await _emit_like(db_session, recipient_id=bob.id, actor_id=alice.id)

    with pytest.raises(InvalidTransition) as exc_info:
        await mutate_action_status(db_session, like_id, ActionStatus.ACCEPTED)
    assert exc_info.value.code == "not_actionable"

    with pytest.raises(NotFound):
        await mutate_action_status(db_session, "missing", ActionStatus.ACCEPTED)


@pytest.mark.asyncio
async def test_mark_read_is_idempotent_and_recipient_scoped(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    bob = await user_factory("bob")
    notification_id = await _emit_like(db_session, recipient_id=bob.id, actor_id=alice.id)
    await db_session.commit()

    with pytest.raises(NotFound):
        await mark_read(db_session, notification_id=notification_id, recipient_id=alice.id)

    first = await mark_read(db_session, notification_id=notification_id, recipient_id=bob.id)
    first_read_at = first.read_at
    second = await mark_read(db_session, notification_id=notification_id, recipient_id=bob.id)

    assert second.is_read is True
    assert second.read_at == first_read_at
    assert await count_unread(db_session, bob.id) == 0


@pytest.mark.asyncio
async def test_mark_all_read_only_touches_recipient(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    bob = await user_factory("bob")
    for _ in range(3):
        await _emit_like(db_session, recipient_id=bob.id, actor_id=alice.id)
    await _emit_like(db_session, recipient_id=alice.id, actor_id=bob.id)
    await db_session.commit()

    assert await mark_all_read(db_session, recipient_id=bob.id) == 3
    assert await mark_all_read(db_session, recipient_id=bob.id) == 0
    assert await count_unread(db_session, bob.id) == 0
    assert await count_unread(db_session, alice.id) == 1


@pytest.mark.asyncio
async def test_list_for_recipient_pages_newest_first(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    bob = await user_factory("bob")
    emitted = [
        await _emit_like(db_session, recipient_id=bob.id, actor_id=alice.id)
        for _ in range(5)
    ]
    await db_session.commit()

    seen: list[str] = []
    cursor = None
    while True:
        page = await list_for_recipient(
            db_session, recipient_id=bob.id, cursor=cursor, limit=2
        )
        seen.extend(item.id for item in page.items)
        if page.next_cursor is None:
            break
        cursor = page.next_cursor

    assert seen == list(reversed(emitted))
    assert page.items[0].actor_username == alice.username


@pytest.mark.asyncio
async def test_list_for_recipient_is_stable_under_new_inserts(
    db_session,
    user_factory,
) -> None:
    alice = await user_factory("alice")
    bob = await user_factory("bob")
    emitted = [
        await _emit_like(db_session, recipient_id=bob.id, actor_id=alice.id)
        for _ in range(3)
    ]
    await db_session.commit()

    first_page = await list_for_recipient(db_session, recipient_id=bob.id, limit=2)
    await _emit_like(db_session, recipient_id=bob.id, actor_id=alice.id)
    await db_session.commit()
    second_page = await list_for_recipient(
        db_session, recipient_id=bob.id, cursor=first_page.next_cursor, limit=2
    )

    assert [item.id for item in first_page.items] == [emitted[2], emitted[1]]
    assert [item.id for item in second_page.items] == [emitted[0]]
    assert second_page.next_cursor is None


@pytest.mark.asyncio
async def test_list_for_recipient_filters(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    bob = await user_factory("bob")
    like_id = await _emit_like(db_session, recipient_id=bob.id, actor_id=alice.id)
    comment_id = await emit(
        db_session,
        recipient_id=bob.id,
        actor_id=alice.id,
        notification_type=NotificationType.COMMENT,
        title="commented on your activity",
    )
    await db_session.commit()
    await mark_read(db_session, notification_id=like_id, recipient_id=bob.id)

    unread = await list_for_recipient(db_session, recipient_id=bob.id, unread_only=True)
    assert [item.id for item in unread.items] == [comment_id]

    likes = await list_for_recipient(
        db_session, recipient_id=bob.id, notification_type=NotificationType.LIKE
    )
    assert [item.id for item in likes.items] == [like_id]
    assert likes.items[0].payload == {"activity_id": "run-42"}


@pytest.mark.asyncio
async def test_list_for_recipient_rejects_bad_cursor_and_limit(db_session, user_factory) -> None:
    bob = await user_factory("bob")

    with pytest.raises(InvalidOperation) as cursor_exc:
        await list_for_recipient(db_session, recipient_id=bob.id, cursor="not-a-cursor")
    assert cursor_exc.value.code == "invalid_cursor"

    with pytest.raises(InvalidOperation) as limit_exc:
        await list_for_recipient(db_session, recipient_id=bob.id, limit=0)
    assert limit_exc.value.code == "invalid_limit"


@pytest.mark.asyncio
async def test_request_notification_is_inert_after_cancel(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    bob = await user_factory("bob", is_private=True)
    await relationships.follow(db_session, actor_id=alice.id, target_id=bob.id)

    page = await list_for_recipient(db_session, recipient_id=bob.id)
    assert page.items[0].is_actionable is True

    await relationships.unfollow(db_session, actor_id=alice.id, target_id=bob.id)

    page = await list_for_recipient(db_session, recipient_id=bob.id)
    assert page.items[0].type == "follow_request"
    assert page.items[0].action_status == "pending"
    assert page.items[0].is_actionable is False


@pytest.mark.asyncio
async def test_delete_notification_is_recipient_scoped(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    bob = await user_factory("bob")
    notification_id = await _emit_like(db_session, recipient_id=bob.id, actor_id=alice.id)
    await db_session.commit()

    with pytest.raises(NotFound):
        await delete_notification(
            db_session, notification_id=notification_id, recipient_id=alice.id
        )

    await delete_notification(db_session, notification_id=notification_id, recipient_id=bob.id)
    assert await count_unread(db_session, bob.id) == 0


@pytest.mark.asyncio
async def test_list_query_count_is_constant(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    bob = await user_factory("bob")
    for _ in range(10):
        await _emit_like(db_session, recipient_id=bob.id, actor_id=alice.id)
    await db_session.commit()

    bind = db_session.bind
    assert isinstance(bind, AsyncEngine)
    select_count = 0

    def _before_cursor_execute(
        conn: object,
        cursor: object,
        statement: str,
        parameters: object,
        context: object,
        executemany: bool,
    ) -> None:
        del conn, cursor, parameters, context, executemany
        nonlocal select_count
        if statement.lstrip().lower().startswith("select"):
            select_count += 1

    event.listen(bind.sync_engine, "before_cursor_execute", _before_cursor_execute)
    try:
        page = await list_for_recipient(db_session, recipient_id=bob.id, limit=10)
    finally:
        event.remove(bind.sync_engine, "before_cursor_execute", _before_cursor_execute)

    assert len(page.items) == 10
    assert select_count == 1


@pytest.mark.asyncio
async def test_preferences_default_to_enabled(db_session, user_factory) -> None:
    bob = await user_factory("bob")

    preferences = await get_preferences(db_session, bob.id)
    again = await get_preferences(db_session, bob.id)

    assert preferences.id == again.id
    assert preferences.follow_request_enabled is True
    assert preferences.team_update_enabled is True


@pytest.mark.asyncio
async def test_update_preferences_rejects_unknown_fields(db_session, user_factory) -> None:
    bob = await user_factory("bob")

    with pytest.raises(InvalidOperation) as exc_info:
        await update_preferences(db_session, bob.id, {"pokes_enabled": False})
    assert exc_info.value.code == "unknown_preference"

    updated = await update_preferences(db_session, bob.id, {"new_follower_enabled": False})
    assert updated.new_follower_enabled is False
    assert updated.follow_request_enabled is True


@pytest.mark.asyncio
async def test_prune_read_notifications_respects_cutoff_and_budget(
    db_session,
    user_factory,
) -> None:
    alice = await user_factory("alice")
    bob = await user_factory("bob")
    now = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)
    old_read = [
        await _emit_like(db_session, recipient_id=bob.id, actor_id=alice.id)
        for _ in range(3)
    ]
    recent_read = await _emit_like(db_session, recipient_id=bob.id, actor_id=alice.id)
    old_unread = await _emit_like(db_session, recipient_id=bob.id, actor_id=alice.id)
    await db_session.commit()

    result = await db_session.execute(select(Notification))
    for notification in result.scalars().all():
        if notification.id in old_read:
            notification.is_read = True
            notification.read_at = now - timedelta(days=120)
        elif notification.id == recent_read:
            notification.is_read = True
            notification.read_at = now - timedelta(days=5)
        elif notification.id == old_unread:
            notification.created_at = now - timedelta(days=200)
    await db_session.commit()

    cutoff = now - timedelta(days=90)
    assert await prune_read_notifications(
        db_session, older_than=cutoff, batch_size=1, max_deleted=2
    ) == 2
    assert await prune_read_notifications(db_session, older_than=cutoff, batch_size=10) == 1
    assert await prune_read_notifications(db_session, older_than=cutoff) == 0

    remaining = await db_session.execute(select(Notification.id))
    assert set(remaining.scalars().all()) == {recent_read, old_unread}


@pytest.mark.asyncio
async def test_prune_read_notifications_validates_arguments(db_session) -> None:
    cutoff = datetime(2026, 1, 1, tzinfo=timezone.utc)

    with pytest.raises(ValueError):
        await prune_read_notifications(db_session, older_than=cutoff, batch_size=0)
    with pytest.raises(ValueError):
        await prune_read_notifications(db_session, older_than=cutoff, max_deleted=-1)
    assert await prune_read_notifications(db_session, older_than=cutoff, max_deleted=0) == 0
