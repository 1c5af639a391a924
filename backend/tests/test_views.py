"""Tests for follow graph read views."""

import pytest

from services import relationships, views
from services.errors import Forbidden, InvalidOperation, NotFound


@pytest.mark.asyncio
async def test_pending_requests_are_only_visible_to_followee(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    bob = await user_factory("bob", is_private=True)
    await relationships.follow(
        db_session, actor_id=alice.id, target_id=bob.id, message="hi"
    )

    with pytest.raises(InvalidOperation) as exc_info:
        await views.list_pending_requests(
            db_session, viewer_id=alice.id, followee_id=bob.id
        )
    assert exc_info.value.code == "not_account_owner"

    page = await views.list_pending_requests(
        db_session, viewer_id=bob.id, followee_id=bob.id
    )
    assert len(page.items) == 1
    assert page.items[0].requester_username == alice.username
    assert page.items[0].message == "hi"


@pytest.mark.asyncio
async def test_accept_is_visible_on_next_read(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    bob = await user_factory("bob", is_private=True)
    outcome = await relationships.follow(db_session, actor_id=alice.id, target_id=bob.id)

    await relationships.accept_request(
        db_session, actor_id=bob.id, relationship_id=outcome.relationship.id
    )

    followers = await views.list_followers(db_session, viewer_id=bob.id, user_id=bob.id)
    pending = await views.list_pending_requests(
        db_session, viewer_id=bob.id, followee_id=bob.id
    )
    assert [item.user_id for item in followers.items] == [alice.id]
    assert followers.items[0].relationship_id == outcome.relationship.id
    assert pending.items == []


@pytest.mark.asyncio
async def test_followers_exclude_pending_requests(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    dave = await user_factory("dave")
    bob = await user_factory("bob", is_private=True)
    await relationships.follow(db_session, actor_id=alice.id, target_id=bob.id)
    outcome = await relationships.follow(db_session, actor_id=dave.id, target_id=bob.id)
    await relationships.accept_request(
        db_session, actor_id=bob.id, relationship_id=outcome.relationship.id
    )

    followers = await views.list_followers(db_session, viewer_id=bob.id, user_id=bob.id)
    assert [item.user_id for item in followers.items] == [dave.id]


@pytest.mark.asyncio
async def test_private_lists_hidden_from_non_followers(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    eve = await user_factory("eve")
    bob = await user_factory("bob", is_private=True)
    outcome = await relationships.follow(db_session, actor_id=alice.id, target_id=bob.id)
    await relationships.accept_request(
        db_session, actor_id=bob.id, relationship_id=outcome.relationship.id
    )

    with pytest.raises(Forbidden):
        await views.list_followers(db_session, viewer_id=eve.id, user_id=bob.id)
    with pytest.raises(Forbidden):
        await views.list_following(db_session, viewer_id=eve.id, user_id=bob.id)

    visible = await views.list_followers(db_session, viewer_id=alice.id, user_id=bob.id)
    assert [item.user_id for item in visible.items] == [alice.id]


@pytest.mark.asyncio
async def test_public_lists_are_visible_to_anyone(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    carol = await user_factory("carol")
    eve = await user_factory("eve")
    await relationships.follow(db_session, actor_id=alice.id, target_id=carol.id)

    followers = await views.list_followers(db_session, viewer_id=eve.id, user_id=carol.id)
    following = await views.list_following(db_session, viewer_id=eve.id, user_id=alice.id)

    assert [item.username for item in followers.items] == [alice.username]
    assert [item.username for item in following.items] == [carol.username]


@pytest.mark.asyncio
async def test_followers_page_with_cursor(db_session, user_factory) -> None:
    carol = await user_factory("carol")
    fans = [await user_factory(f"fan{index}") for index in range(5)]
    for fan in fans:
        await relationships.follow(db_session, actor_id=fan.id, target_id=carol.id)

    seen: list[str] = []
    cursor = None
    while True:
        page = await views.list_followers(
            db_session, viewer_id=carol.id, user_id=carol.id, cursor=cursor, limit=2
        )
        seen.extend(item.user_id for item in page.items)
        if page.next_cursor is None:
            break
        cursor = page.next_cursor

    assert seen == [fan.id for fan in reversed(fans)]


@pytest.mark.asyncio
async def test_unknown_user_is_not_found(db_session, user_factory) -> None:
    alice = await user_factory("alice")

    with pytest.raises(NotFound):
        await views.list_followers(db_session, viewer_id=alice.id, user_id="missing")
    with pytest.raises(NotFound):
        await views.get_follow_stats(db_session, viewer_id=alice.id, user_id="missing")


@pytest.mark.asyncio
async def test_follow_stats_counts_accepted_edges_only(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    dave = await user_factory("dave")
    bob = await user_factory("bob", is_private=True)
    await relationships.follow(db_session, actor_id=alice.id, target_id=bob.id)
    outcome = await relationships.follow(db_session, actor_id=dave.id, target_id=bob.id)
    await relationships.accept_request(
        db_session, actor_id=bob.id, relationship_id=outcome.relationship.id
    )
    await relationships.follow(db_session, actor_id=bob.id, target_id=alice.id)

    owner_view = await views.get_follow_stats(db_session, viewer_id=bob.id, user_id=bob.id)
    assert owner_view.followers_count == 1
    assert owner_view.following_count == 1
    assert owner_view.pending_requests_count == 1

    alice_view = await views.get_follow_stats(db_session, viewer_id=alice.id, user_id=bob.id)
    assert alice_view.pending_requests_count is None
    assert alice_view.state == "requested"
    assert alice_view.follows_you is True

    dave_view = await views.get_follow_stats(db_session, viewer_id=dave.id, user_id=bob.id)
    assert dave_view.state == "following"
    assert dave_view.follows_you is False


@pytest.mark.asyncio
async def test_count_unread_notifications(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    carol = await user_factory("carol")

    assert await views.count_unread_notifications(
        db_session, viewer_id=carol.id, user_id=carol.id
    ) == 0
    await relationships.follow(db_session, actor_id=alice.id, target_id=carol.id)
    assert await views.count_unread_notifications(
        db_session, viewer_id=carol.id, user_id=carol.id
    ) == 1


@pytest.mark.asyncio
async def test_unread_count_is_only_visible_to_owner(db_session, user_factory) -> None:
    alice = await user_factory("alice")
    carol = await user_factory("carol")
    await relationships.follow(db_session, actor_id=alice.id, target_id=carol.id)

    with pytest.raises(InvalidOperation) as exc_info:
        await views.count_unread_notifications(
            db_session, viewer_id=alice.id, user_id=carol.id
        )
    assert exc_info.value.code == "not_account_owner"
