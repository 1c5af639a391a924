"""Notification preference persistence."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from db.errors import is_unique_violation
from models import NotificationPreference, NotificationType
from services.common import eq
from services.errors import InvalidOperation

PREFERENCE_FIELDS = frozenset(f"{item.value}_enabled" for item in NotificationType)
logger = logging.getLogger(__name__)


async def load_preferences(
    session: AsyncSession,
    user_id: str,
) -> NotificationPreference | None:
    result = await session.execute(
        select(NotificationPreference).where(eq(NotificationPreference.user_id, user_id))
    )
    return result.scalar_one_or_none()


async def is_type_enabled(
    session: AsyncSession,
    user_id: str,
    notification_type: str,
) -> bool:
    preferences = await load_preferences(session, user_id)
    if preferences is None:
        return True
    return preferences.is_enabled(notification_type)


async def get_preferences(
    session: AsyncSession,
    user_id: str,
) -> NotificationPreference:
    """Return the user's preferences, creating the all-enabled defaults on first read."""
    existing = await load_preferences(session, user_id)
    if existing is not None:
        return existing

    preferences = NotificationPreference(user_id=user_id)
    session.add(preferences)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if not is_unique_violation(exc):
            raise
        duplicate = await load_preferences(session, user_id)
        if duplicate is None:  # pragma: no cover - defensive
            raise
        return duplicate

    await session.refresh(preferences)
    return preferences


async def update_preferences(
    session: AsyncSession,
    user_id: str,
    changes: dict[str, bool],
) -> NotificationPreference:
    unknown_fields = set(changes) - PREFERENCE_FIELDS
    if unknown_fields:
        raise InvalidOperation(
            f"Unknown preference fields: {', '.join(sorted(unknown_fields))}",
            code="unknown_preference",
        )

    preferences = await get_preferences(session, user_id)
    for field_name, enabled in changes.items():
        setattr(preferences, field_name, bool(enabled))
    await session.commit()
    await session.refresh(preferences)
    logger.info(
        "Updated notification preferences",
        extra={"user_id": user_id, "fields": sorted(changes)},
    )
    return preferences
