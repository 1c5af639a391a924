"""Retention sweep for read notifications."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, cast

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core.config import settings
from models import Notification
from models._time import utc_now
from services.common import eq

PRUNE_BATCH_SIZE = 500
logger = logging.getLogger(__name__)


def retention_cutoff(
    *,
    retention_days: int | None = None,
    now: datetime | None = None,
) -> datetime:
    days = settings.notification_retention_days if retention_days is None else retention_days
    if days < 0:
        raise ValueError("retention_days must be non-negative")
    return (now or utc_now()) - timedelta(days=days)


async def _delete_read_notifications_batch(
    session: AsyncSession,
    *,
    older_than: datetime,
    batch_size: int,
) -> int:
    id_column = cast(ColumnElement[str], Notification.id)
    read_at_column = cast(Any, Notification.read_at)
    stale_ids_subquery = (
        select(id_column)
        .where(
            eq(Notification.is_read, True),
            read_at_column.is_not(None),
            read_at_column < older_than,
        )
        .limit(batch_size)
        .subquery("stale_read_notifications")
    )

    stale_id_column = cast(ColumnElement[str], stale_ids_subquery.c.id)
    delete_result = await session.execute(
        delete(Notification)
        .where(id_column.in_(select(stale_id_column)))
        .execution_options(synchronize_session=False)
    )
    deleted_rows = int(cast(Any, delete_result).rowcount or 0)
    if deleted_rows > 0:
        await session.commit()
    return deleted_rows


async def prune_read_notifications(
    session: AsyncSession,
    *,
    older_than: datetime,
    batch_size: int = PRUNE_BATCH_SIZE,
    max_deleted: int | None = None,
) -> int:
    """Delete read notifications whose ``read_at`` precedes ``older_than``.

    Unread notifications are never touched. Rows are removed in batches of
    ``batch_size``, each committed on its own, until nothing is left or
    ``max_deleted`` rows were removed.
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    if max_deleted is not None and max_deleted < 0:
        raise ValueError("max_deleted must be non-negative")
    if max_deleted == 0:
        return 0

    total_deleted = 0
    while True:
        effective_batch_size = batch_size
        if max_deleted is not None:
            remaining_delete_budget = max_deleted - total_deleted
            if remaining_delete_budget <= 0:
                break
            effective_batch_size = min(effective_batch_size, remaining_delete_budget)

        deleted_rows = await _delete_read_notifications_batch(
            session,
            older_than=older_than,
            batch_size=effective_batch_size,
        )
        if deleted_rows <= 0:
            break
        total_deleted += deleted_rows

    if total_deleted:
        logger.info(
            "Pruned read notifications",
            extra={"deleted_rows": total_deleted, "cutoff": older_than.isoformat()},
        )
    return total_deleted
