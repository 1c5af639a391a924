"""Maintenance script to prune read notifications past the retention window.

Usage:
    uv run python scripts/prune_read_notifications.py

Environment overrides:
    NOTIFICATION_RETENTION_DAYS=90
    NOTIFICATION_PRUNE_BATCH_SIZE=500
    NOTIFICATION_MAX_ROWS_PER_RUN=50000
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path
from time import perf_counter

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from core.config import settings  # noqa: E402
from core.logging_config import configure_logging  # noqa: E402
from db.session import AsyncSessionMaker  # noqa: E402
from services.notifications.retention import (  # noqa: E402
    PRUNE_BATCH_SIZE,
    prune_read_notifications,
    retention_cutoff,
)

RETENTION_DAYS_ENV = "NOTIFICATION_RETENTION_DAYS"
PRUNE_BATCH_SIZE_ENV = "NOTIFICATION_PRUNE_BATCH_SIZE"
MAX_ROWS_PER_RUN_ENV = "NOTIFICATION_MAX_ROWS_PER_RUN"
DEFAULT_MAX_ROWS_PER_RUN = 50_000
logger = logging.getLogger("scripts.prune_read_notifications")


def _parse_positive_int(raw_value: str | None, *, default: int, label: str) -> int:
    if raw_value is None or raw_value.strip() == "":
        return default
    try:
        parsed = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{label} must be an integer") from exc
    if parsed <= 0:
        raise ValueError(f"{label} must be positive")
    return parsed


def _parse_non_negative_int(raw_value: str | None, *, default: int, label: str) -> int:
    if raw_value is None or raw_value.strip() == "":
        return default
    try:
        parsed = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{label} must be an integer") from exc
    if parsed < 0:
        raise ValueError(f"{label} must be non-negative")
    return parsed


async def run() -> int:
    retention_days = _parse_non_negative_int(
        os.getenv(RETENTION_DAYS_ENV),
        default=settings.notification_retention_days,
        label=RETENTION_DAYS_ENV,
    )
    batch_size = _parse_positive_int(
        os.getenv(PRUNE_BATCH_SIZE_ENV),
        default=PRUNE_BATCH_SIZE,
        label=PRUNE_BATCH_SIZE_ENV,
    )
    max_rows_per_run = _parse_positive_int(
        os.getenv(MAX_ROWS_PER_RUN_ENV),
        default=DEFAULT_MAX_ROWS_PER_RUN,
        label=MAX_ROWS_PER_RUN_ENV,
    )

    started_at = perf_counter()
    cutoff = retention_cutoff(retention_days=retention_days)
    async with AsyncSessionMaker() as session:
        rows_deleted = await prune_read_notifications(
            session,
            older_than=cutoff,
            batch_size=batch_size,
            max_deleted=max_rows_per_run,
        )

    elapsed_ms = int((perf_counter() - started_at) * 1000)
    stop_reason = "max_rows" if rows_deleted >= max_rows_per_run else "completed"
    print(
        "Read notification prune complete: "
        f"rows_deleted={rows_deleted}, cutoff={cutoff.isoformat()}, "
        f"elapsed_ms={elapsed_ms}, stop_reason={stop_reason}"
    )
    return rows_deleted


def main() -> None:
    configure_logging()
    asyncio.run(run())


if __name__ == "__main__":
    main()
