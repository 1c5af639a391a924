"""Opaque keyset cursors for newest-first listings."""

from __future__ import annotations

import base64
import binascii
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, TypeVar

from services.errors import InvalidOperation

CURSOR_SEPARATOR = "|"
MAX_CURSOR_LENGTH = 256

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Cursor:
    created_at: datetime
    row_id: str


@dataclass(slots=True)
class Page(Generic[T]):
    items: list[T]
    next_cursor: str | None = None


def encode_cursor(created_at: datetime, row_id: str) -> str:
    raw = f"{created_at.isoformat()}{CURSOR_SEPARATOR}{row_id}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(value: str) -> Cursor:
    """Parse a cursor produced by ``encode_cursor``; raise InvalidOperation otherwise."""
    normalized = value.strip()
    if not normalized or len(normalized) > MAX_CURSOR_LENGTH:
        raise InvalidOperation("Cursor is invalid", code="invalid_cursor")

    padding = "=" * (-len(normalized) % 4)
    try:
        raw = base64.urlsafe_b64decode(normalized + padding).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise InvalidOperation("Cursor is invalid", code="invalid_cursor") from exc

    timestamp, separator, row_id = raw.partition(CURSOR_SEPARATOR)
    if not separator or not row_id:
        raise InvalidOperation("Cursor is invalid", code="invalid_cursor")
    try:
        created_at = datetime.fromisoformat(timestamp)
    except ValueError as exc:
        raise InvalidOperation("Cursor is invalid", code="invalid_cursor") from exc
    return Cursor(created_at=created_at, row_id=row_id)


def build_page(
    rows: list[T],
    *,
    limit: int,
    key: Callable[[T], tuple[datetime, str]],
) -> Page[T]:
    """Trim a ``limit + 1`` fetch to ``limit`` items and derive the next cursor."""
    has_more = len(rows) > limit
    items = rows[:limit]
    next_cursor = None
    if has_more and items:
        created_at, row_id = key(items[-1])
        next_cursor = encode_cursor(created_at, row_id)
    return Page(items=items, next_cursor=next_cursor)
