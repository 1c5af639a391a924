"""Shared SQLAlchemy expression helpers."""

from __future__ import annotations

from datetime import datetime
from typing import Any, cast

from sqlalchemy import and_, or_
from sqlalchemy.sql import ColumnElement


def eq(column: Any, value: Any) -> ColumnElement[bool]:
    """Typed equality expression helper."""
    return cast(ColumnElement[bool], column == value)


def desc(column: Any) -> Any:
    """Typed descending ordering helper."""
    return cast(Any, column).desc()


def older_than_keyset(
    created_at_column: Any,
    id_column: Any,
    *,
    created_at: datetime,
    row_id: str,
) -> ColumnElement[bool]:
    """Rows strictly after ``(created_at, row_id)`` in newest-first order."""
    return cast(
        ColumnElement[bool],
        or_(
            created_at_column < created_at,
            and_(created_at_column == created_at, id_column < row_id),
        ),
    )
