"""Database helpers."""

from .errors import is_check_violation, is_foreign_key_violation, is_unique_violation
from .session import AsyncSessionMaker, async_engine, get_session

__all__ = [
    "AsyncSessionMaker",
    "async_engine",
    "get_session",
    "is_check_violation",
    "is_foreign_key_violation",
    "is_unique_violation",
]
