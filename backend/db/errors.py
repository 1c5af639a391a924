"""Integrity-error classification across PostgreSQL and SQLite drivers."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
CHECK_VIOLATION = "23514"


def _sqlstate(error: IntegrityError) -> str | None:
    original = getattr(error, "orig", None)
    return getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)


def _message(error: IntegrityError) -> str:
    return str(getattr(error, "orig", None) or error).lower()


def is_unique_violation(error: IntegrityError) -> bool:
    """Return True when the IntegrityError indicates a unique-constraint conflict."""
    if _sqlstate(error) == UNIQUE_VIOLATION:
        return True
    message = _message(error)
    return "duplicate key" in message or "unique constraint" in message


def is_foreign_key_violation(error: IntegrityError) -> bool:
    if _sqlstate(error) == FOREIGN_KEY_VIOLATION:
        return True
    return "foreign key" in _message(error)


def is_check_violation(error: IntegrityError) -> bool:
    if _sqlstate(error) == CHECK_VIOLATION:
        return True
    return "check constraint" in _message(error)


__all__ = ["is_check_violation", "is_foreign_key_violation", "is_unique_violation"]
