"""Shared pagination constants and response header helpers."""

from fastapi import Response

MAX_PAGE_SIZE = 100
NEXT_CURSOR_HEADER = "X-Next-Cursor"


def set_next_cursor_header(response: Response, next_cursor: str | None) -> None:
    if next_cursor is not None:
        response.headers[NEXT_CURSOR_HEADER] = next_cursor
