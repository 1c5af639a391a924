"""Shared FastAPI dependencies."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import NoReturn

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from core import decode_token
from db.session import get_session
from models import User

ACCESS_COOKIE = "access_token"


async def get_db() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


def _raise_unauthorized(detail: str) -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _extract_token(request: Request) -> str | None:
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token

    authorization = request.headers.get("authorization", "")
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the authenticated user from the access cookie or bearer header."""
    token = _extract_token(request)
    if token is None:
        _raise_unauthorized("Not authenticated")

    try:
        payload = decode_token(token)
    except ValueError:
        _raise_unauthorized("Invalid access token")
    if payload.get("type") != "access" or not isinstance(payload.get("sub"), str):
        _raise_unauthorized("Invalid access token")

    user = await session.get(User, payload["sub"])
    if user is None:
        _raise_unauthorized("User no longer exists")
    return user
