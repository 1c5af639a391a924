"""Redis-backed rate limiting for graph mutations."""

from __future__ import annotations

import logging
import re
import time
from functools import lru_cache
from typing import Callable, Iterable, Protocol, runtime_checkable

from fastapi import status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.types import ASGIApp

from core import decode_token, settings


@runtime_checkable
class SupportsRateLimitClient(Protocol):
    async def incr(self, key: str) -> int: ...

    async def expire(self, key: str, ttl: int) -> None: ...


ACCESS_COOKIE_NAME = "access_token"
MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
# Follow, unfollow, remove-follower, request responses and login attempts.
DEFAULT_LIMITED_PATH_PATTERNS = (
    re.compile(r"^/api/v1/users/[^/]+/follow$"),
    re.compile(r"^/api/v1/users/[^/]+/followers/[^/]+$"),
    re.compile(r"^/api/v1/relationships/[^/]+/(accept|decline)$"),
    re.compile(r"^/api/v1/notifications/[^/]+/action$"),
    re.compile(r"^/api/v1/auth/(login|register)$"),
)
logger = logging.getLogger(__name__)


def _extract_subject_from_token(token: str) -> str | None:
    try:
        payload = decode_token(token)
    except ValueError:
        return None

    if payload.get("type") != "access":
        return None

    subject = payload.get("sub")
    if isinstance(subject, str):
        normalized = subject.strip()
        return normalized or None
    return None


def _extract_bearer_token(request: Request) -> str | None:
    authorization = request.headers.get("authorization")
    if not authorization:
        return None

    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = value.strip()
    return token or None


def default_client_identifier(request: Request) -> str:
    """Key requests by authenticated user, falling back to the peer address."""
    for token in (request.cookies.get(ACCESS_COOKIE_NAME), _extract_bearer_token(request)):
        if not token:
            continue
        subject = _extract_subject_from_token(token)
        if subject:
            return f"user:{subject}"

    if request.client and request.client.host:
        return request.client.host
    return "anonymous"


class RateLimiter:
    """Simple fixed-window rate limiter backed by Redis."""

    def __init__(
        self,
        redis_client: SupportsRateLimitClient,
        limit: int,
        window_seconds: int,
        prefix: str = "rate-limit",
    ) -> None:
        self.redis = redis_client
        self.limit = max(limit, 0)
        self.window_seconds = max(window_seconds, 0)
        self.prefix = prefix

    async def allow(self, key: str) -> bool:
        """Return True when the request should be allowed, False if limited."""
        if self.limit == 0 or self.window_seconds == 0:
            return True

        bucket = int(time.time()) // self.window_seconds
        redis_key = f"{self.prefix}:{key}:{bucket}"

        count = await self.redis.incr(redis_key)
        if count == 1:
            await self.redis.expire(redis_key, self.window_seconds)
        return count <= self.limit


@lru_cache
def get_redis_client() -> SupportsRateLimitClient:
    """Return a cached async Redis client."""
    return Redis.from_url(settings.redis_url, decode_responses=False)


_cached_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Singleton accessor for the shared rate limiter."""
    global _cached_rate_limiter
    if _cached_rate_limiter is None:
        _cached_rate_limiter = RateLimiter(
            redis_client=get_redis_client(),
            limit=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    return _cached_rate_limiter


def set_rate_limiter(limiter: RateLimiter | None) -> None:
    """Override the cached rate limiter (primarily for tests)."""
    global _cached_rate_limiter
    _cached_rate_limiter = limiter


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Throttle mutating requests on the limited paths; everything else passes."""

    def __init__(
        self,
        app: ASGIApp,
        limiter_factory: Callable[[], RateLimiter],
        limited_paths: Iterable[re.Pattern[str]] | None = None,
        client_identifier: Callable[[Request], str] | None = None,
    ) -> None:
        super().__init__(app)
        self._limiter: RateLimiter | None = None
        self.limiter_factory = limiter_factory
        self.limited_paths = tuple(
            DEFAULT_LIMITED_PATH_PATTERNS if limited_paths is None else limited_paths
        )
        self.client_identifier = client_identifier or default_client_identifier

    def is_limited(self, request: Request) -> bool:
        if request.method.upper() not in MUTATING_METHODS:
            return False
        path = request.url.path
        return any(pattern.match(path) for pattern in self.limited_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        if request.scope["type"] != "http" or not self.is_limited(request):
            return await call_next(request)

        override = getattr(request.app.state, "rate_limiter_override", None)
        limiter = override if override is not None else self._get_limiter()
        if limiter is None:
            return await call_next(request)

        client_key = self.client_identifier(request) or "anonymous"
        try:
            is_allowed = await limiter.allow(client_key)
        except Exception:  # pragma: no cover - Redis outage
            logger.warning(
                "Rate limiter unavailable; allowing request",
                extra={"path": request.url.path},
                exc_info=True,
            )
            return await call_next(request)

        if not is_allowed:
            logger.info(
                "Rate limited request",
                extra={"client": client_key, "path": request.url.path},
            )
            return JSONResponse(
                {"detail": "Too Many Requests", "code": "rate_limited"},
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            )

        return await call_next(request)

    def _get_limiter(self) -> RateLimiter | None:
        if self._limiter is None:
            try:
                self._limiter = self.limiter_factory()
            except Exception:  # pragma: no cover - misconfigured Redis URL
                logger.warning("Failed to build rate limiter", exc_info=True)
                self._limiter = None
        return self._limiter
