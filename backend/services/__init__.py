"""Business logic services."""

from .errors import (
    AlreadyExists,
    AlreadyFollowing,
    Forbidden,
    InvalidOperation,
    InvalidTransition,
    NotFound,
    SocialGraphError,
)
from .rate_limiter import (
    RateLimitMiddleware,
    RateLimiter,
    get_rate_limiter,
    set_rate_limiter,
)

__all__ = [
    "SocialGraphError",
    "InvalidOperation",
    "Forbidden",
    "NotFound",
    "AlreadyExists",
    "AlreadyFollowing",
    "InvalidTransition",
    "RateLimiter",
    "RateLimitMiddleware",
    "get_rate_limiter",
    "set_rate_limiter",
]
