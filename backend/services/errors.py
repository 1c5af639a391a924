"""Typed, caller-visible failures raised by the social graph services."""

from __future__ import annotations

from fastapi import status


class SocialGraphError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "social_graph_error"
    detail: str = "Request could not be processed"

    def __init__(self, detail: str | None = None, *, code: str | None = None) -> None:
        if detail:
            self.detail = detail
        if code:
            self.code = code
        super().__init__(self.detail)


class InvalidOperation(SocialGraphError):
    """Malformed input such as a self-follow or an unknown identity."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_operation"
    detail = "Invalid operation"


class Forbidden(SocialGraphError):
    """The actor does not own the row it tried to read or mutate."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    detail = "Forbidden"


class NotFound(SocialGraphError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    detail = "Not found"


class AlreadyExists(SocialGraphError):
    """A concurrent or repeated create lost against the uniqueness constraint."""

    status_code = status.HTTP_409_CONFLICT
    code = "already_exists"
    detail = "Already exists"


class AlreadyFollowing(SocialGraphError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_following"
    detail = "Already following"


class InvalidTransition(SocialGraphError):
    """The row is not in a state that permits the requested action."""

    status_code = status.HTTP_409_CONFLICT
    code = "invalid_transition"
    detail = "Invalid state transition"


__all__ = [
    "SocialGraphError",
    "InvalidOperation",
    "Forbidden",
    "NotFound",
    "AlreadyExists",
    "AlreadyFollowing",
    "InvalidTransition",
]
