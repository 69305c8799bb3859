# src/forum_stage/services/errors.py
"""Error taxonomy shared by the forum services.

Services raise these; the API layer renders them with the mapped HTTP status.
"""

from __future__ import annotations

from fastapi import status


class ForumError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ForumError):
    """Malformed input rejected before touching storage."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class ConflictError(ForumError):
    """Transition from the wrong source state, or a lost write race.

    Retryable with fresh state; services never retry on their own.
    """

    status_code = status.HTTP_409_CONFLICT


class AuthorizationError(ForumError):
    """Caller lacks the capability for the requested action."""

    status_code = status.HTTP_403_FORBIDDEN


class AuthenticationRequiredError(AuthorizationError):
    """Action needs an authenticated identity but the caller is anonymous."""

    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(ForumError):
    """Target does not exist (or is not visible to the caller)."""

    status_code = status.HTTP_404_NOT_FOUND
