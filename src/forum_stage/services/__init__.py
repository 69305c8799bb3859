# src/forum_stage/services/__init__.py
"""Business logic services for the forum engine."""

from .change_feed import ChangeEvent, ChangeFeed, ViewCache, change_feed, install_change_capture
from .content import ContentService
from .errors import (
    AuthenticationRequiredError,
    AuthorizationError,
    ConflictError,
    ForumError,
    NotFoundError,
    ValidationError,
)
from .identity import ANONYMOUS, Viewer
from .moderation import ModerationService
from .votes import VoteLedger, VoteOutcome

__all__ = [
    "ANONYMOUS",
    "Viewer",
    "ChangeEvent",
    "ChangeFeed",
    "ViewCache",
    "change_feed",
    "install_change_capture",
    "ContentService",
    "ModerationService",
    "VoteLedger",
    "VoteOutcome",
    "ForumError",
    "ValidationError",
    "ConflictError",
    "AuthorizationError",
    "AuthenticationRequiredError",
    "NotFoundError",
]
