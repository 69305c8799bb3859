# src/forum_stage/models/__init__.py
"""SQLAlchemy models for the forum engine."""

from .comment import Comment
from .community import Community, CommunityMember
from .content import CONTENT_KINDS, KIND_COMMENT, KIND_POST, ContentItem
from .moderation import Ban, ModerationQueueItem, Report
from .post import Post
from .social import Follow, SavedPost
from .user import User, UserRole
from .vote import Vote

__all__ = [
    "Ban",
    "Comment",
    "Community", "CommunityMember",
    "CONTENT_KINDS", "KIND_COMMENT", "KIND_POST", "ContentItem",
    "Follow",
    "ModerationQueueItem",
    "Post",
    "Report",
    "SavedPost",
    "User", "UserRole",
    "Vote",
]
