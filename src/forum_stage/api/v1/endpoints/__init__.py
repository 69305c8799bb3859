# src/forum_stage/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .changes import router as changes_router
from .comments import router as comments_router
from .communities import router as communities_router
from .feed import router as feed_router
from .moderation import router as moderation_router
from .posts import router as posts_router
from .reports import router as reports_router
from .users import router as users_router
from .votes import router as votes_router

__all__ = [
    "changes_router",
    "comments_router",
    "communities_router",
    "feed_router",
    "moderation_router",
    "posts_router",
    "reports_router",
    "users_router",
    "votes_router",
]
