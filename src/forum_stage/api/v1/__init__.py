# src/forum_stage/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    changes_router,
    comments_router,
    communities_router,
    feed_router,
    moderation_router,
    posts_router,
    reports_router,
    users_router,
    votes_router,
)

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
