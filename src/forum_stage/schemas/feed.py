# src/forum_stage/schemas/feed.py
"""Feed envelopes."""

from datetime import datetime

from pydantic import BaseModel

from .post import PostResponse


class FeedResponse(BaseModel):
    """Ranked posts; ``degraded`` marks an empty fallback after a storage failure."""

    items: list[PostResponse]
    strategy: str
    degraded: bool = False
    retry_after: int | None = None


class SavedPostResponse(BaseModel):
    post: PostResponse
    saved_at: datetime


class SavedFeedResponse(BaseModel):
    items: list[SavedPostResponse]
    degraded: bool = False
    retry_after: int | None = None
