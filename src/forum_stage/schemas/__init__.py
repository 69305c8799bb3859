# src/forum_stage/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .comment import CommentCreate, CommentNodeResponse, CommentResponse
from .community import CommunityCreate, CommunityResponse
from .feed import FeedResponse, SavedFeedResponse, SavedPostResponse
from .moderation import (
    BanCreate,
    BanResponse,
    QueueItemCreate,
    QueueItemResponse,
    ReportCreate,
    ReportResponse,
    ResolveReportRequest,
    ReviewRequest,
)
from .post import PostCreate, PostFlagRequest, PostResponse
from .vote import VoteCreate, VoteResponse

__all__ = [
    "CommentCreate", "CommentNodeResponse", "CommentResponse",
    "CommunityCreate", "CommunityResponse",
    "FeedResponse", "SavedFeedResponse", "SavedPostResponse",
    "BanCreate", "BanResponse",
    "QueueItemCreate", "QueueItemResponse",
    "ReportCreate", "ReportResponse", "ResolveReportRequest", "ReviewRequest",
    "PostCreate", "PostFlagRequest", "PostResponse",
    "VoteCreate", "VoteResponse",
]
