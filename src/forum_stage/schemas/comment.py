# src/forum_stage/schemas/comment.py
"""Comment-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from forum_stage.services.comment_tree import CommentNode
from forum_stage.services.identity import Viewer


class CommentCreate(BaseModel):
    """Schema for replying to a post or comment."""

    content: str = Field(..., min_length=1, max_length=10000)
    parent_comment_id: int | None = Field(None, description="Comment being replied to")
    anonymous: bool = False


class CommentResponse(BaseModel):
    """Schema for a single comment."""

    id: int
    post_id: int
    parent_comment_id: int | None
    author_id: str | None
    is_anonymous: bool
    content: str
    upvotes: int
    downvotes: int
    net_score: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def for_viewer(cls, comment: object, viewer: Viewer) -> CommentResponse:
        response = cls.model_validate(comment)
        if response.is_anonymous and not viewer.sees_hidden_content_of(response.author_id):
            response.author_id = None
        return response


class CommentNodeResponse(CommentResponse):
    """A comment with its nested replies."""

    replies: list[CommentNodeResponse] = Field(default_factory=list)

    @classmethod
    def from_node(cls, node: CommentNode, viewer: Viewer) -> CommentNodeResponse:
        base = CommentResponse.for_viewer(node.comment, viewer)
        return cls(
            **base.model_dump(),
            replies=[cls.from_node(reply, viewer) for reply in node.replies],
        )
