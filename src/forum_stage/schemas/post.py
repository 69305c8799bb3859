# src/forum_stage/schemas/post.py
"""Post-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from forum_stage.services.identity import Viewer


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    title: str = Field(..., min_length=1, max_length=300)
    content: str = Field(..., min_length=1, max_length=40000, description="Markdown content")
    community_id: int | None = Field(None, description="Community to publish into")
    tags: list[str] = Field(default_factory=list, max_length=10)
    anonymous: bool = Field(False, description="Hide the author from other users")


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    id: int
    community_id: int | None
    author_id: str | None
    is_anonymous: bool
    title: str
    content: str
    tags: list[str]
    upvotes: int
    downvotes: int
    net_score: int
    comment_count: int
    pinned: bool
    locked: bool
    deleted: bool
    approved: bool
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def for_viewer(cls, post: object, viewer: Viewer) -> "PostResponse":
        """Serialize ``post``, masking the author of anonymous posts."""
        response = cls.model_validate(post)
        if response.is_anonymous and not viewer.sees_hidden_content_of(response.author_id):
            response.author_id = None
        return response


class PostFlagRequest(BaseModel):
    """Moderator toggle of pin, lock or delete on a post."""

    flag: str = Field(..., pattern="^(pin|lock|delete)$")
    value: bool | None = Field(None, description="Explicit value; omitted flips the flag")
