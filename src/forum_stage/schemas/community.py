# src/forum_stage/schemas/community.py
"""Community-related Pydantic schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CommunityCreate(BaseModel):
    """Schema for creating a new community."""

    slug: str = Field(..., min_length=2, max_length=64, pattern="^[a-z0-9][a-z0-9-]*$")
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    rules: list[dict[str, Any]] = Field(default_factory=list)
    requires_approval: bool = False


class CommunityResponse(BaseModel):
    """Schema for community information returned by the API."""

    id: int
    slug: str
    name: str
    description: str | None
    rules: list[dict[str, Any]]
    member_count: int
    post_count: int
    requires_approval: bool

    model_config = ConfigDict(from_attributes=True)
