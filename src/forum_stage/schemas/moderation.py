# src/forum_stage/schemas/moderation.py
"""Moderation-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ReportCreate(BaseModel):
    """Schema for filing a report."""

    target_kind: Literal["post", "comment"]
    target_id: int
    reason: str = Field(..., description="spam, harassment, inappropriate, misinformation, violence or other")
    description: str | None = Field(None, max_length=2000)


class ReportResponse(BaseModel):
    id: int
    target_kind: str
    target_id: int
    reason: str
    description: str | None
    status: str
    resolution: str | None
    reviewed_by: str | None
    reviewed_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ResolveReportRequest(BaseModel):
    action: Literal["delete", "keep"]


class QueueItemCreate(BaseModel):
    """Moderator request to hold a published post for review."""

    post_id: int
    reason: str | None = None


class QueueItemResponse(BaseModel):
    id: int
    post_id: int
    flagged_by: str
    reason: str | None
    status: str
    reviewed_by: str | None
    reviewed_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReviewRequest(BaseModel):
    decision: Literal["approve", "reject"]


class BanCreate(BaseModel):
    """Schema for banning a user id or an IP address."""

    user_id: str | None = None
    ip_address: str | None = None
    reason: str = Field(..., min_length=1)
    is_shadowban: bool = False
    is_permanent: bool = False
    expires_at: datetime | None = None
    community_id: int | None = None

    @model_validator(mode="after")
    def _single_subject(self) -> "BanCreate":
        if (self.user_id is None) == (self.ip_address is None):
            raise ValueError("Provide exactly one of user_id or ip_address")
        return self


class BanResponse(BaseModel):
    id: int
    user_id: str | None
    ip_address: str | None
    community_id: int | None
    is_shadowban: bool
    is_permanent: bool
    expires_at: datetime | None
    reason: str
    banned_by: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
