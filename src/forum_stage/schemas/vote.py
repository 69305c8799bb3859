# src/forum_stage/schemas/vote.py
"""Vote-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, Field


class VoteCreate(BaseModel):
    """Schema for casting, flipping or retracting a vote."""

    target_kind: Literal["post", "comment"] = "post"
    target_id: int
    direction: Literal[-1, 1] = Field(..., description="1 for upvote, -1 for downvote")


class VoteResponse(BaseModel):
    """Outcome of a vote call as seen by the voter."""

    target_kind: str
    target_id: int
    direction: int = Field(..., description="Caller's vote after the call; 0 once retracted")
    delta: int
    upvotes: int
    downvotes: int
    net_score: int
