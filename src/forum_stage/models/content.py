# src/forum_stage/models/content.py
"""Shared capability interface for votable/reportable content."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

KIND_POST = "post"
KIND_COMMENT = "comment"
CONTENT_KINDS = (KIND_POST, KIND_COMMENT)


@runtime_checkable
class ContentItem(Protocol):
    """Capabilities shared by posts and comments.

    Both kinds are votable, reportable and soft-deletable; only comments
    nest under a parent item.
    """

    kind: str
    id: int
    author_id: str | None
    deleted: bool
    shadowbanned: bool
    upvotes: int
    downvotes: int
    created_at: datetime

    @property
    def net_score(self) -> int: ...
