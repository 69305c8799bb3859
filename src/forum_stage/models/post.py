# src/forum_stage/models/post.py
"""SQLAlchemy models for posts and related attributes."""

from datetime import datetime
from typing import ClassVar

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from forum_stage.db.session import Base
from forum_stage.db.time import utcnow
from forum_stage.models.content import KIND_POST


class Post(Base):
    """Top-level content item inside a community."""

    __tablename__ = "post"
    __table_args__ = (
        Index("ix_post_community_created", "community_id", "created_at"),
        Index("ix_post_author_id", "author_id"),
    )

    kind: ClassVar[str] = KIND_POST

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    community_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("community.id"),
        nullable=True,
    )

    # The author is always recorded; is_anonymous only hides it from display.
    author_id: Mapped[str | None] = mapped_column(
        String(64),
        ForeignKey("user_account.id"),
        nullable=True,
    )
    author_identifier: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    approved: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    pinned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    shadowbanned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Cache of the vote ledger; reconciled by services.scoring.recompute_counters.
    upvotes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    downvotes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    comment_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=utcnow
    )

    @property
    def net_score(self) -> int:
        """Return upvotes minus downvotes."""
        return (self.upvotes or 0) - (self.downvotes or 0)
