# src/forum_stage/models/comment.py
"""SQLAlchemy model for threaded comments."""

from datetime import datetime
from typing import ClassVar

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from forum_stage.db.session import Base
from forum_stage.db.time import utcnow
from forum_stage.models.content import KIND_COMMENT


class Comment(Base):
    """Reply to a post, optionally nested under another comment."""

    __tablename__ = "comment"
    __table_args__ = (Index("ix_comment_post_id", "post_id"),)

    kind: ClassVar[str] = KIND_COMMENT

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Parent chain for nested replies; top-level comments have no parent.
    parent_comment_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("comment.id"),
        nullable=True,
    )

    author_id: Mapped[str | None] = mapped_column(
        String(64),
        ForeignKey("user_account.id"),
        nullable=True,
    )
    author_identifier: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    shadowbanned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    upvotes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    downvotes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    @property
    def net_score(self) -> int:
        """Return upvotes minus downvotes."""
        return (self.upvotes or 0) - (self.downvotes or 0)
